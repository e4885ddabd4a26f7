"""CLI commands for the product catalog."""

from __future__ import annotations

import click

from stockkeeper.application.dto import ProductStockDTO
from stockkeeper.infrastructure.cli.runner import run
from stockkeeper.infrastructure.config import Settings


def _display_products(products: list[ProductStockDTO]) -> None:
    click.echo(f"{'ID':<8} {'Name':<24} {'Price':>10} {'Stock':>7} {'Status':<13}")
    click.echo("-" * 66)
    for p in products:
        status = p.status if p.active else "INACTIVE"
        click.echo(f"{p.product_id:<8} {p.name:<24} {p.price:>10} {p.available:>7} {status:<13}")


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--stock", "initial_quantity", default=0, type=int, help="Opening stock.")
@click.option("--min", "min_threshold", default=None, type=int, help="Low-stock threshold.")
@click.option("--max", "max_threshold", default=None, type=int, help="Overstock threshold.")
@click.option("--id", "product_id", default=None, help="Explicit product ID (auto-assigned otherwise).")
@click.pass_obj
def product_add(
    settings: Settings,
    name: str,
    price: str,
    initial_quantity: int,
    min_threshold: int | None,
    max_threshold: int | None,
    product_id: str | None,
) -> None:
    """Add a new product to the catalog."""
    dto = run(
        settings,
        lambda c: c.add_product().handle(
            name=name,
            price=price,
            initial_quantity=initial_quantity,
            min_threshold=settings.default_min_threshold if min_threshold is None else min_threshold,
            max_threshold=settings.default_max_threshold if max_threshold is None else max_threshold,
            product_id=product_id,
        ),
    )
    click.echo(f"Product #{dto.product_id} '{dto.name}' added at {dto.price} ({dto.available} in stock)")


@click.command("list")
@click.option("--all", "include_inactive", is_flag=True, default=False, help="Include inactive products.")
@click.pass_obj
def product_list(settings: Settings, include_inactive: bool) -> None:
    """List products in the catalog."""
    products = run(settings, lambda c: c.show_inventory().handle(include_inactive=include_inactive))

    if not products:
        click.echo("No products found.")
        return
    _display_products(products)


@click.command("deactivate")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def product_deactivate(settings: Settings, product_id: str) -> None:
    """Withdraw a product from sale (its history is kept)."""
    run(settings, lambda c: c.set_product_active().handle(product_id, active=False))
    click.echo(f"Product #{product_id} deactivated")


@click.command("activate")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def product_activate(settings: Settings, product_id: str) -> None:
    """Put a deactivated product back on sale."""
    run(settings, lambda c: c.set_product_active().handle(product_id, active=True))
    click.echo(f"Product #{product_id} activated")


@click.command("thresholds")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--min", "min_threshold", default=None, type=int, help="New low-stock threshold.")
@click.option("--max", "max_threshold", default=None, type=int, help="New overstock threshold.")
@click.pass_obj
def product_thresholds(
    settings: Settings,
    product_id: str,
    min_threshold: int | None,
    max_threshold: int | None,
) -> None:
    """Change a product's stock thresholds."""
    if min_threshold is None and max_threshold is None:
        raise click.UsageError("Give --min, --max or both")

    dto = run(
        settings,
        lambda c: c.update_thresholds().handle(product_id, min_threshold, max_threshold),
    )
    click.echo(
        f"Product #{product_id} thresholds set to min={dto.min_threshold} "
        f"max={dto.max_threshold} (now {dto.status})"
    )
