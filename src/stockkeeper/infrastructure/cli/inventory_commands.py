"""CLI commands for stock levels and movement history."""

from __future__ import annotations

import click

from stockkeeper.domain.model.movement import MANUAL_MOVEMENT_DIRECTIONS
from stockkeeper.infrastructure.cli.runner import run
from stockkeeper.infrastructure.config import Settings

_MANUAL_TYPES = sorted(kind.value for kind in MANUAL_MOVEMENT_DIRECTIONS)


@click.command("show")
@click.option("--all", "include_inactive", is_flag=True, default=False, help="Include inactive products.")
@click.pass_obj
def inventory_show(settings: Settings, include_inactive: bool) -> None:
    """Show current stock levels."""
    lines = run(settings, lambda c: c.show_inventory().handle(include_inactive=include_inactive))

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<24} {'Available':>10} {'Reserved':>10} {'Min':>6} {'Max':>6}  Status")
    click.echo("-" * 72)
    for line in lines:
        click.echo(
            f"{line.name:<24} {line.available:>10} {line.total_reserved:>10} "
            f"{line.min_threshold:>6} {line.max_threshold:>6}  {line.status}"
        )


@click.command("adjust")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="New stock level.")
@click.option(
    "--type",
    "movement_type",
    default="ADJUSTMENT",
    type=click.Choice(_MANUAL_TYPES, case_sensitive=False),
    help="Kind of correction.",
)
@click.option("--reason", default=None, help="Why the stock changed.")
@click.pass_obj
def inventory_adjust(
    settings: Settings,
    product_id: str,
    quantity: int,
    movement_type: str,
    reason: str | None,
) -> None:
    """Set a product's stock level and record the movement."""
    change = run(
        settings,
        lambda c: c.adjust_stock().handle(product_id, quantity, reason, movement_type),
    )

    if change.delta == 0:
        click.echo(f"Stock for product #{product_id} already {quantity}; nothing changed")
        return
    click.echo(
        f"Stock for product #{product_id} {change.quantity_before} -> "
        f"{change.quantity_after} ({change.movement_type} {change.delta:+d})"
    )
    if not change.audited:
        click.echo("Warning: the stock change was applied but could not be logged.", err=True)


@click.command("history")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--limit", default=None, type=int, help="Number of movements to show.")
@click.pass_obj
def inventory_history(settings: Settings, product_id: str, limit: int | None) -> None:
    """Show a product's stock movements, newest first."""
    limit = settings.history_limit if limit is None else limit
    history = run(settings, lambda c: c.movement_history().handle(product_id, limit))

    click.echo(f"{history.product.name} (#{history.product.product_id}): {history.product.available} available")
    if not history.movements:
        click.echo("No stock movements recorded.")
        return

    click.echo()
    click.echo(f"  {'When':<20} {'Type':<14} {'Change':>7} {'Before':>7} {'After':>7}  Reason")
    click.echo(f"  {'-'*72}")
    for m in history.movements:
        order = f" (order #{m.order_id})" if m.order_id is not None else ""
        click.echo(
            f"  {m.created_at:<20} {m.movement_type:<14} {m.delta:>+7d} "
            f"{m.quantity_before:>7} {m.quantity_after:>7}  {m.reason}{order}"
        )


@click.command("low-stock")
@click.pass_obj
def inventory_low_stock(settings: Settings) -> None:
    """List active products at or below their minimum threshold."""
    products = run(settings, lambda c: c.low_stock_report().handle())

    if not products:
        click.echo("No products are low on stock.")
        return

    click.echo(f"{'ID':<8} {'Name':<24} {'Available':>10} {'Min':>6}")
    click.echo("-" * 51)
    for p in products:
        click.echo(f"{p.product_id:<8} {p.name:<24} {p.available:>10} {p.min_threshold:>6}")


@click.command("stats")
@click.pass_obj
def inventory_stats(settings: Settings) -> None:
    """Show aggregate stock figures for active products."""
    stats = run(settings, lambda c: c.stock_statistics().handle())

    click.echo(f"Products:      {stats.total_products}")
    click.echo(f"Units:         {stats.total_stock}")
    click.echo(f"Out of stock:  {stats.out_of_stock}")
    click.echo(f"Low stock:     {stats.low_stock}")
    click.echo(f"Average stock: {stats.average_stock}")
    click.echo(f"Stock value:   {stats.total_value}")
