"""CLI commands for the Order aggregate."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from stockkeeper.application.dto import OrderDTO, OrderItemSpec
from stockkeeper.infrastructure.cli.runner import run
from stockkeeper.infrastructure.config import Settings


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse '1:3,7:5' into OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductID:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(OrderItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id} [{dto.order_number}]  (status={dto.status})")
    click.echo(f"Customer: {dto.customer_id}")
    click.echo(f"Deliver:  {dto.delivery_address}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.delivery_agent:
        click.echo(f"Agent:    {dto.delivery_agent}")
    if dto.estimated_delivery:
        click.echo(f"ETA:      {dto.estimated_delivery}")
    if dto.notes:
        click.echo(f"Notes:    {dto.notes}")
    click.echo()

    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*47}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")


@click.command("place")
@click.option("--customer", required=True, help="Customer ID.")
@click.option("--items", required=True, help="Items as 'ProductID:Qty,ProductID:Qty'.")
@click.option("--address", required=True, help="Delivery address.")
@click.option("--notes", default="", help="Free-text notes for the order.")
@click.pass_obj
def order_place(settings: Settings, customer: str, items: str, address: str, notes: str) -> None:
    """Place an order, reserving stock for every item or none."""
    specs = _parse_items(items)

    dto = run(
        settings,
        lambda c: c.place_order().handle(
            customer_id=customer,
            item_specs=specs,
            delivery_address=address,
            notes=notes,
        ),
    )

    click.echo(f"Order #{dto.id} placed  (status={dto.status})")
    click.echo()
    _display_order(dto)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(settings: Settings, order_id: int) -> None:
    """Show details of an existing order."""
    dto = run(settings, lambda c: c.show_order().handle(order_id))
    _display_order(dto)


@click.command("list")
@click.option("--customer", default=None, help="Only this customer's orders.")
@click.option("--agent", default=None, help="Only orders assigned to this delivery agent.")
@click.pass_obj
def order_list(settings: Settings, customer: str | None, agent: str | None) -> None:
    """List orders, newest first."""
    if customer and agent:
        raise click.UsageError("Use --customer or --agent, not both")

    orders = run(
        settings,
        lambda c: c.list_orders().handle(customer_id=customer, delivery_agent=agent),
    )
    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'ID':<6} {'Number':<10} {'Customer':<16} {'Status':<18} {'Total':>10}  Created")
    click.echo("-" * 84)
    for o in orders:
        click.echo(
            f"{o.id:<6} {o.order_number:<10} {o.customer_id:<16} {o.status:<18} {o.total:>10}  {o.created_at}"
        )


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--status", required=True, help="New status (e.g. confirmed, delivered).")
@click.option("--agent", default=None, help="Delivery agent to assign.")
@click.option(
    "--eta",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]),
    help="Estimated delivery time (UTC).",
)
@click.pass_obj
def order_status(
    settings: Settings,
    order_id: int,
    status: str,
    agent: str | None,
    eta: datetime | None,
) -> None:
    """Move an order along its lifecycle."""
    if eta is not None:
        eta = eta.replace(tzinfo=timezone.utc)

    result = run(
        settings,
        lambda c: c.update_order_status().handle(order_id, status, agent, eta),
    )
    click.echo(f"Order #{order_id}: {result.message} (status={result.order.status})")


@click.command("cancel")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to cancel.")
@click.pass_obj
def order_cancel(settings: Settings, order_id: int) -> None:
    """Cancel an order and give its stock back."""
    result = run(settings, lambda c: c.cancel_order().handle(order_id))
    click.echo(f"Order #{order_id}: {result.message}")


@click.command("expire-pending")
@click.pass_obj
def order_expire_pending(settings: Settings) -> None:
    """Cancel pending orders older than the configured time-to-live."""
    expired = run(settings, lambda c: c.expire_pending_orders().handle())

    if not expired:
        click.echo("No stale pending orders.")
        return
    for dto in expired:
        click.echo(f"Order #{dto.id} expired and its stock restored")
    click.echo(f"{len(expired)} pending orders expired")
