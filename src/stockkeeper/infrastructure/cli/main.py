import click

from stockkeeper.domain.exceptions import ConfigurationError
from stockkeeper.infrastructure.cli.inventory_commands import (
    inventory_adjust,
    inventory_history,
    inventory_low_stock,
    inventory_show,
    inventory_stats,
)
from stockkeeper.infrastructure.cli.order_commands import (
    order_cancel,
    order_expire_pending,
    order_list,
    order_place,
    order_show,
    order_status,
)
from stockkeeper.infrastructure.cli.product_commands import (
    product_activate,
    product_add,
    product_deactivate,
    product_list,
    product_thresholds,
)
from stockkeeper.infrastructure.config import load_settings
from stockkeeper.infrastructure.logging_config import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Stockkeeper: inventory and checkout consistency engine"""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.group()
def order() -> None:
    """Place and manage orders."""


@cli.group()
def product() -> None:
    """Manage the product catalog."""


@cli.group()
def inventory() -> None:
    """Inspect and correct stock levels."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_expire_pending)
order.add_command(order_list)
order.add_command(order_place)
order.add_command(order_show)
order.add_command(order_status)
product.add_command(product_activate)
product.add_command(product_add)
product.add_command(product_deactivate)
product.add_command(product_list)
product.add_command(product_thresholds)
inventory.add_command(inventory_adjust)
inventory.add_command(inventory_history)
inventory.add_command(inventory_low_stock)
inventory.add_command(inventory_show)
inventory.add_command(inventory_stats)
