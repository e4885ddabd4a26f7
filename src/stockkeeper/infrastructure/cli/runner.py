"""Glue between synchronous click commands and the async application layer."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from stockkeeper.domain.exceptions import CheckoutError, DomainException
from stockkeeper.infrastructure.bootstrap import Container, open_container
from stockkeeper.infrastructure.config import Settings

T = TypeVar("T")


def run(settings: Settings, action: Callable[[Container], Awaitable[T]]) -> T:
    """Run ``action`` against a freshly wired container.

    Domain errors become ClickException so the user sees the message and
    a non-zero exit code instead of a traceback.
    """

    async def _main() -> T:
        async with open_container(settings) as container:
            return await action(container)

    try:
        return asyncio.run(_main())
    except DomainException as exc:
        raise click.ClickException(describe_error(exc))


def describe_error(exc: DomainException) -> str:
    message = str(exc)
    if not isinstance(exc, CheckoutError):
        return message

    lines = [message]
    if exc.available is not None:
        lines.append(f"Only {exc.available} available for product '{exc.product_id}'.")
    elif exc.is_retryable:
        lines.append("The order was not placed; it is safe to try again.")
    for failure in exc.compensation_failures:
        lines.append(
            f"Warning: {failure.quantity} units of product '{failure.product_id}' "
            f"could not be restored ({failure.error})"
        )
    return "\n".join(lines)
