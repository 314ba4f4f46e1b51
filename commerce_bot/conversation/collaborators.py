"""
Collaborator boundary for the conversation engine.

The engine talks to four backend operations (product search, availability,
payment, order recording) through the ``Collaborators`` bundle. Every call
goes through ``call_collaborator``, which bounds the wait, validates the
response against its pydantic model and turns every failure mode into a
single ``CollaboratorError``.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from commerce_bot.schemas.collaborator_schema import (
    AvailabilityRequest,
    AvailabilityResult,
    OrderRecordRequest,
    OrderRecordResult,
    PaymentRequest,
    PaymentResult,
    ProductPage,
    ProductQuery,
)
from commerce_bot.tools.catalog import CatalogStore
from commerce_bot.tools.fulfillment import record_order
from commerce_bot.tools.inventory import check_inventory
from commerce_bot.tools.payment import process_payment
from commerce_bot.tools.product_finder import search_products

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# A collaborator may answer with the model itself or a plain mapping.
FindProducts = Callable[[ProductQuery], Awaitable[Any]]
CheckAvailability = Callable[[AvailabilityRequest], Awaitable[Any]]
ProcessPayment = Callable[[PaymentRequest], Awaitable[Any]]
RecordOrder = Callable[[OrderRecordRequest], Awaitable[Any]]


class CollaboratorError(Exception):
    """A collaborator call timed out, raised, or returned a malformed response."""

    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


@dataclass
class Collaborators:
    """The backend operations the engine depends on."""
    find_products: FindProducts
    check_availability: CheckAvailability
    process_payment: ProcessPayment
    record_order: RecordOrder


async def call_collaborator(
    name: str,
    call: Awaitable[Any],
    response_model: type[ModelT],
    timeout: float,
) -> ModelT:
    """
    Await one collaborator call with a bounded wait.

    Raises:
        CollaboratorError: On timeout, on any exception from the call, or
            when the response does not validate against ``response_model``.
    """
    try:
        result = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Collaborator '%s' timed out after %.1fs", name, timeout)
        raise CollaboratorError(name, f"timed out after {timeout}s") from None
    except Exception as exc:
        logger.warning("Collaborator '%s' failed: %s", name, exc)
        raise CollaboratorError(name, str(exc) or type(exc).__name__) from exc

    if isinstance(result, response_model):
        return result
    try:
        payload = result.model_dump() if isinstance(result, BaseModel) else result
        return response_model.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Collaborator '%s' returned a malformed response: %s", name, exc)
        raise CollaboratorError(name, "malformed response") from exc


def local_collaborators(
    data_dir: Optional[Union[str, Path]] = None,
    fulfillment_path: Optional[Union[str, Path]] = None,
) -> Collaborators:
    """Wire the JSON-file tools as collaborators, each run in a worker thread."""
    catalog = CatalogStore(data_dir)

    async def find_products(request: ProductQuery) -> ProductPage:
        return await asyncio.to_thread(search_products, request, catalog)

    async def check_availability(request: AvailabilityRequest) -> AvailabilityResult:
        return await asyncio.to_thread(check_inventory, request, catalog)

    async def pay(request: PaymentRequest) -> PaymentResult:
        return await asyncio.to_thread(process_payment, request)

    async def record(request: OrderRecordRequest) -> OrderRecordResult:
        return await asyncio.to_thread(partial(record_order, path=fulfillment_path), request)

    return Collaborators(
        find_products=find_products,
        check_availability=check_availability,
        process_payment=pay,
        record_order=record,
    )
