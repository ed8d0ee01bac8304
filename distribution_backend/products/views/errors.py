# products/views/errors.py

"""
Map inventory engine errors onto HTTP responses.

400: caller sent something invalid (bad quantity)
404: the engine was pointed at a product that does not exist
409: request is valid but conflicts with current stock / document state
"""

from rest_framework import status
from rest_framework.response import Response

from products.services.exceptions import (
    BatchAlreadyConsumed,
    InsufficientBatchStock,
    InsufficientStock,
    InventoryError,
    InvalidDocumentTransition,
    InvalidQuantity,
    OverCredit,
    ProductNotFound,
)

CONFLICT_ERRORS = (
    InsufficientStock,
    InsufficientBatchStock,
    OverCredit,
    BatchAlreadyConsumed,
    InvalidDocumentTransition,
)


def inventory_error_response(exc: InventoryError) -> Response:
    payload = {"detail": str(exc), "code": exc.__class__.__name__}

    if isinstance(exc, InsufficientStock):
        payload.update({"available": exc.available, "required": exc.required})
    elif isinstance(exc, BatchAlreadyConsumed):
        payload.update({"batch_id": str(exc.batch_id), "consumed": exc.consumed})

    if isinstance(exc, ProductNotFound):
        return Response(payload, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, InvalidQuantity):
        return Response(payload, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, CONFLICT_ERRORS):
        return Response(payload, status=status.HTTP_409_CONFLICT)
    return Response(payload, status=status.HTTP_400_BAD_REQUEST)
