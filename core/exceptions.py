"""
Domain errors for inventory and dispensing, and their HTTP mapping.

Client-caused errors carry their details outward. Store failures are logged
with the traceback and answered with a generic message.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PharmacyError(Exception):
    """Base class for every error raised by the domain core."""


class ValidationError(PharmacyError):
    """
    Field-level validation failure, raised before any store call.

    ``errors`` maps a field name to a list of error codes, e.g.
    ``{"price": ["min_value"], "name": ["required"]}``.
    """

    def __init__(self, errors, message="Validation failed"):
        super().__init__(message)
        self.errors = errors

    def __str__(self):
        fields = ", ".join(sorted(self.errors))
        return f"{self.args[0]}: {fields}" if fields else self.args[0]


class NotFoundError(PharmacyError):
    def __init__(self, resource, key):
        super().__init__(f"{resource} {key} not found")
        self.resource = resource
        self.key = key


class StoreUnavailableError(PharmacyError):
    """The backing store could not be reached or refused the operation."""


class PartialDispenseFailure(PharmacyError):
    """
    Some lines of an order were committed, others were not.

    Committed lines are never rolled back; ``committed`` holds the
    DispenseRecords written, ``failed`` holds ``LineFailure`` entries so the
    caller can retry the rest or reconcile stock by hand.
    """

    def __init__(self, bill_number, committed, failed):
        super().__init__(
            f"Bill {bill_number}: {len(committed)} line(s) committed, {len(failed)} failed"
        )
        self.bill_number = bill_number
        self.committed = committed
        self.failed = failed

    def as_dict(self):
        return {
            "detail": str(self),
            "bill_number": self.bill_number,
            "committed": [
                {"medicine_id": str(r.medicine_id), "quantity": r.quantity, "record_id": str(r.id)}
                for r in self.committed
            ],
            "failed": [f.as_dict() for f in self.failed],
        }


def pharmacy_exception_handler(exc, context):
    """DRF ``EXCEPTION_HANDLER``: domain errors first, then DRF's own handling."""
    view = context.get("view")
    where = type(view).__name__ if view is not None else "unknown view"

    if isinstance(exc, ValidationError):
        logger.info(f"Validation failed in {where}: {exc.errors}")
        return Response({"detail": str(exc), "errors": exc.errors}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, NotFoundError):
        logger.warning(f"Not found in {where}: {exc}")
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, PartialDispenseFailure):
        logger.error(f"Partial dispense in {where}: {exc}")
        return Response(exc.as_dict(), status=status.HTTP_409_CONFLICT)

    if isinstance(exc, StoreUnavailableError):
        logger.error(f"Store unavailable in {where}: {exc}", exc_info=exc)
        return Response(
            {"detail": "The inventory store is unavailable. Please try again."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return exception_handler(exc, context)
