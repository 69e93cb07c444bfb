"""
Store adapters for medicines and dispensing records.

The domain code only talks to these interfaces, so it runs the same against
the ORM or an in-memory fake. Each call is atomic for a single row only;
nothing here spans calls with a transaction.
"""
import abc
import logging
import uuid
from contextlib import contextmanager

from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import NotFoundError, StoreUnavailableError
from .models import Medicine, DispenseRecord

logger = logging.getLogger(__name__)


class MedicineStore(abc.ABC):
    @abc.abstractmethod
    def create(self, medicine):
        """Persist a new Medicine and return its id."""

    @abc.abstractmethod
    def update(self, medicine_id, changes):
        """Write ``changes`` (field -> value) onto one medicine."""

    @abc.abstractmethod
    def delete(self, medicine_id):
        pass

    @abc.abstractmethod
    def get(self, medicine_id):
        """Return the Medicine or raise NotFoundError."""

    @abc.abstractmethod
    def list(self, order_by='name'):
        pass


class DispenseRecordStore(abc.ABC):
    @abc.abstractmethod
    def add(self, record):
        """Append a DispenseRecord and return it with its id set."""

    @abc.abstractmethod
    def between(self, start, end):
        """Records with start <= dispensed_date <= end, oldest first."""

    @abc.abstractmethod
    def for_bill(self, bill_number):
        pass


def _medicine_key(medicine_id):
    try:
        return uuid.UUID(str(medicine_id))
    except ValueError:
        raise NotFoundError('Medicine', medicine_id)


@contextmanager
def _database_call(operation):
    try:
        yield
    except DatabaseError as exc:
        logger.error(f"Database error during {operation}: {exc}")
        raise StoreUnavailableError(f"{operation} failed: {exc}") from exc


class ORMMedicineStore(MedicineStore):
    def create(self, medicine):
        with _database_call('medicine create'):
            medicine.save(force_insert=True)
        return medicine.id

    def update(self, medicine_id, changes):
        key = _medicine_key(medicine_id)
        with _database_call('medicine update'):
            # queryset.update() skips auto_now, so stamp it here
            updated = Medicine.objects.filter(pk=key).update(updated_at=timezone.now(), **changes)
        if not updated:
            raise NotFoundError('Medicine', medicine_id)

    def delete(self, medicine_id):
        key = _medicine_key(medicine_id)
        with _database_call('medicine delete'):
            deleted, _ = Medicine.objects.filter(pk=key).delete()
        if not deleted:
            raise NotFoundError('Medicine', medicine_id)

    def get(self, medicine_id):
        key = _medicine_key(medicine_id)
        with _database_call('medicine read'):
            medicine = Medicine.objects.filter(pk=key).first()
        if medicine is None:
            raise NotFoundError('Medicine', medicine_id)
        return medicine

    def list(self, order_by='name'):
        with _database_call('medicine list'):
            return list(Medicine.objects.order_by(order_by))


class ORMDispenseRecordStore(DispenseRecordStore):
    def add(self, record):
        with _database_call('dispense record write'):
            record.save(force_insert=True)
        return record

    def between(self, start, end):
        with _database_call('dispense record query'):
            return list(
                DispenseRecord.objects
                .filter(dispensed_date__gte=start, dispensed_date__lte=end)
                .order_by('dispensed_date')
            )

    def for_bill(self, bill_number):
        with _database_call('dispense record query'):
            return list(DispenseRecord.objects.filter(bill_number=bill_number).order_by('created_at'))
