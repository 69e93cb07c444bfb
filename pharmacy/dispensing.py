"""
Dispensing: take stock out of inventory against a patient and record it.

One call to ``DispensingEngine.dispense`` is one order (one bill). Each line
appends a DispenseRecord and then does a read-modify-write of the medicine's
quantity. There is no version check on that write, so two operators
dispensing the same batch at the same moment can lose a decrement; the
deployment assumes one operator at a time.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from django.utils import timezone

from core.exceptions import NotFoundError, PartialDispenseFailure, StoreUnavailableError, ValidationError
from .models import DispenseRecord, Medicine
from .pricing import line_total, round2, to_decimal
from .receipts import build_receipt
from .stores import ORMDispenseRecordStore, ORMMedicineStore
from .validators import INVALID, INVALID_CHOICE, MIN_VALUE, REQUIRED, as_int

logger = logging.getLogger(__name__)

PAYMENT_MODES = tuple(mode for mode, _ in DispenseRecord.PAYMENT_MODE_CHOICES)
DEFAULT_PAYMENT_MODE = DispenseRecord.CASH
# Subsidised / waived schemes: goods leave stock but nothing is charged.
ZERO_CHARGE_PAYMENT_MODES = frozenset({'AROGYAA SREE', 'ECHS', 'ZERO FEE'})

INSUFFICIENT_STOCK = 'insufficient_stock'


def generate_bill_number(now=None):
    """``BILL-`` plus the last six digits of the epoch milliseconds."""
    now = now or timezone.now()
    millis = str(int(now.timestamp() * 1000))
    return f"BILL-{millis[-6:]}"


@dataclass
class OrderLine:
    medicine_id: object
    quantity: int


@dataclass
class OrderMeta:
    patient_name: str
    doctor_name: str = ''
    dispensed_by: str = 'Staff'
    patient_id: str = ''
    payment_mode: str = DEFAULT_PAYMENT_MODE

    @property
    def is_zero_charge(self):
        return self.payment_mode in ZERO_CHARGE_PAYMENT_MODES


@dataclass
class LineFailure:
    line: OrderLine
    error: Exception
    # Set when the record was appended but the stock write failed afterwards.
    record: Optional[DispenseRecord] = None

    def as_dict(self):
        return {
            'medicine_id': str(self.line.medicine_id),
            'quantity': self.line.quantity,
            'error': str(self.error),
            'record_written': self.record is not None,
        }


@dataclass
class DispenseResult:
    bill_number: str
    dispensed_at: datetime
    records: List[DispenseRecord] = field(default_factory=list)
    receipt_total: Decimal = Decimal('0.00')
    receipt: dict = field(default_factory=dict)


class DispensingEngine:
    def __init__(self, medicines=None, records=None, clock=timezone.now, business_info=None):
        self.medicines = medicines or ORMMedicineStore()
        self.records = records or ORMDispenseRecordStore()
        self.clock = clock
        self.business_info = business_info

    def dispense(self, lines, meta):
        """
        Dispense ``lines`` (OrderLine) for the order described by ``meta``.

        Raises ValidationError before touching the store when the order is
        malformed or asks for more than is on hand. Store errors on individual
        lines do not stop the remaining lines; they surface afterwards as a
        PartialDispenseFailure, or as the original error when nothing at all
        was written.
        """
        lines = list(lines)
        stock = self._validate(lines, meta)

        dispensed_at = self.clock()
        bill_number = generate_bill_number(dispensed_at)
        logger.info(
            f"Dispensing {bill_number}: {len(lines)} line(s) for {meta.patient_name} ({meta.payment_mode})"
        )

        committed, failed = [], []
        for line in lines:
            medicine = stock[str(line.medicine_id)]
            record = None
            try:
                record = self.records.add(self._snapshot(medicine, line, meta, bill_number, dispensed_at))
                self._deduct_stock(line)
            except (StoreUnavailableError, NotFoundError) as exc:
                logger.error(f"{bill_number}: line {medicine.name} x {line.quantity} failed: {exc}")
                failed.append(LineFailure(line=line, error=exc, record=record))
                continue
            committed.append(record)

        if failed:
            if not committed and all(f.record is None for f in failed):
                raise failed[0].error
            raise PartialDispenseFailure(bill_number, committed, failed)

        receipt_total = round2(sum((r.total_amount for r in committed), Decimal('0')))
        return DispenseResult(
            bill_number=bill_number,
            dispensed_at=dispensed_at,
            records=committed,
            receipt_total=receipt_total,
            receipt=build_receipt(committed, business_info=self.business_info),
        )

    def _validate(self, lines, meta):
        errors = OrderedDict()

        if not lines:
            errors['lines'] = [REQUIRED]
        if not (meta.patient_name or '').strip():
            errors['patient_name'] = [REQUIRED]
        if meta.payment_mode not in PAYMENT_MODES:
            errors['payment_mode'] = [INVALID_CHOICE]

        requested = OrderedDict()
        for index, line in enumerate(lines):
            quantity = as_int(line.quantity)
            if quantity is None:
                errors[f'lines[{index}].quantity'] = [INVALID]
            elif quantity <= 0:
                errors[f'lines[{index}].quantity'] = [MIN_VALUE]
            else:
                line.quantity = quantity
                key = str(line.medicine_id)
                requested[key] = requested.get(key, 0) + quantity

        if errors:
            raise ValidationError(errors, "Invalid dispense order")

        # Last-known stock; not re-checked at write time.
        stock = {key: self.medicines.get(key) for key in requested}
        for index, line in enumerate(lines):
            medicine = stock[str(line.medicine_id)]
            if requested[str(line.medicine_id)] > medicine.quantity:
                errors[f'lines[{index}].quantity'] = [INSUFFICIENT_STOCK]

        if errors:
            raise ValidationError(errors, "Not enough stock")
        return stock

    @staticmethod
    def _snapshot(medicine, line, meta, bill_number, dispensed_at):
        gst_amount = to_decimal(medicine.gst_amount)
        if meta.is_zero_charge:
            total = Decimal('0.00')
        else:
            total = line_total(line.quantity, medicine.price, gst_amount)

        return DispenseRecord(
            medicine_id=medicine.id,
            medicine_name=medicine.name,
            batch_number=medicine.batch_number or '',
            expiry_date=medicine.expiry_date,
            price=to_decimal(medicine.price),
            gst_amount=gst_amount,
            gst_percentage=to_decimal(medicine.gst_percentage),
            quantity=line.quantity,
            total_amount=total,
            dispensed_date=dispensed_at,
            bill_number=bill_number,
            patient_name=meta.patient_name.strip(),
            patient_id=(meta.patient_id or '').strip(),
            doctor_name=(meta.doctor_name or '').strip(),
            dispensed_by=(meta.dispensed_by or '').strip() or 'Staff',
            payment_mode=meta.payment_mode,
        )

    def _deduct_stock(self, line):
        current = self.medicines.get(line.medicine_id)
        new_quantity = current.quantity - line.quantity
        status = Medicine.OUT_OF_STOCK if new_quantity <= 0 else Medicine.AVAILABLE
        self.medicines.update(line.medicine_id, {'quantity': new_quantity, 'status': status})
