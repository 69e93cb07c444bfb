"""Medicine stock maintenance: add, edit, status changes, removal and listing."""
import logging

from core.exceptions import ValidationError
from .models import Medicine
from .pricing import GST_AMOUNT, GST_PERCENTAGE, PRICE, SOURCES, apply_pricing, recalculate, to_decimal
from .stores import ORMMedicineStore
from .validators import INVALID, INVALID_CHOICE, STATUSES, as_int, ensure_valid, parse_expiry

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'batch_number', 'hsn_code', 'expiry_date', 'quantity',
    'price', 'gst_percentage', 'gst_amount', 'status',
)
PRICING_FIELDS = ('price', 'gst_percentage', 'gst_amount')


def _pick(data):
    return {field: data[field] for field in EDITABLE_FIELDS if field in data}


def _normalise(fields):
    fields = dict(fields)
    if 'expiry_date' in fields:
        fields['expiry_date'] = parse_expiry(fields['expiry_date'])
    if 'quantity' in fields:
        fields['quantity'] = as_int(fields['quantity'])
    if fields.get('hsn_code') is None:
        fields['hsn_code'] = ''
    for field in ('name', 'batch_number', 'hsn_code'):
        fields[field] = str(fields.get(field, '')).strip()
    return fields


def _check_source(pricing_source):
    if pricing_source not in SOURCES:
        raise ValidationError({'pricing_source': [INVALID_CHOICE]}, "Invalid pricing source")


def _edited_source(fields, current=None):
    """
    The pricing field the caller edited, or None when none was.

    Against ``current`` only values that differ from the stored ones count, so
    a full form resubmission with an edited GST amount still keeps that amount.
    """
    edited = set()
    for field in PRICING_FIELDS:
        value = fields.get(field)
        if value is None or str(value).strip() == '':
            continue
        if current is not None and to_decimal(value) == to_decimal(getattr(current, field)):
            continue
        edited.add(field)

    for source in (PRICE, GST_PERCENTAGE, GST_AMOUNT):
        if source in edited:
            return source
    return None


class InventoryService:
    """
    Orchestrates pricing, validation and persistence of medicines.

    Status is only derived automatically by the dispensing engine. Edits made
    here keep whatever status the caller sends (or the stored one), even when
    the quantity changes.
    """

    def __init__(self, store=None):
        self.store = store or ORMMedicineStore()

    def add_medicine(self, data, pricing_source=None):
        fields = _pick(data)
        if pricing_source is None:
            # a GST amount typed without a percentage is the figure to keep
            given = _edited_source({f: fields.get(f) for f in (GST_PERCENTAGE, GST_AMOUNT)})
            pricing_source = GST_AMOUNT if given == GST_AMOUNT else PRICE
        _check_source(pricing_source)
        fields.setdefault('status', Medicine.AVAILABLE)
        ensure_valid(fields)

        fields = _normalise(apply_pricing(fields, pricing_source))
        medicine = Medicine(**fields)
        self.store.create(medicine)
        logger.info(f"Medicine added: {medicine.name} ({medicine.batch_number}) qty={medicine.quantity}")
        return medicine

    def update_medicine(self, medicine_id, data, pricing_source=None):
        current = self.store.get(medicine_id)
        changes = _pick(data)

        merged = {field: getattr(current, field) for field in EDITABLE_FIELDS}
        merged.update(changes)
        ensure_valid(merged)

        if pricing_source is None:
            pricing_source = _edited_source(changes, current)
        if pricing_source is not None:
            _check_source(pricing_source)
            merged = apply_pricing(merged, pricing_source)

        self.store.update(medicine_id, _normalise(merged))
        logger.info(f"Medicine {medicine_id} updated: {', '.join(sorted(changes)) or 'no field changes'}")
        return self.store.get(medicine_id)

    def set_status(self, medicine_id, status):
        if status not in STATUSES:
            raise ValidationError({'status': [INVALID_CHOICE]}, "Invalid status")
        self.store.update(medicine_id, {'status': status})
        logger.info(f"Medicine {medicine_id} status set to {status}")
        return self.store.get(medicine_id)

    def delete_medicine(self, medicine_id):
        self.store.delete(medicine_id)
        logger.info(f"Medicine {medicine_id} deleted")

    def list_medicines(self, status=None, search=None):
        medicines = self.store.list(order_by='name')
        if status and status != 'all':
            medicines = [m for m in medicines if m.status == status]
        if search:
            term = search.strip().lower()
            medicines = [
                m for m in medicines
                if term in m.name.lower() or term in m.batch_number.lower()
            ]
        return medicines

    @staticmethod
    def price_preview(data, pricing_source=PRICE):
        _check_source(pricing_source)
        errors = {}
        for field in PRICING_FIELDS:
            try:
                to_decimal(data.get(field))
            except ValueError:
                errors[field] = [INVALID]
        if errors:
            raise ValidationError(errors, "Pricing fields must be numbers")
        return recalculate(
            data.get('price'), data.get('gst_percentage'), data.get('gst_amount'), pricing_source
        )
