import datetime

from django.utils.dateparse import parse_date

from core.exceptions import ValidationError
from .models import Medicine
from .pricing import to_decimal

REQUIRED = 'required'
INVALID = 'invalid'
MIN_VALUE = 'min_value'
INVALID_CHOICE = 'invalid_choice'

STATUSES = {choice for choice, _ in Medicine.STATUS_CHOICES}


def _is_blank(value):
    return value is None or not str(value).strip()


def as_int(value):
    """Integer value of ``value`` or None when it is not a whole number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        number = to_decimal(value)
    except ValueError:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)


def parse_expiry(value):
    """Calendar date from a date or ISO ``YYYY-MM-DD`` string; None when invalid."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return parse_date(str(value).strip())
    except ValueError:
        return None


def validate_medicine(data):
    """
    Field-level checks for a medicine about to be created or saved.

    Returns a dict of field -> list of error codes; an empty dict means valid.
    Quantity must be positive here even though dispensing may later take a
    record down to zero.
    """
    errors = {}

    def add(field, code):
        errors.setdefault(field, []).append(code)

    if _is_blank(data.get('name')):
        add('name', REQUIRED)

    if _is_blank(data.get('batch_number')):
        add('batch_number', REQUIRED)

    quantity = data.get('quantity')
    if quantity is None or quantity == '':
        add('quantity', REQUIRED)
    else:
        quantity = as_int(quantity)
        if quantity is None:
            add('quantity', INVALID)
        elif quantity <= 0:
            add('quantity', MIN_VALUE)

    expiry = data.get('expiry_date')
    if _is_blank(expiry):
        add('expiry_date', REQUIRED)
    elif parse_expiry(expiry) is None:
        add('expiry_date', INVALID)

    try:
        if to_decimal(data.get('price')) <= 0:
            add('price', MIN_VALUE)
    except ValueError:
        add('price', INVALID)

    for field in ('gst_percentage', 'gst_amount'):
        if data.get(field) is None:
            continue
        try:
            if to_decimal(data[field]) < 0:
                add(field, MIN_VALUE)
        except ValueError:
            add(field, INVALID)

    if 'status' in data and data['status'] not in STATUSES:
        add('status', INVALID_CHOICE)

    return errors


def ensure_valid(data):
    errors = validate_medicine(data)
    if errors:
        raise ValidationError(errors, "Invalid medicine")
