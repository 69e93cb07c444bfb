"""
Sales analytics over dispensing records.

Read-only: totals for a period overall and per payment mode.
"""
from datetime import datetime, time, timedelta
from decimal import Decimal

from dateutil import parser as date_parser
from django.utils import timezone

from core.exceptions import ValidationError
from pharmacy.dispensing import DEFAULT_PAYMENT_MODE
from pharmacy.pricing import round2

RANGES = ('today', 'week', 'month', 'custom')


def aggregate(store, start, end):
    """
    Sum ``total_amount`` of records dispensed in [start, end], overall and by
    payment mode. Records without a payment mode count as CASH.

    Returns ``{"total_amount": Decimal, "breakdown": [{"mode", "count",
    "amount"}, ...]}`` with the breakdown sorted by amount, largest first.
    """
    total = Decimal('0')
    by_mode = {}
    for record in store.between(start, end):
        amount = record.total_amount or Decimal('0')
        total += amount
        mode = record.payment_mode or DEFAULT_PAYMENT_MODE
        entry = by_mode.setdefault(mode, {'mode': mode, 'count': 0, 'amount': Decimal('0')})
        entry['count'] += 1
        entry['amount'] += amount

    breakdown = sorted(by_mode.values(), key=lambda e: e['amount'], reverse=True)
    for entry in breakdown:
        entry['amount'] = round2(entry['amount'])
    return {'total_amount': round2(total), 'breakdown': breakdown}


def _parse_day(value, field):
    try:
        return date_parser.isoparse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError({field: ['invalid']}, "Dates must be YYYY-MM-DD")


def _day_start(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def _day_end(day):
    return timezone.make_aware(datetime.combine(day, time.max))


def resolve_range(name='today', start_date=None, end_date=None, now=None):
    """
    Turn a preset into an aware (start, end) pair.

    ``today`` starts at local midnight, ``week`` and ``month`` at midnight
    7 and 30 days back, all ending ``now``. ``custom`` covers whole days from
    ``start_date`` 00:00 to ``end_date`` 23:59:59.999999.
    """
    now = timezone.localtime(now or timezone.now())
    today = now.date()

    if name == 'today':
        return _day_start(today), now
    if name == 'week':
        return _day_start(today - timedelta(days=7)), now
    if name == 'month':
        return _day_start(today - timedelta(days=30)), now
    if name == 'custom':
        errors = {}
        if not start_date:
            errors['start_date'] = ['required']
        if not end_date:
            errors['end_date'] = ['required']
        if errors:
            raise ValidationError(errors, "Custom range needs start_date and end_date")
        start_day = _parse_day(start_date, 'start_date')
        end_day = _parse_day(end_date, 'end_date')
        if start_day > end_day:
            raise ValidationError({'end_date': ['before_start']}, "end_date is before start_date")
        return _day_start(start_day), _day_end(end_day)

    raise ValidationError({'range': ['invalid_choice']}, f"range must be one of {', '.join(RANGES)}")
