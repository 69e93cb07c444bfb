"""
GST pricing for medicines.

Price, GST percentage and GST amount are kept consistent by recomputing the
fields that were not edited last. All money values are ``Decimal`` and are
rounded to two places with ROUND_HALF_UP (half away from zero) through
``round2``; every caller goes through it so receipts, stock and analytics agree.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')

PRICE = 'price'
GST_PERCENTAGE = 'gst_percentage'
GST_AMOUNT = 'gst_amount'
SOURCES = (PRICE, GST_PERCENTAGE, GST_AMOUNT)


def to_decimal(value):
    """Coerce form/JSON input to Decimal. Blank and None count as zero."""
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats like 0.1 do not carry binary noise
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def round2(value):
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def recalculate(price, gst_percentage, gst_amount, source=PRICE):
    """
    Recompute the GST fields after ``source`` was edited.

    Editing price or percentage derives the GST amount; editing the amount
    derives the percentage, except when price is zero where the percentage is
    left as it was. The total is always price + GST amount.

    Returns a dict with ``price``, ``gst_percentage``, ``gst_amount`` and
    ``total_amount``.
    """
    if source not in SOURCES:
        raise ValueError(f"Unknown pricing source {source!r}; expected one of {', '.join(SOURCES)}")

    price = to_decimal(price)
    gst_percentage = to_decimal(gst_percentage)
    gst_amount = to_decimal(gst_amount)

    if source == GST_AMOUNT:
        if price > 0:
            gst_percentage = round2(gst_amount / price * HUNDRED)
    else:
        gst_amount = round2(price * gst_percentage / HUNDRED)

    return {
        'price': price,
        'gst_percentage': gst_percentage,
        'gst_amount': gst_amount,
        'total_amount': round2(price + gst_amount),
    }


def apply_pricing(fields, source=PRICE):
    """Return a copy of ``fields`` with the derived pricing fields filled in."""
    priced = dict(fields)
    priced.update(recalculate(
        fields.get('price'),
        fields.get('gst_percentage'),
        fields.get('gst_amount'),
        source,
    ))
    return priced


def line_total(quantity, price, gst_amount=None):
    """quantity x (unit price + unit GST), GST defaulting to zero."""
    return round2(int(quantity) * (to_decimal(price) + to_decimal(gst_amount)))
