"""Receipt payloads for a bill, and their printable HTML rendering."""
from decimal import Decimal

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from .pricing import line_total, round2


def default_business_info():
    return dict(settings.PHARMACY_BUSINESS_INFO)


def build_receipt(records, business_info=None):
    """
    Receipt payload for the records of one bill.

    Item ``amount`` is the goods value of the line; ``total_amount`` is what
    was charged, so it is zero under a zero-charge payment mode while the items
    still show what was handed over.
    """
    if not records:
        raise ValueError("A receipt needs at least one dispensing record")
    first = records[0]

    items = [{
        'particulars': r.medicine_name,
        'qty': r.quantity,
        'batch_number': r.batch_number,
        'expiry_date': r.expiry_date.isoformat() if r.expiry_date else '',
        'rate': round2(r.price),
        'gst_amount': round2(r.gst_amount),
        'amount': line_total(r.quantity, r.price, r.gst_amount),
    } for r in records]

    return {
        'business_info': business_info if business_info is not None else default_business_info(),
        'bill_number': first.bill_number,
        'date': timezone.localtime(first.dispensed_date).strftime('%d/%m/%Y'),
        'patient_name': first.patient_name,
        'doctor_name': first.doctor_name or 'Self',
        'items': items,
        'total_amount': round2(sum((r.total_amount for r in records), Decimal('0'))),
        'payment_mode': first.payment_mode,
    }


def render_receipt_html(receipt):
    return render_to_string('pharmacy/receipt.html', {'receipt': receipt})
