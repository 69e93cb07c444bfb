from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.contrib import admin

from pharmacy.admin import MedicineAdmin
from pharmacy.models import Medicine
from tests.conftest import make_medicine

pytestmark = pytest.mark.django_db


@pytest.fixture
def model_admin():
    return MedicineAdmin(Medicine, admin.site)


@pytest.fixture
def medicine():
    medicine = make_medicine(price='200', gst_percentage='12')
    medicine.save()
    return medicine


def test_price_change_refreshes_total(model_admin, medicine):
    medicine.price = Decimal('100')
    model_admin.save_model(None, medicine, SimpleNamespace(changed_data=['price']), change=True)

    stored = Medicine.objects.get(pk=medicine.pk)
    assert stored.gst_amount == Decimal('12.00')
    assert stored.total_amount == Decimal('112.00')


def test_gst_amount_change_derives_percentage(model_admin, medicine):
    medicine.gst_amount = Decimal('10')
    model_admin.save_model(None, medicine, SimpleNamespace(changed_data=['gst_amount', 'quantity']), change=True)

    stored = Medicine.objects.get(pk=medicine.pk)
    assert stored.gst_percentage == Decimal('5.00')
    assert stored.total_amount == Decimal('210.00')
