import datetime
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from pharmacy.models import Medicine
from pharmacy.pricing import recalculate
from tests.fakes import InMemoryDispenseRecordStore, InMemoryMedicineStore


def make_medicine(name='Paracetamol 500', quantity=10, price='100', gst_percentage='12',
                  batch_number='B-001', expiry_date=datetime.date(2030, 1, 31), **extra):
    priced = recalculate(price, gst_percentage, None, 'price')
    fields = dict(
        name=name,
        batch_number=batch_number,
        expiry_date=expiry_date,
        quantity=quantity,
        status=Medicine.AVAILABLE,
        **priced,
    )
    fields.update(extra)
    return Medicine(**fields)


def D(value):
    return Decimal(str(value))


@pytest.fixture
def medicine_store():
    return InMemoryMedicineStore()


@pytest.fixture
def record_store():
    return InMemoryDispenseRecordStore()


@pytest.fixture
def pharmacist(db):
    return get_user_model().objects.create_user(
        username='pharmacist', password='not-used-here', role='PHARMACY', first_name='Asha', last_name='Rao'
    )


@pytest.fixture
def api_client(pharmacist):
    client = APIClient()
    client.force_authenticate(user=pharmacist)
    return client
