from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APIClient

from core.exceptions import StoreUnavailableError
from pharmacy import views as pharmacy_views
from pharmacy.dispensing import DispensingEngine
from pharmacy.models import DispenseRecord, Medicine
from pharmacy.stores import ORMMedicineStore
from tests.conftest import D, make_medicine
from tests.fakes import InMemoryDispenseRecordStore, InMemoryMedicineStore

pytestmark = pytest.mark.django_db

MEDICINES_URL = '/api/pharmacy/medicines/'
DISPENSE_URL = '/api/pharmacy/dispense/'


@pytest.fixture(autouse=True)
def emitted(monkeypatch):
    calls = []
    monkeypatch.setattr(pharmacy_views, '_emit_dispense_update', lambda bill, records: calls.append((bill, records)))
    return calls


@pytest.fixture
def medicine():
    medicine = make_medicine(quantity=10)
    medicine.save()
    return medicine


@pytest.fixture
def staff_client(db):
    user = get_user_model().objects.create_user(username='counter', password='not-used-here', role='STAFF')
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def order(medicine, quantity=3, **overrides):
    payload = {
        'patient_name': 'Ravi Kumar',
        'patient_id': 'P-104',
        'doctor_name': 'Dr. Rao',
        'payment_mode': 'CASH',
        'items': [{'medicine': str(medicine.id), 'quantity': quantity}],
    }
    payload.update(overrides)
    return payload


class TestMedicines:
    def test_create_prices_the_medicine(self, api_client):
        response = api_client.post(MEDICINES_URL, {
            'name': 'Pantoprazole 40',
            'batch_number': 'PAN-40',
            'expiry_date': '2030-12-31',
            'quantity': 60,
            'price': '100',
            'gst_percentage': '12',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['gst_amount'] == '12.00'
        assert response.data['total_amount'] == '112.00'
        assert response.data['status'] == Medicine.AVAILABLE
        assert Medicine.objects.filter(pk=response.data['med_id']).exists()

    def test_create_rejects_invalid_fields(self, api_client):
        response = api_client.post(MEDICINES_URL, {'name': 'X', 'price': '0'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['errors'] == {
            'batch_number': ['required'],
            'quantity': ['required'],
            'expiry_date': ['required'],
            'price': ['min_value'],
        }
        assert not Medicine.objects.exists()

    def test_partial_update_recomputes_price(self, api_client, medicine):
        response = api_client.patch(f'{MEDICINES_URL}{medicine.id}/', {'price': '150'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_amount'] == '168.00'

    def test_list_filters_by_status(self, api_client, medicine):
        make_medicine(name='Old Stock', quantity=0, status=Medicine.OUT_OF_STOCK).save()

        everything = api_client.get(MEDICINES_URL, {'status': 'all'})
        out = api_client.get(MEDICINES_URL, {'status': Medicine.OUT_OF_STOCK})

        assert len(everything.data) == 2
        assert [m['name'] for m in out.data] == ['Old Stock']

    def test_gst_amount_edit_is_kept(self, api_client, medicine):
        response = api_client.patch(f'{MEDICINES_URL}{medicine.id}/', {'gst_amount': '10'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['gst_amount'] == '10.00'
        assert response.data['gst_percentage'] == '10.00'
        assert response.data['total_amount'] == '110.00'

    def test_set_status(self, api_client, medicine):
        response = api_client.patch(f'{MEDICINES_URL}{medicine.id}/status/', {'status': 'completed'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert Medicine.objects.get(pk=medicine.id).status == Medicine.COMPLETED

    def test_delete_missing_is_404(self, api_client):
        response = api_client.delete(f'{MEDICINES_URL}3c9e1f5a-7b2d-4e8f-a1c6-9d0b2e4f6a81/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_price_preview(self, api_client):
        response = api_client.post(f'{MEDICINES_URL}price-preview/', {
            'price': '200', 'gst_amount': '10', 'pricing_source': 'gst_amount',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert D(response.data['gst_percentage']) == Decimal('5.00')
        assert D(response.data['total_amount']) == Decimal('210.00')

    def test_staff_cannot_delete(self, staff_client, medicine):
        response = staff_client.delete(f'{MEDICINES_URL}{medicine.id}/')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_store_outage_is_503(self, api_client, monkeypatch):
        def unavailable(self, medicine):
            raise StoreUnavailableError("database is locked")
        monkeypatch.setattr(ORMMedicineStore, 'create', unavailable)

        response = api_client.post(MEDICINES_URL, {
            'name': 'Pantoprazole 40', 'batch_number': 'PAN-40', 'expiry_date': '2030-12-31',
            'quantity': 60, 'price': '100',
        }, format='json')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert 'locked' not in response.data['detail']


def test_requires_authentication(medicine):
    response = APIClient().get(MEDICINES_URL)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestDispense:
    def test_dispense(self, api_client, medicine, emitted):
        response = api_client.post(DISPENSE_URL, order(medicine), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert D(response.data['receipt_total']) == Decimal('336.00')
        [record] = response.data['records']
        assert record['dispensed_by'] == 'Asha Rao'
        assert record['total_amount'] == '336.00'
        assert response.data['receipt']['patient_name'] == 'Ravi Kumar'
        assert Medicine.objects.get(pk=medicine.id).quantity == 7
        assert emitted[0][0] == response.data['bill_number']

    def test_staff_may_dispense(self, staff_client, medicine):
        response = staff_client.post(DISPENSE_URL, order(medicine, payment_mode='upi'), format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['records'][0]['payment_mode'] == 'UPI'

    def test_zero_fee(self, api_client, medicine):
        response = api_client.post(DISPENSE_URL, order(medicine, payment_mode='ZERO FEE'), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert D(response.data['receipt_total']) == Decimal('0.00')
        assert Medicine.objects.get(pk=medicine.id).quantity == 7

    def test_insufficient_stock(self, api_client, medicine, emitted):
        response = api_client.post(DISPENSE_URL, order(medicine, quantity=11), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['errors'] == {'lines[0].quantity': ['insufficient_stock']}
        assert not DispenseRecord.objects.exists()
        assert emitted == []

    def test_empty_order(self, api_client):
        response = api_client.post(DISPENSE_URL, {'patient_name': 'Ravi'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['errors'] == {'lines': ['required']}

    def test_unknown_medicine(self, api_client, medicine):
        payload = order(medicine)
        payload['items'][0]['medicine'] = '3c9e1f5a-7b2d-4e8f-a1c6-9d0b2e4f6a81'
        response = api_client.post(DISPENSE_URL, payload, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_partial_failure_is_409(self, api_client, monkeypatch, emitted):
        first, second = make_medicine(name='A'), make_medicine(name='B')
        medicines = InMemoryMedicineStore([first, second])
        medicines.fail_updates_for.add(str(second.id))
        engine = DispensingEngine(medicines=medicines, records=InMemoryDispenseRecordStore(), business_info={})
        monkeypatch.setattr(pharmacy_views.DispenseView, 'get_engine', lambda self: engine)

        response = api_client.post(DISPENSE_URL, {
            'patient_name': 'Ravi',
            'items': [{'medicine': str(first.id), 'quantity': 1}, {'medicine': str(second.id), 'quantity': 1}],
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert len(response.data['committed']) == 1
        assert response.data['failed'][0]['medicine_id'] == str(second.id)
        assert len(emitted[0][1]) == 2


class TestHistoryAndReceipts:
    @pytest.fixture
    def bill(self, api_client, medicine):
        return api_client.post(DISPENSE_URL, order(medicine), format='json').data['bill_number']

    def test_records_are_paginated(self, api_client, bill):
        response = api_client.get('/api/pharmacy/records/', {'bill_number': bill})
        assert response.status_code == status.HTTP_200_OK
        assert [r['bill_number'] for r in response.data['results']] == [bill]

    def test_records_are_read_only(self, api_client, bill):
        record = DispenseRecord.objects.get(bill_number=bill)
        response = api_client.delete(f'/api/pharmacy/records/{record.id}/')
        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_receipt(self, api_client, bill):
        response = api_client.get(f'/api/pharmacy/receipts/{bill}/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['items'][0]['qty'] == 3
        assert D(response.data['total_amount']) == Decimal('336.00')

    def test_printable_receipt(self, api_client, bill):
        response = api_client.get(f'/api/pharmacy/receipts/{bill}/print/')
        assert response.status_code == status.HTTP_200_OK
        content = response.content.decode()
        assert bill in content
        assert 'Ravi Kumar' in content

    def test_unknown_bill(self, api_client):
        response = api_client.get('/api/pharmacy/receipts/BILL-000000/')
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestReports:
    @pytest.fixture(autouse=True)
    def sale(self, api_client, medicine):
        api_client.post(DISPENSE_URL, order(medicine), format='json')
        api_client.post(DISPENSE_URL, order(medicine, quantity=1, payment_mode='UPI'), format='json')

    def test_analytics_today(self, api_client):
        response = api_client.get('/api/reports/analytics/', {'range': 'today'})

        assert response.status_code == status.HTTP_200_OK
        assert D(response.data['total_amount']) == Decimal('448.00')
        assert [e['mode'] for e in response.data['breakdown']] == ['CASH', 'UPI']

    def test_analytics_csv(self, api_client):
        response = api_client.get('/api/reports/analytics/', {'range': 'week', 'export': 'csv'})

        assert response['Content-Type'] == 'text/csv'
        lines = response.content.decode().splitlines()
        assert lines[0] == 'Payment Mode,Records,Amount'
        assert lines[-1] == 'TOTAL,2,448.00'

    def test_custom_range_validation(self, api_client):
        response = api_client.get('/api/reports/analytics/', {
            'range': 'custom', 'start_date': '2024-03-05', 'end_date': '2024-03-01',
        })
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['errors'] == {'end_date': ['before_start']}

    def test_sales_report(self, api_client):
        response = api_client.get('/api/reports/sales/', {'range': 'today'})
        assert len(response.data['details']) == 2

    def test_stock_report(self, api_client):
        response = api_client.get('/api/reports/stock/')
        [row] = response.data['details']
        assert row['qty'] == 6
        assert row['expiry_flag'] == ''


def test_profile(api_client):
    response = api_client.get('/api/users/me/')
    assert response.data['username'] == 'pharmacist'
    assert response.data['role'] == 'PHARMACY'


def test_history_pages_through_lines_of_one_bill(api_client):
    medicine = make_medicine(quantity=100)
    medicine.save()
    items = [{'medicine': str(medicine.id), 'quantity': 1} for _ in range(12)]
    api_client.post(DISPENSE_URL, {'patient_name': 'Ravi', 'items': items}, format='json')

    seen = []
    response = api_client.get('/api/pharmacy/records/')
    seen += [r['record_id'] for r in response.data['results']]
    response = api_client.get(response.data['next'])
    seen += [r['record_id'] for r in response.data['results']]

    assert len(seen) == 12
    assert len(set(seen)) == 12
    assert response.data['next'] is None
