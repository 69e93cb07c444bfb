import csv
from datetime import timedelta

from django.http import HttpResponse
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsPharmacyStaff
from pharmacy.models import Medicine
from pharmacy.services import InventoryService
from pharmacy.stores import ORMDispenseRecordStore
from .analytics import aggregate, resolve_range

EXPIRY_WINDOW_DAYS = 90


def expiry_flag(expiry_date, today):
    if expiry_date < today:
        return 'expired'
    if expiry_date <= today + timedelta(days=EXPIRY_WINDOW_DAYS):
        return 'expiring_soon'
    return ''


class BaseReportView(APIView):
    permission_classes = [IsPharmacyStaff]

    def get_date_range(self, request):
        params = request.query_params
        name = params.get('range') or ('custom' if params.get('start_date') else 'today')
        # the frontend sends literal "null"/"undefined" for cleared pickers
        start_date = params.get('start_date')
        end_date = params.get('end_date') or start_date
        if start_date in ('null', 'undefined'):
            start_date = None
        if end_date in ('null', 'undefined'):
            end_date = None
        return name, resolve_range(name, start_date, end_date)

    def export_csv(self, filename, headers, data):
        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="{filename}.csv"'
        writer = csv.writer(response)
        writer.writerow(headers)
        for row in data:
            writer.writerow(row)
        return response


class DispensingAnalyticsView(BaseReportView):
    def get(self, request):
        name, (start, end) = self.get_date_range(request)
        summary = aggregate(ORMDispenseRecordStore(), start, end)

        if request.query_params.get('export') == 'csv':
            data = [[e['mode'], e['count'], e['amount']] for e in summary['breakdown']]
            data.append(['TOTAL', sum(e['count'] for e in summary['breakdown']), summary['total_amount']])
            return self.export_csv("dispensing_analytics", ["Payment Mode", "Records", "Amount"], data)

        return Response({
            "range": name,
            "start": start,
            "end": end,
            "report_type": "Dispensing Analytics",
            "total_amount": summary['total_amount'],
            "breakdown": summary['breakdown'],
        })


class DispensingSalesReportView(BaseReportView):
    def get(self, request):
        name, (start, end) = self.get_date_range(request)
        records = ORMDispenseRecordStore().between(start, end)

        if request.query_params.get('export') == 'csv':
            data = [[r.bill_number, r.dispensed_date, r.patient_name, r.medicine_name, r.batch_number,
                     r.quantity, r.total_amount, r.payment_mode] for r in records]
            return self.export_csv(
                "dispensing_sales",
                ["Bill", "Date", "Patient", "Medicine", "Batch", "Qty", "Total", "Payment Mode"],
                data,
            )

        details = [{
            "id": str(r.id),
            "bill_number": r.bill_number,
            "patient": r.patient_name,
            "medicine": r.medicine_name,
            "qty": r.quantity,
            "total": r.total_amount,
            "payment_mode": r.payment_mode,
            "date": r.dispensed_date,
        } for r in records]

        return Response({
            "range": name,
            "start": start,
            "end": end,
            "report_type": "Dispensing Sales",
            "details": details,
        })


class StockReportView(BaseReportView):
    def get(self, request):
        medicines = InventoryService().list_medicines(
            status=request.query_params.get('status'),
            search=request.query_params.get('search'),
        )
        today = timezone.localdate()

        if request.query_params.get('export') == 'csv':
            data = [[m.name, m.batch_number, m.hsn_code, m.expiry_date, m.quantity, m.price,
                     m.gst_percentage, m.gst_amount, m.total_amount, m.get_status_display(),
                     expiry_flag(m.expiry_date, today)] for m in medicines]
            return self.export_csv(
                "stock_report",
                ["Medicine", "Batch", "HSN", "Expiry", "Qty", "Price", "GST %", "GST Amount", "Total",
                 "Status", "Expiry Flag"],
                data,
            )

        details = [{
            "id": str(m.id),
            "item_name": m.name,
            "batch_number": m.batch_number,
            "hsn_code": m.hsn_code,
            "expiry_date": m.expiry_date,
            "expiry_flag": expiry_flag(m.expiry_date, today),
            "qty": m.quantity,
            "price": m.price,
            "gst_percentage": m.gst_percentage,
            "gst_amount": m.gst_amount,
            "total_amount": m.total_amount,
            "status": m.status,
        } for m in medicines]

        return Response({
            "report_type": "Stock Report",
            "details": details,
        })


class ExpiryReportView(BaseReportView):
    def get(self, request):
        today = timezone.localdate()
        target_date = today + timedelta(days=EXPIRY_WINDOW_DAYS)
        stocks = Medicine.objects.filter(expiry_date__lte=target_date).order_by('expiry_date')

        if request.query_params.get('export') == 'csv':
            data = [[s.name, s.batch_number, s.expiry_date, s.quantity, s.total_amount] for s in stocks]
            return self.export_csv("expiry_report", ["Item", "Batch", "Expiry", "Qty Available", "Total"], data)

        details = [{
            "id": str(s.id),
            "item_name": s.name,
            "batch_number": s.batch_number,
            "expiry_date": s.expiry_date,
            "expiry_flag": expiry_flag(s.expiry_date, today),
            "qty": s.quantity,
            "total_amount": s.total_amount,
        } for s in stocks]

        return Response({
            "report_type": f"Expiry Report (Expiring within {EXPIRY_WINDOW_DAYS} days)",
            "details": details,
        })
