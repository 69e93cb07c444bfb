import logging

from asgiref.sync import async_to_sync
from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.pagination import CursorPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError, PartialDispenseFailure
from core.permissions import IsPharmacistOrAdmin, IsPharmacyStaff
from .dispensing import DispensingEngine
from .filters import MedicineFilter
from .models import Medicine, DispenseRecord
from .pricing import PRICE
from .receipts import build_receipt, render_receipt_html
from .serializers import MedicineSerializer, DispenseRecordSerializer, DispenseOrderSerializer
from .services import InventoryService
from .stores import ORMDispenseRecordStore

logger = logging.getLogger(__name__)


def _emit_dispense_update(bill_number, records):
    """Tell connected screens that stock changed. Failure here never fails the sale."""
    try:
        from dispensary.sio import sio
        async_to_sync(sio.emit)('dispense_update', {
            'bill_number': bill_number,
            'medicine_ids': sorted({str(r.medicine_id) for r in records}),
        })
    except Exception as e:
        logger.warning(f"Socket emit error for {bill_number}: {e}")


class MedicineViewSet(viewsets.ModelViewSet):
    """
    Stock list and maintenance. Writes go through InventoryService so pricing
    and validation are applied the same way as everywhere else.
    """
    queryset = Medicine.objects.all()
    serializer_class = MedicineSerializer
    permission_classes = [IsPharmacistOrAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = MedicineFilter
    search_fields = ['name', 'batch_number']
    ordering_fields = ['name', 'expiry_date', 'quantity', 'updated_at']
    ordering = ['name']

    def get_service(self):
        return InventoryService()

    def create(self, request, *args, **kwargs):
        medicine = self.get_service().add_medicine(
            request.data, request.data.get('pricing_source') or None
        )
        return Response(self.get_serializer(medicine).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        medicine = self.get_service().update_medicine(
            kwargs['pk'], request.data, request.data.get('pricing_source') or None
        )
        return Response(self.get_serializer(medicine).data)

    def destroy(self, request, *args, **kwargs):
        self.get_service().delete_medicine(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        medicine = self.get_service().set_status(pk, request.data.get('status'))
        return Response(self.get_serializer(medicine).data)

    @action(detail=False, methods=['post'], url_path='price-preview')
    def price_preview(self, request):
        """
        Live GST calculation for the medicine form.
        Input: { "price": 100, "gst_percentage": 12, "gst_amount": 0, "pricing_source": "price" }
        """
        priced = InventoryService.price_preview(request.data, request.data.get('pricing_source') or PRICE)
        return Response(priced)


class DispenseView(APIView):
    permission_classes = [IsPharmacyStaff]

    def get_engine(self):
        return DispensingEngine()

    def post(self, request, format=None):
        serializer = DispenseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user
        lines, meta = serializer.to_order(default_dispenser=user.get_full_name() or user.get_username())

        try:
            result = self.get_engine().dispense(lines, meta)
        except PartialDispenseFailure as exc:
            _emit_dispense_update(exc.bill_number, exc.committed + [f.record for f in exc.failed if f.record])
            raise

        _emit_dispense_update(result.bill_number, result.records)
        return Response({
            'bill_number': result.bill_number,
            'dispensed_at': result.dispensed_at,
            'receipt_total': result.receipt_total,
            'records': DispenseRecordSerializer(result.records, many=True).data,
            'receipt': result.receipt,
        }, status=status.HTTP_201_CREATED)


class DispenseHistoryPagination(CursorPagination):
    # lines of one bill share dispensed_date
    ordering = ('-dispensed_date', '-id')
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


class DispenseRecordViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = DispenseRecord.objects.all()
    serializer_class = DispenseRecordSerializer
    permission_classes = [IsPharmacyStaff]
    pagination_class = DispenseHistoryPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['bill_number', 'payment_mode', 'medicine_id']
    search_fields = ['patient_name', 'patient_id', 'medicine_name', 'bill_number']


class ReceiptView(APIView):
    permission_classes = [IsPharmacyStaff]

    def get_receipt(self, bill_number):
        records = ORMDispenseRecordStore().for_bill(bill_number)
        if not records:
            raise NotFoundError('Bill', bill_number)
        return build_receipt(records)

    def get(self, request, bill_number):
        return Response(self.get_receipt(bill_number))


class ReceiptPrintView(ReceiptView):
    def get(self, request, bill_number):
        return HttpResponse(render_receipt_html(self.get_receipt(bill_number)))
