from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import MedicineViewSet, DispenseRecordViewSet, DispenseView, ReceiptView, ReceiptPrintView

router = DefaultRouter()
router.register(r'medicines', MedicineViewSet, basename='medicines')
router.register(r'records', DispenseRecordViewSet, basename='records')

urlpatterns = [
    path('dispense/', DispenseView.as_view(), name='dispense'),
    path('receipts/<str:bill_number>/', ReceiptView.as_view(), name='receipt'),
    path('receipts/<str:bill_number>/print/', ReceiptPrintView.as_view(), name='receipt-print'),
    path('', include(router.urls)),
]
