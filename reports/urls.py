from django.urls import path
from .views import DispensingAnalyticsView, DispensingSalesReportView, StockReportView, ExpiryReportView

urlpatterns = [
    path('analytics/', DispensingAnalyticsView.as_view(), name='dispensing-analytics'),
    path('sales/', DispensingSalesReportView.as_view(), name='dispensing-sales-report'),
    path('stock/', StockReportView.as_view(), name='stock-report'),
    path('expiry/', ExpiryReportView.as_view(), name='expiry-report'),
]
