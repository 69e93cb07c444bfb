from django.contrib import admin
from .models import Medicine, DispenseRecord
from .pricing import PRICE, SOURCES, recalculate


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'batch_number', 'expiry_date', 'quantity', 'price', 'gst_percentage', 'total_amount', 'status')
    search_fields = ('name', 'batch_number', 'hsn_code')
    list_filter = ('status', 'expiry_date')
    readonly_fields = ('total_amount',)

    def save_model(self, request, obj, form, change):
        # derive the GST fields from whichever one was edited, price first
        changed = set(form.changed_data)
        source = next((field for field in SOURCES if field in changed), PRICE)
        for field, value in recalculate(obj.price, obj.gst_percentage, obj.gst_amount, source).items():
            setattr(obj, field, value)
        super().save_model(request, obj, form, change)


@admin.register(DispenseRecord)
class DispenseRecordAdmin(admin.ModelAdmin):
    list_display = ('bill_number', 'medicine_name', 'quantity', 'total_amount', 'payment_mode', 'patient_name', 'dispensed_date')
    search_fields = ('bill_number', 'patient_name', 'medicine_name')
    list_filter = ('payment_mode',)

    # append-only history
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
