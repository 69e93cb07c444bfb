from rest_framework import serializers

from .dispensing import DEFAULT_PAYMENT_MODE, OrderLine, OrderMeta
from .models import Medicine, DispenseRecord


class MedicineSerializer(serializers.ModelSerializer):
    med_id = serializers.UUIDField(source='id', read_only=True)

    class Meta:
        model = Medicine
        fields = '__all__'
        read_only_fields = ['med_id', 'created_at', 'updated_at', 'total_amount']


class DispenseRecordSerializer(serializers.ModelSerializer):
    record_id = serializers.UUIDField(source='id', read_only=True)

    class Meta:
        model = DispenseRecord
        fields = '__all__'
        read_only_fields = [f.name for f in DispenseRecord._meta.fields] + ['record_id']


class DispenseLineSerializer(serializers.Serializer):
    medicine = serializers.UUIDField()
    quantity = serializers.IntegerField()


class DispenseOrderSerializer(serializers.Serializer):
    # Business rules (blank patient, empty order, stock) are checked by the engine.
    patient_name = serializers.CharField(required=False, allow_blank=True, default='')
    patient_id = serializers.CharField(required=False, allow_blank=True, default='')
    doctor_name = serializers.CharField(required=False, allow_blank=True, default='')
    dispensed_by = serializers.CharField(required=False, allow_blank=True, default='')
    payment_mode = serializers.CharField(required=False, default=DEFAULT_PAYMENT_MODE)
    items = DispenseLineSerializer(many=True, required=False, default=list)

    def to_order(self, default_dispenser='Staff'):
        data = self.validated_data
        lines = [OrderLine(medicine_id=item['medicine'], quantity=item['quantity']) for item in data['items']]
        meta = OrderMeta(
            patient_name=data['patient_name'],
            patient_id=data['patient_id'],
            doctor_name=data['doctor_name'],
            dispensed_by=data['dispensed_by'] or default_dispenser,
            payment_mode=data['payment_mode'].strip().upper(),
        )
        return lines, meta
