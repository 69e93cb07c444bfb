from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from core.models import BaseModel


class Medicine(BaseModel):
    AVAILABLE = 'available'
    OUT_OF_STOCK = 'out_of_stock'
    COMPLETED = 'completed'
    STATUS_CHOICES = (
        (AVAILABLE, 'Available'),
        (OUT_OF_STOCK, 'Out of Stock'),
        (COMPLETED, 'Completed'),
    )

    name = models.CharField(max_length=255)
    batch_number = models.CharField(max_length=50)
    hsn_code = models.CharField(max_length=20, blank=True)
    expiry_date = models.DateField()

    # Signed on purpose: two operators dispensing the same batch can race below zero.
    quantity = models.IntegerField(default=0)

    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0, help_text="price + gst_amount")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.batch_number})"


class DispenseRecord(BaseModel):
    """
    One line of a dispensing event. Append-only: rows are written once by the
    dispensing engine and never updated or deleted afterwards.
    """
    CASH = 'CASH'
    PAYMENT_MODE_CHOICES = (
        ('CASH', 'Cash'),
        ('UPI', 'UPI'),
        ('BOTH CASH/UPI', 'Both Cash/UPI'),
        ('AROGYAA SREE', 'Arogyaa Sree'),
        ('ECHS', 'ECHS'),
        ('ZERO FEE', 'Zero Fee'),
    )

    # Not a foreign key: the medicine may be edited or deleted later.
    medicine_id = models.UUIDField(db_index=True)

    # Snapshot of the medicine at dispense time
    medicine_name = models.CharField(max_length=255)
    batch_number = models.CharField(max_length=50, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    dispensed_date = models.DateTimeField(default=timezone.now, db_index=True)
    bill_number = models.CharField(max_length=20, db_index=True)

    patient_name = models.CharField(max_length=255)
    patient_id = models.CharField(max_length=50, blank=True)
    doctor_name = models.CharField(max_length=255, blank=True)
    dispensed_by = models.CharField(max_length=150, default='Staff')
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default=CASH)

    class Meta:
        ordering = ['-dispensed_date']

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Dispensing records are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Dispensing records are append-only and cannot be deleted.")

    def __str__(self):
        return f"{self.bill_number}: {self.medicine_name} x {self.quantity}"
