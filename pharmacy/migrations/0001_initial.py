import django.core.validators
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='DispenseRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('medicine_id', models.UUIDField(db_index=True)),
                ('medicine_name', models.CharField(max_length=255)),
                ('batch_number', models.CharField(blank=True, max_length=50)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('gst_amount', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('gst_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('total_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('dispensed_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('bill_number', models.CharField(db_index=True, max_length=20)),
                ('patient_name', models.CharField(max_length=255)),
                ('patient_id', models.CharField(blank=True, max_length=50)),
                ('doctor_name', models.CharField(blank=True, max_length=255)),
                ('dispensed_by', models.CharField(default='Staff', max_length=150)),
                ('payment_mode', models.CharField(choices=[('CASH', 'Cash'), ('UPI', 'UPI'), ('BOTH CASH/UPI', 'Both Cash/UPI'), ('AROGYAA SREE', 'Arogyaa Sree'), ('ECHS', 'ECHS'), ('ZERO FEE', 'Zero Fee')], default='CASH', max_length=20)),
            ],
            options={
                'ordering': ['-dispensed_date'],
            },
        ),
        migrations.CreateModel(
            name='Medicine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=255)),
                ('batch_number', models.CharField(max_length=50)),
                ('hsn_code', models.CharField(blank=True, max_length=20)),
                ('expiry_date', models.DateField()),
                ('quantity', models.IntegerField(default=0)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('gst_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5, validators=[django.core.validators.MinValueValidator(0)])),
                ('gst_amount', models.DecimalField(decimal_places=2, default=0, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('total_amount', models.DecimalField(decimal_places=2, default=0, help_text='price + gst_amount', max_digits=10)),
                ('status', models.CharField(choices=[('available', 'Available'), ('out_of_stock', 'Out of Stock'), ('completed', 'Completed')], default='available', max_length=20)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
    ]
