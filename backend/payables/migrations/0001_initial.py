"""
Initial migration for accounts payable: invoices, payment batches and the
generated ledger lines.
"""
import decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cogs', '0001_initial'),
        ('expenses', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='APInvoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(max_length=100)),
                ('invoice_date', models.DateField()),
                ('due_date', models.DateField(blank=True, null=True)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('approved', 'Approved'), ('posted', 'Posted'), ('rejected', 'Rejected')], default='draft', max_length=20)),
                ('mapping_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partially mapped'), ('complete', 'Complete')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('posted_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ap_invoices', to='cogs.vendor')),
            ],
            options={
                'verbose_name': 'AP Invoice',
                'verbose_name_plural': 'AP Invoices',
                'ordering': ['-invoice_date', '-id'],
                'indexes': [
                    models.Index(fields=['status'], name='payables_ap_status_4b1342_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('vendor', 'invoice_number'), name='unique_invoice_number_per_vendor'),
                ],
            },
        ),

        # APInvoiceLine - shares the mappable line columns with expense line items
        migrations.CreateModel(
            name='APInvoiceLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('line_number', models.PositiveIntegerField(blank=True, null=True)),
                ('raw_vendor_code', models.CharField(blank=True, max_length=100)),
                ('raw_description', models.CharField(max_length=500)),
                ('quantity', models.DecimalField(decimal_places=4, default=decimal.Decimal('1'), max_digits=12)),
                ('unit', models.CharField(blank=True, max_length=20)),
                ('unit_price', models.DecimalField(decimal_places=4, default=decimal.Decimal('0'), max_digits=12)),
                ('line_total', models.DecimalField(decimal_places=2, max_digits=12)),
                ('mapping_confidence', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), help_text='0 until mapped; 1.0 for manual mappings', max_digits=3)),
                ('mapping_source', models.CharField(blank=True, choices=[('auto', 'Auto-mapped by rule'), ('manual', 'Set manually')], max_length=10)),
                ('is_locked', models.BooleanField(default=False)),
                ('mapped_at', models.DateTimeField(blank=True, null=True)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='payables.apinvoice')),
                ('mapped_category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='expenses.expensecategory')),
                ('mapped_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='cogs.ingredient')),
                ('mapping_rule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='expenses.mappingrule')),
            ],
            options={
                'verbose_name': 'AP Invoice Line',
                'verbose_name_plural': 'AP Invoice Lines',
                'ordering': ['invoice', 'line_number', 'id'],
                'abstract': False,
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(mapped_ingredient__isnull=True) | models.Q(mapped_category__isnull=True),
                        name='payables_apinvoiceline_single_target',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(mapping_confidence__gte=0) & models.Q(mapping_confidence__lte=1),
                        name='payables_apinvoiceline_confidence_range',
                    ),
                ],
            },
        ),

        migrations.CreateModel(
            name='PaymentBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(max_length=40, unique=True)),
                ('batch_date', models.DateField()),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('check', 'Check'), ('credit_card', 'Credit Card'), ('debit_card', 'Debit Card'), ('bank_transfer', 'Bank Transfer'), ('vendor_credit', 'Vendor Credit')], default='check', max_length=20)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('approved', 'Approved'), ('processing', 'Processing'), ('completed', 'Completed')], default='draft', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('check_start_number', models.PositiveIntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Payment Batch',
                'verbose_name_plural': 'Payment Batches',
                'ordering': ['-batch_date', '-id'],
            },
        ),

        migrations.CreateModel(
            name='PaymentBatchItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('check_number', models.PositiveIntegerField(blank=True, null=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='payables.paymentbatch')),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payment_items', to='payables.apinvoice')),
            ],
            options={
                'verbose_name': 'Payment Batch Item',
                'verbose_name_plural': 'Payment Batch Items',
                'ordering': ['batch', 'id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name='payment_item_amount_positive'),
                ],
            },
        ),

        migrations.CreateModel(
            name='LedgerLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entry_date', models.DateField()),
                ('account_code', models.CharField(max_length=20)),
                ('debit', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('credit', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('description', models.CharField(max_length=300)),
                ('source', models.CharField(choices=[('ap_invoice', 'AP invoice posting'), ('payment', 'Payment')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('batch_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='ledger_lines', to='payables.paymentbatchitem')),
                ('invoice', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='ledger_lines', to='payables.apinvoice')),
            ],
            options={
                'verbose_name': 'Ledger Line',
                'verbose_name_plural': 'Ledger Lines',
                'ordering': ['entry_date', 'id'],
            },
        ),
    ]
