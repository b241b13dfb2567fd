"""
Initial migration for the expenses app: categories, expenses, line items and
vendor mapping rules.
"""
import decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cogs', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ExpenseCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Inactive records are archived and hidden from pickers.')),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('archived_by', models.CharField(blank=True, default='', max_length=150)),
                ('name', models.CharField(max_length=200, unique=True)),
                ('expense_type', models.CharField(choices=[('cogs', 'Cost of Goods Sold'), ('operating', 'Operating'), ('marketing', 'Marketing'), ('payroll', 'Payroll'), ('other', 'Other')], default='operating', max_length=20)),
                ('tax_category', models.CharField(choices=[('advertising', 'Advertising (line 8)'), ('car_and_truck', 'Car and truck (line 9)'), ('commissions', 'Commissions and fees (line 10)'), ('contract_labor', 'Contract labor (line 11)'), ('depreciation', 'Depreciation (line 13)'), ('employee_benefits', 'Employee benefit programs (line 14)'), ('insurance', 'Insurance (line 15)'), ('mortgage_interest', 'Mortgage interest (line 16a)'), ('other_interest', 'Other interest (line 16b)'), ('legal_and_professional', 'Legal and professional (line 17)'), ('office_expense', 'Office expense (line 18)'), ('pension', 'Pension and profit-sharing (line 19)'), ('rent_vehicles', 'Rent - vehicles and equipment (line 20a)'), ('rent', 'Rent - other business property (line 20b)'), ('repairs', 'Repairs and maintenance (line 21)'), ('supplies', 'Supplies (line 22)'), ('taxes_and_licenses', 'Taxes and licenses (line 23)'), ('travel', 'Travel (line 24a)'), ('meals', 'Meals (line 24b)'), ('utilities', 'Utilities (line 25)'), ('other_expenses', 'Other expenses (line 27a)')], default='other_expenses', max_length=40)),
                ('is_tax_deductible', models.BooleanField(default=True)),
                ('budget_monthly', models.DecimalField(blank=True, decimal_places=2, help_text='Monthly budget used by budget-vs-actual', max_digits=12, null=True)),
                ('account_code', models.CharField(blank=True, help_text='Ledger account debited when invoices in this category are posted', max_length=20)),
                ('description', models.TextField(blank=True)),
            ],
            options={
                'verbose_name': 'Expense Category',
                'verbose_name_plural': 'Expense Categories',
                'ordering': ['name'],
            },
        ),

        migrations.CreateModel(
            name='Expense',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('expense_date', models.DateField(db_index=True)),
                ('description', models.CharField(max_length=500)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('payment_method', models.CharField(blank=True, choices=[('cash', 'Cash'), ('check', 'Check'), ('credit_card', 'Credit Card'), ('debit_card', 'Debit Card'), ('bank_transfer', 'Bank Transfer'), ('vendor_credit', 'Vendor Credit')], max_length=20)),
                ('reference_number', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='expenses', to='expenses.expensecategory')),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='expenses', to='cogs.vendor')),
            ],
            options={
                'verbose_name': 'Expense',
                'verbose_name_plural': 'Expenses',
                'ordering': ['-expense_date', '-id'],
                'indexes': [
                    models.Index(fields=['vendor', 'expense_date'], name='expenses_ex_vendor__4bc4fa_idx'),
                    models.Index(fields=['category', 'expense_date'], name='expenses_ex_categor_6b4e94_idx'),
                ],
            },
        ),

        # MappingRule - created before the line items that point back at it
        migrations.CreateModel(
            name='MappingRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('match_type', models.CharField(choices=[('exact_code', 'Exact vendor code'), ('exact_desc', 'Exact description'), ('contains', 'Description contains'), ('regex', 'Regular expression')], max_length=20)),
                ('match_value', models.CharField(max_length=500)),
                ('normalized_label', models.CharField(blank=True, help_text="Clean name for the item, e.g. 'Chicken breast'", max_length=200)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='mapping_rules', to='expenses.expensecategory')),
                ('ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='mapping_rules', to='cogs.ingredient')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='mapping_rules', to='cogs.vendor')),
            ],
            options={
                'verbose_name': 'Mapping Rule',
                'verbose_name_plural': 'Mapping Rules',
                'ordering': ['vendor', 'id'],
                'indexes': [
                    models.Index(fields=['vendor', 'active'], name='expenses_ma_vendor__3259e9_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(ingredient__isnull=False, category__isnull=True)
                            | models.Q(ingredient__isnull=True, category__isnull=False)
                        ),
                        name='mapping_rule_single_target',
                    ),
                ],
            },
        ),

        migrations.CreateModel(
            name='ExpenseLineItem',
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
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='expenses.expense')),
                ('mapped_category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='expenses.expensecategory')),
                ('mapped_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='cogs.ingredient')),
                ('mapping_rule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='%(app_label)s_%(class)s_lines', to='expenses.mappingrule')),
            ],
            options={
                'verbose_name': 'Expense Line Item',
                'verbose_name_plural': 'Expense Line Items',
                'ordering': ['expense', 'line_number', 'id'],
                'abstract': False,
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(mapped_ingredient__isnull=True) | models.Q(mapped_category__isnull=True),
                        name='expenses_expenselineitem_single_target',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(mapping_confidence__gte=0) & models.Q(mapping_confidence__lte=1),
                        name='expenses_expenselineitem_confidence_range',
                    ),
                ],
            },
        ),
    ]
