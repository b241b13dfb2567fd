import decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Employee',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('position', models.CharField(blank=True, max_length=100)),
                ('pay_rate', models.DecimalField(decimal_places=2, help_text='Default hourly rate', max_digits=8)),
                ('is_active', models.BooleanField(default=True)),
                ('hire_date', models.DateField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Employee',
                'verbose_name_plural': 'Employees',
                'ordering': ['last_name', 'first_name'],
            },
        ),
        migrations.CreateModel(
            name='PayrollRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('period_start', models.DateField()),
                ('period_end', models.DateField()),
                ('payment_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Payroll Run',
                'verbose_name_plural': 'Payroll Runs',
                'ordering': ['-period_end', '-id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(period_end__gte=models.F('period_start')), name='payroll_run_period_order'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PayrollRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('period_start', models.DateField()),
                ('period_end', models.DateField()),
                ('regular_hours', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=7)),
                ('overtime_hours', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=7)),
                ('hourly_rate', models.DecimalField(decimal_places=2, max_digits=8)),
                ('tips', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=10)),
                ('gross_pay', models.DecimalField(decimal_places=2, max_digits=12)),
                ('federal_withholding', models.DecimalField(decimal_places=2, max_digits=10)),
                ('state_withholding', models.DecimalField(decimal_places=2, max_digits=10)),
                ('social_security', models.DecimalField(decimal_places=2, max_digits=10)),
                ('medicare', models.DecimalField(decimal_places=2, max_digits=10)),
                ('net_pay', models.DecimalField(decimal_places=2, max_digits=12)),
                ('employer_social_security', models.DecimalField(decimal_places=2, max_digits=10)),
                ('employer_medicare', models.DecimalField(decimal_places=2, max_digits=10)),
                ('employer_futa', models.DecimalField(decimal_places=2, max_digits=10)),
                ('employer_suta', models.DecimalField(decimal_places=2, max_digits=10)),
                ('total_employer_cost', models.DecimalField(decimal_places=2, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('employee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payroll_records', to='payroll.employee')),
                ('run', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='records', to='payroll.payrollrun')),
            ],
            options={
                'verbose_name': 'Payroll Record',
                'verbose_name_plural': 'Payroll Records',
                'ordering': ['-period_end', 'employee'],
                'indexes': [
                    models.Index(fields=['period_start', 'period_end'], name='payroll_pay_period__0779e3_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('run', 'employee'), name='unique_employee_per_payroll_run'),
                ],
            },
        ),
    ]
