from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cogs', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SalesRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True)),
                ('quantity_sold', models.PositiveIntegerField()),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('menu_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales_records', to='cogs.menuitem')),
            ],
            options={
                'verbose_name': 'Sales Record',
                'verbose_name_plural': 'Sales Records',
                'ordering': ['-date', 'menu_item'],
                'constraints': [
                    models.UniqueConstraint(fields=('date', 'menu_item'), name='unique_sales_per_day_menu_item'),
                    models.CheckConstraint(condition=models.Q(quantity_sold__gt=0), name='sales_quantity_positive'),
                ],
            },
        ),
    ]
