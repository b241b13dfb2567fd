"""
Initial migration for the COGS app: vendors, ingredients, menu items and recipes.
"""
import decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Vendor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=40)),
                ('tax_id', models.CharField(blank=True, help_text='EIN/SSN used for 1099 reporting', max_length=40)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name': 'Vendor',
                'verbose_name_plural': 'Vendors',
                'ordering': ['name'],
            },
        ),

        # Ingredient - purchased stock, archived rather than deleted
        migrations.CreateModel(
            name='Ingredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Inactive records are archived and hidden from pickers.')),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('archived_by', models.CharField(blank=True, default='', max_length=150)),
                ('name', models.CharField(max_length=200)),
                ('purchase_price', models.DecimalField(decimal_places=4, help_text='Price paid per purchase unit', max_digits=12)),
                ('purchase_unit', models.CharField(help_text="Unit the ingredient is bought in, e.g. 'lb', 'case'", max_length=20)),
                ('usage_unit', models.CharField(help_text="Unit recipes measure in, e.g. 'oz', 'each'", max_length=20)),
                ('unit_conversion_factor', models.DecimalField(decimal_places=6, default=decimal.Decimal('1'), help_text='Usage units per purchase unit, e.g. 16 for lb → oz', max_digits=14)),
                ('yield_percent', models.DecimalField(decimal_places=4, default=decimal.Decimal('1.0'), help_text='Usable fraction after trim/prep loss (0 < v ≤ 1)', max_digits=5)),
                ('last_price_update', models.DateField(default=django.utils.timezone.localdate, help_text='Date the purchase price was last confirmed')),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ingredients', to='cogs.vendor')),
            ],
            options={
                'verbose_name': 'Ingredient',
                'verbose_name_plural': 'Ingredients',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['vendor'], name='cogs_ingred_vendor__35629e_idx'),
                    models.Index(fields=['last_price_update'], name='cogs_ingred_last_pr_917987_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(purchase_price__gte=0), name='ingredient_price_non_negative'),
                    models.CheckConstraint(condition=models.Q(unit_conversion_factor__gt=0), name='ingredient_conversion_positive'),
                    models.CheckConstraint(condition=models.Q(yield_percent__gt=0) & models.Q(yield_percent__lte=1), name='ingredient_yield_in_range'),
                ],
            },
        ),

        # MenuItem - plate cost is derived from recipe lines, never stored
        migrations.CreateModel(
            name='MenuItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Inactive records are archived and hidden from pickers.')),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('archived_by', models.CharField(blank=True, default='', max_length=150)),
                ('name', models.CharField(max_length=200)),
                ('selling_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('q_factor', models.DecimalField(decimal_places=4, default=decimal.Decimal('0'), help_text='Flat per-plate cost for untracked condiments and packaging', max_digits=10)),
                ('target_cost_percent', models.DecimalField(decimal_places=2, default=decimal.Decimal('35.00'), help_text='Food cost percent above which the item is flagged', max_digits=5)),
                ('estimated_prep_time_minutes', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), help_text='Hands-on minutes per plate, drives the labor estimate', max_digits=6)),
                ('revenue_category', models.CharField(choices=[('food', 'Food'), ('beverage', 'Beverage'), ('alcohol', 'Alcohol'), ('catering', 'Catering'), ('other', 'Other')], default='food', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Menu Item',
                'verbose_name_plural': 'Menu Items',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(selling_price__gte=0), name='menu_item_price_non_negative'),
                    models.CheckConstraint(condition=models.Q(q_factor__gte=0), name='menu_item_q_factor_non_negative'),
                    models.CheckConstraint(condition=models.Q(estimated_prep_time_minutes__gte=0), name='menu_item_prep_time_non_negative'),
                ],
            },
        ),

        migrations.CreateModel(
            name='RecipeLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_used', models.DecimalField(decimal_places=4, help_text='Usage units per plate', max_digits=12)),
                ('ingredient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='recipe_lines', to='cogs.ingredient')),
                ('menu_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='recipe_lines', to='cogs.menuitem')),
            ],
            options={
                'verbose_name': 'Recipe Line',
                'verbose_name_plural': 'Recipe Lines',
                'constraints': [
                    models.UniqueConstraint(fields=('menu_item', 'ingredient'), name='unique_ingredient_per_menu_item'),
                    models.CheckConstraint(condition=models.Q(quantity_used__gt=0), name='recipe_line_quantity_positive'),
                ],
            },
        ),
    ]
