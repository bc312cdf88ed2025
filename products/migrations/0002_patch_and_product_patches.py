import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Patch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for this record', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Inactive records are hidden from the storefront.')),
                ('title', models.CharField(max_length=120)),
                ('description', models.TextField(blank=True)),
                ('patch_type', models.CharField(choices=[('champions-league', 'Champions League'), ('serie-a', 'Serie A'), ('coppa-italia', 'Coppa Italia'), ('europa-league', 'Europa League'), ('other', 'Other')], default='other', max_length=20)),
                ('price', models.DecimalField(decimal_places=2, default=3, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('sort_order', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Patch',
                'verbose_name_plural': 'Patches',
                'ordering': ['sort_order', 'title'],
            },
        ),
        migrations.AlterField(
            model_name='product',
            name='shipping_price',
            field=models.DecimalField(decimal_places=2, default=0, help_text='Charged once per order; the highest price among the ordered products applies', max_digits=10, validators=[django.core.validators.MinValueValidator(0)]),
        ),
        migrations.AddField(
            model_name='product',
            name='patches',
            field=models.ManyToManyField(blank=True, help_text='Patches customers may add to this jersey', related_name='products', to='products.patch'),
        ),
    ]
