from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('orders', '0002_create_order_number_sequence'),
    ]

    operations = [
        migrations.AddField(
            model_name='order',
            name='shipping_amount',
            field=models.DecimalField(decimal_places=2, default=0, help_text='Highest shipping price among the ordered products; never discounted', max_digits=10),
        ),
        migrations.AlterField(
            model_name='orderitem',
            name='customization',
            field=models.JSONField(blank=True, default=dict, help_text='Printed name, number, size, selected patches and extras'),
        ),
    ]
