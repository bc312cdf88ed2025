from django.db import migrations


def create_sequence(apps, schema_editor):
    if schema_editor.connection.vendor == 'postgresql':
        schema_editor.execute("CREATE SEQUENCE IF NOT EXISTS order_order_number_seq START 1;")


def drop_sequence(apps, schema_editor):
    if schema_editor.connection.vendor == 'postgresql':
        schema_editor.execute("DROP SEQUENCE IF EXISTS order_order_number_seq;")


class Migration(migrations.Migration):
    """Order numbers come from a sequence on PostgreSQL, see get_order_number."""

    dependencies = [
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_sequence, drop_sequence),
    ]
