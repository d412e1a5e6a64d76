from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('dealsync', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='OrderCache',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(max_length=32, unique=True)),
                ('order_number', models.CharField(blank=True, max_length=32)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at_store', models.DateTimeField(blank=True, null=True)),
                ('contact_name', models.CharField(blank=True, max_length=255, null=True)),
                ('shipping_address', models.JSONField(blank=True, null=True)),
                ('province', models.CharField(blank=True, max_length=255, null=True)),
                ('products', models.JSONField(blank=True, default=list)),
                ('subtotal', models.BigIntegerField(blank=True, null=True)),
                ('shipping_cost_customer', models.BigIntegerField(blank=True, null=True)),
                ('coupon', models.CharField(blank=True, max_length=64, null=True)),
                ('promotional_discount', models.BigIntegerField(blank=True, null=True)),
                ('total_discount_amount', models.BigIntegerField(blank=True, null=True)),
                ('discount_coupon', models.BigIntegerField(blank=True, null=True)),
                ('discount_gateway', models.BigIntegerField(blank=True, null=True)),
                ('total', models.BigIntegerField(blank=True, null=True)),
                ('payment_details', models.JSONField(blank=True, null=True)),
                ('payment_method', models.CharField(blank=True, max_length=64, null=True)),
                ('payment_status', models.CharField(blank=True, max_length=32, null=True)),
                ('status', models.CharField(blank=True, max_length=32, null=True)),
                ('fulfillment_status', models.CharField(blank=True, max_length=32, null=True)),
                ('api_updated_at', models.DateTimeField(blank=True, null=True)),
                ('last_synced_at', models.DateTimeField()),
                ('sync_status', models.CharField(default='synced', max_length=16)),
            ],
            options={
                'db_table': 'nuvemshop_orders',
            },
        ),
        migrations.CreateModel(
            name='CouponCache',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('coupon_id', models.CharField(max_length=32, unique=True)),
                ('code', models.CharField(max_length=64)),
                ('discount_type', models.CharField(blank=True, max_length=32, null=True)),
                ('percentage', models.IntegerField(default=0)),
                ('amount', models.BigIntegerField(default=0)),
                ('valid_from', models.DateField(blank=True, null=True)),
                ('valid_until', models.DateField(blank=True, null=True)),
                ('max_uses', models.IntegerField(blank=True, null=True)),
                ('current_uses', models.IntegerField(default=0)),
                ('is_active', models.BooleanField(default=False)),
                ('last_synced_at', models.DateTimeField()),
                ('sync_status', models.CharField(default='synced', max_length=16)),
            ],
            options={
                'db_table': 'nuvemshop_coupons',
            },
        ),
    ]
