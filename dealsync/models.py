from django.db import models
from django.db.models import Q

from .transformer import cents_to_display


class DealRowBase(models.Model):
    """Columns shared by every cache table fed from CRM deals. `value` is stored in cents."""

    deal_id = models.CharField(max_length=32, unique=True)
    title = models.CharField(max_length=255, blank=True)
    value = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=8, default='BRL')
    status = models.CharField(max_length=16, null=True, blank=True)
    stage_id = models.CharField(max_length=32, null=True, blank=True)
    contact_id = models.CharField(max_length=32, null=True, blank=True)
    organization_id = models.CharField(max_length=32, null=True, blank=True)
    created_date = models.DateTimeField(null=True, blank=True)
    api_updated_at = models.DateTimeField(null=True, blank=True)
    last_synced_at = models.DateTimeField()
    sync_status = models.CharField(max_length=16, default='synced')

    class Meta:
        abstract = True

    @property
    def display_value(self):
        return cents_to_display(self.value)

    def __str__(self):
        return f"{self.deal_id} ({self.title})"


class DealCache(DealRowBase):
    closing_date = models.DateField(null=True, blank=True, db_index=True)
    estado = models.CharField(max_length=255, null=True, blank=True)
    quantidade_pares = models.CharField(max_length=255, null=True, blank=True)
    vendedor = models.CharField(max_length=255, null=True, blank=True)
    designer = models.CharField(max_length=255, null=True, blank=True)
    utm_source = models.CharField(max_length=255, null=True, blank=True)
    utm_medium = models.CharField(max_length=255, null=True, blank=True)
    custom_field_54 = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = 'deals_cache'


class DealLive(DealRowBase):
    closing_date = models.DateField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = 'deals_live'


class ProgramacaoCache(DealRowBase):
    data_embarque = models.CharField(max_length=255, null=True, blank=True)
    estado = models.CharField(max_length=255, null=True, blank=True)
    quantidade_pares = models.CharField(max_length=255, null=True, blank=True)
    vendedor = models.CharField(max_length=255, null=True, blank=True)
    designer = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = 'programacao_cache'


class ProductCache(models.Model):
    product_id = models.CharField(max_length=32, unique=True)
    name_pt = models.CharField(max_length=255, null=True, blank=True)
    brand = models.CharField(max_length=255, null=True, blank=True)
    description = models.TextField(null=True, blank=True)
    handle = models.CharField(max_length=255, null=True, blank=True)
    price = models.BigIntegerField(default=0)
    variant_count = models.IntegerField(default=0)
    featured_image_src = models.CharField(max_length=500, null=True, blank=True)
    published = models.BooleanField(default=False)
    free_shipping = models.BooleanField(default=False)
    api_updated_at = models.DateTimeField(null=True, blank=True)
    last_synced_at = models.DateTimeField()
    sync_status = models.CharField(max_length=16, default='synced')

    class Meta:
        db_table = 'nuvemshop_products'

    @property
    def display_price(self):
        return cents_to_display(self.price)

    def __str__(self):
        return f"{self.product_id} ({self.name_pt})"


class OrderCache(models.Model):
    """Store orders. Every amount is stored in cents; null when the store omits it."""

    order_id = models.CharField(max_length=32, unique=True)
    order_number = models.CharField(max_length=32, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at_store = models.DateTimeField(null=True, blank=True)
    contact_name = models.CharField(max_length=255, null=True, blank=True)
    shipping_address = models.JSONField(null=True, blank=True)
    province = models.CharField(max_length=255, null=True, blank=True)
    products = models.JSONField(default=list, blank=True)
    subtotal = models.BigIntegerField(null=True, blank=True)
    shipping_cost_customer = models.BigIntegerField(null=True, blank=True)
    coupon = models.CharField(max_length=64, null=True, blank=True)
    promotional_discount = models.BigIntegerField(null=True, blank=True)
    total_discount_amount = models.BigIntegerField(null=True, blank=True)
    discount_coupon = models.BigIntegerField(null=True, blank=True)
    discount_gateway = models.BigIntegerField(null=True, blank=True)
    total = models.BigIntegerField(null=True, blank=True)
    payment_details = models.JSONField(null=True, blank=True)
    payment_method = models.CharField(max_length=64, null=True, blank=True)
    payment_status = models.CharField(max_length=32, null=True, blank=True)
    status = models.CharField(max_length=32, null=True, blank=True)
    fulfillment_status = models.CharField(max_length=32, null=True, blank=True)
    api_updated_at = models.DateTimeField(null=True, blank=True)
    last_synced_at = models.DateTimeField()
    sync_status = models.CharField(max_length=16, default='synced')

    class Meta:
        db_table = 'nuvemshop_orders'

    @property
    def display_total(self):
        return cents_to_display(self.total) if self.total is not None else None

    def __str__(self):
        return f"{self.order_id} (#{self.order_number})"


class CouponCache(models.Model):
    coupon_id = models.CharField(max_length=32, unique=True)
    code = models.CharField(max_length=64)
    discount_type = models.CharField(max_length=32, null=True, blank=True)
    percentage = models.IntegerField(default=0)
    amount = models.BigIntegerField(default=0)
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    max_uses = models.IntegerField(null=True, blank=True)
    current_uses = models.IntegerField(default=0)
    is_active = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField()
    sync_status = models.CharField(max_length=16, default='synced')

    class Meta:
        db_table = 'nuvemshop_coupons'

    def __str__(self):
        return self.code


class SyncLog(models.Model):
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'
    STATUS_CHOICES = [
        (RUNNING, 'Running'),
        (COMPLETED, 'Completed'),
        (FAILED, 'Failed'),
    ]

    sync_type = models.CharField(max_length=32)
    sync_started_at = models.DateTimeField()
    sync_completed_at = models.DateTimeField(null=True, blank=True)
    sync_status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=RUNNING)
    records_processed = models.IntegerField(default=0)
    records_upserted = models.IntegerField(default=0)
    error_count = models.IntegerField(default=0)
    error_message = models.TextField(blank=True)
    sync_duration_seconds = models.IntegerField(null=True, blank=True)

    class Meta:
        db_table = 'sync_log'
        ordering = ['-sync_started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['sync_type'],
                condition=Q(sync_status='running'),
                name='one_running_sync_per_type',
            ),
        ]

    def __str__(self):
        return f"{self.sync_type} - {self.sync_status} ({self.sync_started_at})"
