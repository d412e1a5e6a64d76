"""
Sync target definitions.

Each target describes where records come from, how they are paginated,
which custom fields are joined onto them and which cache table they land in.
The pipeline itself is the same for all of them.
"""
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Optional

from .http_client import crm_client, shop_client
from .models import CouponCache, DealCache, DealLive, OrderCache, ProductCache, ProgramacaoCache
from .transformer import transform_coupon, transform_deals, transform_order, transform_product

PROBE = 'probe'
WALK = 'walk'
NUMBERED = 'numbered'
PER_RECORD = 'per_record'

WON_STATUS = '1'

DEALS_FIELD_MAP = {
    5: 'closing_date',
    25: 'estado',
    39: 'quantidade_pares',
    45: 'vendedor',
    47: 'designer',
    49: 'utm_source',
    50: 'utm_medium',
    54: 'custom_field_54',
}

PROGRAMACAO_FIELD_MAP = {
    6: 'estado',
    7: 'quantidade_pares',
    8: 'vendedor',
    9: 'designer',
    54: 'data_embarque',
}

LIVE_FIELD_MAP = {
    5: 'closing_date',
}


@dataclass(frozen=True)
class CustomFieldSource:
    path: str = 'dealCustomFieldData'
    key: str = 'dealCustomFieldData'
    mode: str = PROBE


@dataclass(frozen=True)
class SyncTarget:
    name: str
    client_factory: Callable
    records_path: str
    records_key: str
    model: type
    unique_field: str
    build_rows: Callable
    pagination: str = PROBE
    list_params: dict = field(default_factory=dict)
    custom_fields: Optional[CustomFieldSource] = None
    clear_first: bool = False
    invalidates_read_cache: bool = False


def store_rows(transform):
    """Row builder for store records, which carry no custom fields."""
    def build(records, custom_field_entries, synced_at=None):
        return [transform(raw, synced_at) for raw in records]
    return build


TARGETS = {
    target.name: target
    for target in (
        SyncTarget(
            name='deals',
            client_factory=crm_client,
            records_path='deals',
            records_key='deals',
            model=DealCache,
            unique_field='deal_id',
            build_rows=partial(transform_deals, field_map=DEALS_FIELD_MAP),
            custom_fields=CustomFieldSource(),
            invalidates_read_cache=True,
        ),
        SyncTarget(
            name='programacao',
            client_factory=crm_client,
            records_path='deals',
            records_key='deals',
            model=ProgramacaoCache,
            unique_field='deal_id',
            build_rows=partial(transform_deals, field_map=PROGRAMACAO_FIELD_MAP),
            pagination=WALK,
            list_params={'filters[status]': WON_STATUS},
            custom_fields=CustomFieldSource(mode=PER_RECORD),
        ),
        SyncTarget(
            name='deals_live',
            client_factory=crm_client,
            records_path='deals',
            records_key='deals',
            model=DealLive,
            unique_field='deal_id',
            build_rows=partial(transform_deals, field_map=LIVE_FIELD_MAP),
            custom_fields=CustomFieldSource(),
            clear_first=True,
        ),
        SyncTarget(
            name='products',
            client_factory=shop_client,
            records_path='products',
            records_key='products',
            model=ProductCache,
            unique_field='product_id',
            build_rows=store_rows(transform_product),
            pagination=NUMBERED,
        ),
        SyncTarget(
            name='orders',
            client_factory=shop_client,
            records_path='orders',
            records_key='orders',
            model=OrderCache,
            unique_field='order_id',
            build_rows=store_rows(transform_order),
            pagination=NUMBERED,
        ),
        SyncTarget(
            name='coupons',
            client_factory=shop_client,
            records_path='coupons',
            records_key='coupons',
            model=CouponCache,
            unique_field='coupon_id',
            build_rows=store_rows(transform_coupon),
            pagination=NUMBERED,
        ),
    )
}


def get_target(name: str) -> SyncTarget:
    """Look up a target by name; raises KeyError for unknown names."""
    return TARGETS[name]
