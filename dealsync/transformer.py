import logging
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from django.utils import timezone

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = 'BRL'
_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def normalize_date(value) -> Optional[str]:
    """
    Normalize a source date to YYYY-MM-DD.

    Accepts MM/DD/YYYY, YYYY-MM-DD and ISO 8601 date-times. Anything else,
    including impossible calendar dates, becomes None.
    """
    if not value:
        return None
    text = str(value).strip()
    try:
        if '/' in text:
            month, day, year = text.split('/')
            return date(int(year), int(month), int(day)).isoformat()
        if _ISO_DATE.match(text):
            return date.fromisoformat(text).isoformat()
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date().isoformat()
    except ValueError:
        logger.warning("Unparseable date %r, storing null.", value)
        return None


def parse_cents(value) -> int:
    """Integer minor units as sent by the source; non-numeric values count as 0."""
    if value is None or value == '':
        return 0
    try:
        return int(Decimal(str(value)))
    except (ArithmeticError, ValueError):
        logger.warning("Non-numeric monetary value %r, treating as 0.", value)
        return 0


def price_to_cents(value) -> int:
    """Store prices arrive as decimal strings ("129.90"); cache rows keep cents."""
    try:
        return int(Decimal(str(value if value is not None else 0)) * 100)
    except (ArithmeticError, ValueError):
        logger.warning("Non-numeric price %r, treating as 0.", value)
        return 0


def cents_to_display(cents) -> Decimal:
    """12345 -> Decimal('123.45'). Only read paths call this; storage keeps cents."""
    return (Decimal(cents or 0) / 100).quantize(Decimal('0.01'))


def _parse_datetime(value):
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
    except ValueError:
        logger.warning("Unparseable timestamp %r, storing null.", value)
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, timezone.get_default_timezone())
    return parsed


def build_field_lookup(entries, target_field_ids) -> dict[str, dict[int, str]]:
    """
    Map record id -> {field id -> value} for the field ids of interest.

    Entries for other fields are dropped. When the same (record, field) pair
    appears twice the later entry wins.
    """
    targets = {int(f) for f in target_field_ids}
    lookup: dict[str, dict[int, str]] = {}
    for entry in entries:
        try:
            field_id = int(entry.get('customFieldId'))
        except (TypeError, ValueError):
            continue
        if field_id not in targets:
            continue
        record_id = str(entry.get('dealId'))
        lookup.setdefault(record_id, {})[field_id] = entry.get('fieldValue') or ''
    return lookup


def transform_deal(deal: dict, custom_fields: dict, field_map: dict, synced_at) -> dict:
    """
    Project a CRM deal plus its custom-field values into a cache row.

    `field_map` maps custom field id -> column name. Columns ending in
    `_date` are normalized to YYYY-MM-DD. A mapped field the deal has no
    entry for becomes None.
    """
    row = {
        'deal_id': str(deal.get('id')),
        'title': deal.get('title') or '',
        'value': parse_cents(deal.get('value')),
        'currency': deal.get('currency') or DEFAULT_CURRENCY,
        'status': deal.get('status'),
        'stage_id': deal.get('stage'),
        'contact_id': deal.get('contact'),
        'organization_id': deal.get('organization'),
        'created_date': _parse_datetime(deal.get('cdate')),
        'api_updated_at': _parse_datetime(deal.get('mdate') or deal.get('cdate')),
        'last_synced_at': synced_at,
        'sync_status': 'synced',
    }
    for field_id, column in field_map.items():
        raw = custom_fields.get(int(field_id)) or None
        row[column] = normalize_date(raw) if column.endswith('_date') else raw
    return row


def transform_deals(deals, custom_field_entries, field_map: dict, synced_at=None) -> list[dict]:
    """Join deals with their custom fields; a deal without any entries still yields a row."""
    synced_at = synced_at or timezone.now()
    lookup = build_field_lookup(custom_field_entries, field_map.keys())
    logger.info("Custom field lookup covers %d of %d deals.", len(lookup), len(deals))
    return [
        transform_deal(deal, lookup.get(str(deal.get('id')), {}), field_map, synced_at)
        for deal in deals
    ]


def extract_portuguese_name(name) -> Optional[str]:
    if not name:
        return None
    if isinstance(name, str):
        return name
    return name.get('pt') or name.get('por') or name.get('portuguese') or name.get('default')


def transform_product(raw: dict, synced_at=None) -> dict:
    """Project a store product into a product cache row."""
    images = raw.get('images') or []
    featured = next((img for img in images if img.get('featured')), images[0] if images else None)
    variants = raw.get('variants') or []
    description = raw.get('description')
    if isinstance(description, dict):
        description = description.get('pt')

    return {
        'product_id': str(raw.get('id')),
        'name_pt': extract_portuguese_name(raw.get('name')),
        'brand': raw.get('brand'),
        'description': description,
        'handle': extract_portuguese_name(raw.get('handle')),
        'price': price_to_cents(variants[0].get('price')) if variants else 0,
        'variant_count': len(variants),
        'featured_image_src': featured.get('src') if featured else None,
        'published': bool(raw.get('published')),
        'free_shipping': bool(raw.get('free_shipping')),
        'api_updated_at': _parse_datetime(raw.get('updated_at')),
        'last_synced_at': synced_at or timezone.now(),
        'sync_status': 'synced',
    }


def deduplicate(rows, key: str) -> list[dict]:
    """
    Keep one row per `key`, the last one seen.

    A repeated key moves to the position of its last occurrence, so
    [{id: 1, v: a}, {id: 2, v: b}, {id: 1, v: c}] -> [{id: 2, v: b}, {id: 1, v: c}].
    """
    latest = {}
    for row in rows:
        value = row[key]
        latest.pop(value, None)
        latest[value] = row

    removed = len(rows) - len(latest)
    if removed:
        logger.warning("Removed %d duplicate rows by %s (%d -> %d).", removed, key, len(rows), len(latest))
    return list(latest.values())


def _optional_cents(value) -> Optional[int]:
    if value in (None, ''):
        return None
    return price_to_cents(value)


def extract_province(address) -> Optional[str]:
    if not isinstance(address, dict):
        return None
    return address.get('province') or address.get('state') or address.get('region')


def extract_payment_method(details) -> Optional[str]:
    if not details:
        return None
    if isinstance(details, list):
        first = details[0] or {}
        return (first.get('payment_method') or {}).get('name') or first.get('method')
    return details.get('method')


def coupon_code(coupon) -> Optional[str]:
    """The applied coupon code from a string, a list of coupons or a coupon object."""
    if not coupon:
        return None
    if isinstance(coupon, str):
        code = coupon.strip()
        return None if code in ('', 'null', 'undefined') else code
    if isinstance(coupon, list):
        return coupon_code(coupon[0]) if coupon else None
    return coupon.get('code') or None


def transform_order(raw: dict, synced_at=None) -> dict:
    """Project a store order into an order cache row. Amounts are stored in cents."""
    return {
        'order_id': str(raw.get('id')),
        'order_number': str(raw.get('number') or raw.get('name') or ''),
        'completed_at': _parse_datetime(raw.get('completed_at')),
        'created_at_store': _parse_datetime(raw.get('created_at')),
        'contact_name': raw.get('contact_name'),
        'shipping_address': raw.get('shipping_address'),
        'province': extract_province(raw.get('shipping_address')),
        'products': raw.get('products') or [],
        'subtotal': _optional_cents(raw.get('subtotal')),
        'shipping_cost_customer': _optional_cents(raw.get('shipping_cost_customer')),
        'coupon': coupon_code(raw.get('coupon')),
        'promotional_discount': _optional_cents(raw.get('promotional_discount')),
        'total_discount_amount': _optional_cents(raw.get('total_discount_amount')),
        'discount_coupon': _optional_cents(raw.get('discount_coupon')),
        'discount_gateway': _optional_cents(raw.get('discount_gateway')),
        'total': _optional_cents(raw.get('total')),
        'payment_details': raw.get('payment_details'),
        'payment_method': extract_payment_method(raw.get('payment_details')),
        'payment_status': raw.get('payment_status'),
        'status': raw.get('status'),
        'fulfillment_status': raw.get('fulfillment_status'),
        'api_updated_at': _parse_datetime(raw.get('updated_at')),
        'last_synced_at': synced_at or timezone.now(),
        'sync_status': 'synced',
    }


def transform_coupon(raw: dict, synced_at=None) -> dict:
    """
    Project a store coupon into a coupon cache row.

    Percentage coupons keep the rounded percent in `percentage`; absolute
    coupons keep their amount in cents in `amount`.
    """
    discount_type = raw.get('type')
    percentage = amount = 0
    if discount_type == 'percentage':
        try:
            percentage = round(Decimal(str(raw.get('value') or 0)))
        except ArithmeticError:
            logger.warning("Non-numeric coupon value %r, treating as 0.", raw.get('value'))
    elif discount_type == 'absolute':
        amount = price_to_cents(raw.get('value'))

    return {
        'coupon_id': str(raw.get('id')),
        'code': raw.get('code') or '',
        'discount_type': discount_type,
        'percentage': percentage,
        'amount': amount,
        'valid_from': normalize_date(raw.get('start_date')),
        'valid_until': normalize_date(raw.get('end_date')),
        'max_uses': raw.get('max_uses'),
        'current_uses': raw.get('used') or 0,
        'is_active': bool(raw.get('valid')),
        'last_synced_at': synced_at or timezone.now(),
        'sync_status': 'synced',
    }
