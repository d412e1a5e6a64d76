from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from dealsync.targets import DEALS_FIELD_MAP
from dealsync.transformer import (
    build_field_lookup,
    cents_to_display,
    coupon_code,
    deduplicate,
    extract_payment_method,
    extract_portuguese_name,
    extract_province,
    normalize_date,
    parse_cents,
    price_to_cents,
    transform_coupon,
    transform_deals,
    transform_order,
    transform_product,
)

SYNCED_AT = datetime(2024, 3, 20, 12, 0, tzinfo=dt_timezone.utc)

DEAL = {
    'id': '101',
    'title': 'Tênis personalizados',
    'value': '12345',
    'currency': 'brl',
    'status': '0',
    'stage': '3',
    'contact': '77',
    'organization': None,
    'cdate': '2024-03-01T10:00:00-03:00',
    'mdate': '2024-03-02T09:30:00-03:00',
}


# ---------------------------------------------------------------------------
# normalize_date
# ---------------------------------------------------------------------------

class TestNormalizeDate:
    @pytest.mark.parametrize('raw, expected', [
        ('03/15/2024', '2024-03-15'),
        ('3/5/2024', '2024-03-05'),
        ('2024-03-15', '2024-03-15'),
        ('2024-03-15T10:30:00Z', '2024-03-15'),
        ('2024-03-15T23:30:00-03:00', '2024-03-15'),
        (' 2024-03-15 ', '2024-03-15'),
    ])
    def test_accepted_formats(self, raw, expected):
        assert normalize_date(raw) == expected

    @pytest.mark.parametrize('raw', ['13/45/2024', '2024-02-30', 'amanhã', '15.03.2024', '', None])
    def test_unparseable_becomes_none(self, raw):
        assert normalize_date(raw) is None


# ---------------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------------

class TestMoney:
    def test_cents_are_kept_as_integers(self):
        assert parse_cents('12345') == 12345

    def test_display_divides_by_hundred(self):
        assert cents_to_display(12345) == Decimal('123.45')
        assert cents_to_display(0) == Decimal('0.00')

    def test_non_numeric_value_is_zero(self):
        assert parse_cents('abc') == 0
        assert parse_cents(None) == 0

    def test_price_string_to_cents(self):
        assert price_to_cents('129.90') == 12990
        assert price_to_cents(None) == 0
        assert price_to_cents('n/a') == 0


# ---------------------------------------------------------------------------
# Custom field join
# ---------------------------------------------------------------------------

class TestBuildFieldLookup:
    def test_keeps_only_target_fields(self):
        entries = [
            {'dealId': '101', 'customFieldId': '5', 'fieldValue': '03/15/2024'},
            {'dealId': '101', 'customFieldId': '99', 'fieldValue': 'ignored'},
        ]
        assert build_field_lookup(entries, [5, 25]) == {'101': {5: '03/15/2024'}}

    def test_later_entry_wins(self):
        entries = [
            {'dealId': '101', 'customFieldId': '25', 'fieldValue': 'SP'},
            {'dealId': '101', 'customFieldId': '25', 'fieldValue': 'RJ'},
        ]
        assert build_field_lookup(entries, [25]) == {'101': {25: 'RJ'}}

    def test_skips_malformed_field_id(self):
        entries = [{'dealId': '101', 'customFieldId': None, 'fieldValue': 'x'}]
        assert build_field_lookup(entries, [25]) == {}


class TestTransformDeals:
    def test_base_columns(self):
        row = transform_deals([DEAL], [], DEALS_FIELD_MAP, SYNCED_AT)[0]

        assert row['deal_id'] == '101'
        assert row['title'] == 'Tênis personalizados'
        assert row['value'] == 12345
        assert row['currency'] == 'brl'
        assert row['stage_id'] == '3'
        assert row['contact_id'] == '77'
        assert row['last_synced_at'] == SYNCED_AT
        assert row['sync_status'] == 'synced'
        assert row['created_date'].tzinfo is not None

    def test_deal_without_custom_fields_gets_null_columns(self):
        row = transform_deals([DEAL], [], DEALS_FIELD_MAP, SYNCED_AT)[0]
        for column in DEALS_FIELD_MAP.values():
            assert row[column] is None

    def test_custom_fields_are_joined_and_dates_normalized(self):
        entries = [
            {'dealId': '101', 'customFieldId': '5', 'fieldValue': '03/15/2024'},
            {'dealId': '101', 'customFieldId': '25', 'fieldValue': 'SP'},
            {'dealId': '101', 'customFieldId': '39', 'fieldValue': ''},
            {'dealId': '202', 'customFieldId': '25', 'fieldValue': 'MG'},
        ]
        row = transform_deals([DEAL], entries, DEALS_FIELD_MAP, SYNCED_AT)[0]

        assert row['closing_date'] == '2024-03-15'
        assert row['estado'] == 'SP'
        assert row['quantidade_pares'] is None

    def test_unparseable_closing_date_is_null(self):
        entries = [{'dealId': '101', 'customFieldId': '5', 'fieldValue': 'next week'}]
        row = transform_deals([DEAL], entries, DEALS_FIELD_MAP, SYNCED_AT)[0]
        assert row['closing_date'] is None

    def test_missing_currency_defaults_to_brl(self):
        row = transform_deals([dict(DEAL, currency=None)], [], DEALS_FIELD_MAP, SYNCED_AT)[0]
        assert row['currency'] == 'BRL'


# ---------------------------------------------------------------------------
# Store products
# ---------------------------------------------------------------------------

class TestTransformProduct:
    def test_basic_transformation(self):
        raw = {
            'id': 9001,
            'name': {'pt': 'Chinelo', 'es': 'Chancla'},
            'handle': {'pt': 'chinelo'},
            'description': {'pt': '<p>Confortável</p>'},
            'brand': 'Marca',
            'variants': [{'price': '129.90'}, {'price': '139.90'}],
            'images': [{'src': 'a.jpg'}, {'src': 'b.jpg', 'featured': True}],
            'published': True,
            'free_shipping': False,
            'updated_at': '2024-03-01T10:00:00+0000',
        }
        row = transform_product(raw, SYNCED_AT)

        assert row['product_id'] == '9001'
        assert row['name_pt'] == 'Chinelo'
        assert row['handle'] == 'chinelo'
        assert row['description'] == '<p>Confortável</p>'
        assert row['price'] == 12990
        assert row['variant_count'] == 2
        assert row['featured_image_src'] == 'b.jpg'
        assert row['published'] is True

    def test_product_without_variants_or_images(self):
        row = transform_product({'id': 1, 'name': 'Meia'}, SYNCED_AT)
        assert row['price'] == 0
        assert row['variant_count'] == 0
        assert row['featured_image_src'] is None
        assert row['name_pt'] == 'Meia'

    def test_extract_portuguese_name_fallbacks(self):
        assert extract_portuguese_name({'por': 'Bota'}) == 'Bota'
        assert extract_portuguese_name({'es': 'Bota'}) is None
        assert extract_portuguese_name(None) is None


class TestTransformOrder:
    def test_missing_amounts_stay_null(self):
        row = transform_order({'id': 7, 'name': '#1007', 'total': '99.90'}, SYNCED_AT)

        assert row['order_id'] == '7'
        assert row['order_number'] == '#1007'
        assert row['total'] == 9990
        assert row['subtotal'] is None
        assert row['products'] == []
        assert row['coupon'] is None

    @pytest.mark.parametrize('coupon, expected', [
        (' HUD10 ', 'HUD10'),
        ('null', None),
        ([], None),
        ([{'code': 'FRETE'}], 'FRETE'),
        ({'code': 'VIP'}, 'VIP'),
        (None, None),
    ])
    def test_coupon_code(self, coupon, expected):
        assert coupon_code(coupon) == expected

    def test_province_and_payment_method_fallbacks(self):
        assert extract_province({'state': 'RJ'}) == 'RJ'
        assert extract_province(None) is None
        assert extract_payment_method([{'payment_method': {'name': 'credit_card'}}]) == 'credit_card'
        assert extract_payment_method([{'method': 'boleto'}]) == 'boleto'
        assert extract_payment_method({'method': 'pix'}) == 'pix'


class TestTransformCoupon:
    def test_percentage_coupon(self):
        row = transform_coupon({'id': 1, 'code': 'HUD10', 'type': 'percentage', 'value': '10.40'}, SYNCED_AT)
        assert row['percentage'] == 10
        assert row['amount'] == 0

    def test_absolute_coupon_amount_in_cents(self):
        row = transform_coupon({'id': 2, 'code': 'OFF15', 'type': 'absolute', 'value': '15.00'}, SYNCED_AT)
        assert row['amount'] == 1500
        assert row['percentage'] == 0

    def test_dates_are_normalized(self):
        row = transform_coupon({'id': 3, 'code': 'X', 'start_date': '2024-01-01', 'end_date': 'soon'}, SYNCED_AT)
        assert row['valid_from'] == '2024-01-01'
        assert row['valid_until'] is None


# ---------------------------------------------------------------------------
# deduplicate
# ---------------------------------------------------------------------------

class TestDeduplicate:
    def test_last_occurrence_wins_and_takes_its_position(self):
        rows = [{'id': 1, 'v': 'a'}, {'id': 2, 'v': 'b'}, {'id': 1, 'v': 'c'}]
        assert deduplicate(rows, 'id') == [{'id': 2, 'v': 'b'}, {'id': 1, 'v': 'c'}]

    def test_no_duplicates_keeps_order(self):
        rows = [{'id': 3}, {'id': 1}, {'id': 2}]
        assert deduplicate(rows, 'id') == rows

    def test_empty(self):
        assert deduplicate([], 'id') == []
