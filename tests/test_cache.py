from datetime import date
from decimal import Decimal

import pytest
from django.core.cache.backends.locmem import LocMemCache
from django.utils import timezone

from dealsync.cache import DealsReadService, months_before, period_range
from dealsync.models import DealCache, SyncLog


@pytest.fixture()
def service():
    backend = LocMemCache('dealsync-tests', {'TIMEOUT': 60})
    backend.clear()
    return DealsReadService(backend)


def add_deal(deal_id, closing_date, value=12345, sync_status='synced'):
    return DealCache.objects.create(
        deal_id=deal_id,
        title=f'Deal {deal_id}',
        value=value,
        closing_date=closing_date,
        last_synced_at=timezone.now(),
        sync_status=sync_status,
    )


# ---------------------------------------------------------------------------
# Date ranges
# ---------------------------------------------------------------------------

class TestPeriods:
    def test_months_before_clamps_to_month_end(self):
        assert months_before(date(2024, 3, 31), 1) == date(2024, 2, 29)
        assert months_before(date(2024, 1, 15), 2) == date(2023, 11, 15)

    @pytest.mark.parametrize('period, start', [
        (30, date(2024, 4, 30)),
        (60, date(2024, 3, 31)),
        (90, date(2024, 2, 29)),
        (7, date(2024, 5, 24)),
    ])
    def test_period_range(self, period, start):
        assert period_range(period, date(2024, 5, 31)) == (start, date(2024, 5, 31))


# ---------------------------------------------------------------------------
# DealsReadService
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestDealsReadService:
    def test_filters_by_closing_date_and_formats_value(self, service):
        add_deal('1', date(2024, 3, 10))
        add_deal('2', date(2024, 3, 25), value=500)
        add_deal('3', date(2024, 4, 2))
        add_deal('4', date(2024, 3, 12), sync_status='error')

        payload = service.deals_between(date(2024, 3, 1), date(2024, 3, 31))

        assert payload['total_deals'] == 2
        assert [d['deal_id'] for d in payload['deals']] == ['2', '1']
        assert payload['deals'][1]['value'] == Decimal('123.45')
        assert payload['deals'][0]['value'] == Decimal('5.00')
        assert payload['start_date'] == '2024-03-01'
        assert payload['sync_status'] == 'unknown'

    def test_second_read_is_served_from_memory(self, service):
        add_deal('1', date(2024, 3, 10))
        first = service.deals_between(date(2024, 3, 1), date(2024, 3, 31))
        add_deal('2', date(2024, 3, 11))
        second = service.deals_between(date(2024, 3, 1), date(2024, 3, 31))

        assert first['cache_source'] == 'database'
        assert second['cache_source'] == 'memory'
        assert second['total_deals'] == 1

    def test_invalidate_forces_a_fresh_query(self, service):
        add_deal('1', date(2024, 3, 10))
        service.deals_between(date(2024, 3, 1), date(2024, 3, 31))
        add_deal('2', date(2024, 3, 11))

        service.invalidate()
        payload = service.deals_between(date(2024, 3, 1), date(2024, 3, 31))

        assert payload['cache_source'] == 'database'
        assert payload['total_deals'] == 2

    def test_ranges_are_cached_separately(self, service):
        add_deal('1', date(2024, 3, 10))
        service.deals_between(date(2024, 3, 1), date(2024, 3, 31))
        payload = service.deals_between(date(2024, 3, 1), date(2024, 3, 15))
        assert payload['cache_source'] == 'database'

    def test_reports_last_sync(self, service):
        now = timezone.now()
        SyncLog.objects.create(
            sync_type='deals', sync_started_at=now, sync_completed_at=now,
            sync_status=SyncLog.COMPLETED, records_processed=42,
        )

        payload = service.deals_between(date(2024, 3, 1), date(2024, 3, 31))

        assert payload['sync_status'] == SyncLog.COMPLETED
        assert payload['total_deals_in_last_sync'] == 42
        assert payload['last_sync'] == now

    def test_default_uses_configured_alias(self):
        assert isinstance(DealsReadService.default()._cache, LocMemCache)
