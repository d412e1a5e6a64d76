"""
Read-side cache for the deals dashboard.

Queries against `deals_cache` are memoised in a Django cache backend that is
passed in by the caller. The default backend is the `deals_read` alias, a
bounded LocMemCache with a timeout (see settings), so entries expire and the
least recently used ones are evicted. Tests hand in their own backend.
"""
import calendar
import logging
from datetime import date, timedelta

from django.core.cache import caches

from .models import DealCache, SyncLog
from .transformer import cents_to_display

logger = logging.getLogger(__name__)

CACHE_ALIAS = 'deals_read'
PERIOD_MONTHS = {30: 1, 60: 2, 90: 3}

DEAL_COLUMNS = (
    'deal_id', 'title', 'value', 'currency', 'status', 'stage_id', 'closing_date',
    'created_date', 'estado', 'quantidade_pares', 'vendedor', 'designer',
    'utm_source', 'utm_medium', 'contact_id', 'organization_id',
    'api_updated_at', 'last_synced_at',
)


def months_before(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the end of shorter months."""
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_range(period: int, today: date) -> tuple[date, date]:
    if period in PERIOD_MONTHS:
        return months_before(today, PERIOD_MONTHS[period]), today
    return today - timedelta(days=period), today


class DealsReadService:
    def __init__(self, cache):
        self._cache = cache

    @classmethod
    def default(cls):
        return cls(caches[CACHE_ALIAS])

    def deals_between(self, start: date, end: date) -> dict:
        key = f"deals:{start.isoformat()}:{end.isoformat()}"
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Deals read cache hit for %s.", key)
            return dict(cached, cache_source='memory')

        payload = self._query(start, end)
        self._cache.set(key, payload)
        return dict(payload, cache_source='database')

    def invalidate(self):
        self._cache.clear()
        logger.info("Deals read cache invalidated.")

    @staticmethod
    def _query(start: date, end: date) -> dict:
        rows = list(
            DealCache.objects
            .filter(sync_status='synced', closing_date__gte=start, closing_date__lte=end)
            .order_by('-closing_date')
            .values(*DEAL_COLUMNS)
        )
        for row in rows:
            row['value'] = cents_to_display(row['value'])

        last_sync = SyncLog.objects.filter(sync_type='deals').first()
        return {
            'deals': rows,
            'total_deals': len(rows),
            'start_date': start.isoformat(),
            'end_date': end.isoformat(),
            'last_sync': last_sync.sync_completed_at if last_sync else None,
            'sync_status': last_sync.sync_status if last_sync else 'unknown',
            'total_deals_in_last_sync': last_sync.records_processed if last_sync else 0,
        }
