"""
Health report for a sync type, computed from its SyncLog history and cache table.

Thresholds assume the deals sync is scheduled every 30 minutes. Status only
escalates: once a check reports `critical` a later `warning` does not lower it.
"""
from datetime import timedelta

from django.utils import timezone

from .models import SyncLog

HEALTHY = 'healthy'
WARNING = 'warning'
CRITICAL = 'critical'
_SEVERITY = {HEALTHY: 0, WARNING: 1, CRITICAL: 2}

WARNING_AFTER_MINUTES = 45
CRITICAL_AFTER_MINUTES = 120
STUCK_AFTER_MINUTES = 10
MIN_CACHED_ROWS = 10
MIN_SUCCESS_RATE = 80
RECENT_DAYS = 30
HISTORY_SIZE = 5


def _minutes_between(later, earlier) -> float:
    return (later - earlier).total_seconds() / 60


class _Report:
    def __init__(self):
        self.status = HEALTHY
        self.issues = []

    def flag(self, status, issue):
        if _SEVERITY[status] > _SEVERITY[self.status]:
            self.status = status
        self.issues.append(issue)


def sync_health(sync_type: str, model, now=None) -> dict:
    now = now or timezone.now()
    report = _Report()

    history = list(SyncLog.objects.filter(sync_type=sync_type).order_by('-sync_started_at')[:HISTORY_SIZE])
    last = history[0] if history else None

    synced = model.objects.filter(sync_status='synced')
    total = synced.count()
    recent = None
    if any(f.name == 'closing_date' for f in model._meta.get_fields()):
        recent = synced.filter(closing_date__gte=(now - timedelta(days=RECENT_DAYS)).date()).count()

    last_completed = (
        SyncLog.objects
        .filter(sync_type=sync_type, sync_status=SyncLog.COMPLETED)
        .order_by('-sync_completed_at')
        .first()
    )

    minutes_since_last = None
    if last is None:
        report.flag(CRITICAL, "No sync records found")
    else:
        if last.sync_completed_at is None:
            running_for = _minutes_between(now, last.sync_started_at)
            if running_for > STUCK_AFTER_MINUTES:
                report.flag(WARNING, f"Sync has been running for {round(running_for)} minutes")

        if last_completed is None:
            report.flag(CRITICAL, "No completed sync found")
        else:
            minutes_since_last = _minutes_between(now, last_completed.sync_completed_at)
            if minutes_since_last > CRITICAL_AFTER_MINUTES:
                report.flag(
                    CRITICAL,
                    f"Last sync was {round(minutes_since_last)} minutes ago - sync may be broken",
                )
            elif minutes_since_last > WARNING_AFTER_MINUTES:
                report.flag(WARNING, f"Last sync was {round(minutes_since_last)} minutes ago")

        if last.sync_status == SyncLog.FAILED:
            report.flag(WARNING, f"Last sync failed: {last.error_message or 'Unknown error'}")

    if total < MIN_CACHED_ROWS:
        report.flag(WARNING, f"Only {total} rows in cache")

    completed = sum(1 for entry in history if entry.sync_status == SyncLog.COMPLETED)
    success_rate = completed / len(history) * 100 if history else 0
    if success_rate < MIN_SUCCESS_RATE:
        report.flag(WARNING, f"Low sync success rate: {success_rate:.1f}%")

    return {
        'status': report.status,
        'timestamp': now.isoformat(),
        'issues': report.issues or None,
        'cache': {
            'total': total,
            'recent': recent,
            'last_sync_at': last_completed.sync_completed_at.isoformat() if last_completed else None,
            'last_sync_status': last.sync_status if last else 'unknown',
            'last_sync_duration': last_completed.sync_duration_seconds if last_completed else None,
            'minutes_since_last_sync': round(minutes_since_last) if minutes_since_last is not None else None,
        },
        'sync': {
            'success_rate': round(success_rate),
            'total_syncs': len(history),
            'last_error': (last.error_message or None) if last else None,
            'is_running': bool(last and last.sync_completed_at is None),
        },
        'history': [
            {
                'started_at': entry.sync_started_at.isoformat(),
                'completed_at': entry.sync_completed_at.isoformat() if entry.sync_completed_at else None,
                'status': entry.sync_status,
                'records_processed': entry.records_processed,
                'duration_seconds': entry.sync_duration_seconds,
                'error': entry.error_message or None,
            }
            for entry in history
        ],
    }
