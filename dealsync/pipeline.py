"""
The fetch -> transform -> dedupe -> upsert pipeline, run once per sync target.

Every live run is bracketed by a SyncLog row. The row is created in the
`running` state before the first request and closed as `completed` or
`failed` at the end. A partial unique index allows only one `running` row
per sync type, so a second concurrent start fails atomically with
SyncAlreadyRunning instead of racing a read-then-write check.
"""
import logging
import time

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .batch_runner import BatchRunner
from .cache import DealsReadService
from .models import SyncLog
from .pagination import offset_page_urls, probe_total, walk_numbered_pages, walk_offset_pages
from .targets import NUMBERED, PER_RECORD, WALK
from .transformer import deduplicate
from .upsert import UpsertResult, UpsertWriter

logger = logging.getLogger(__name__)

ERROR_MESSAGE_LIMIT = 2000


class SyncAlreadyRunning(RuntimeError):
    """Another run of the same sync type holds the running slot."""


def start_run(sync_type: str, force: bool = False) -> SyncLog:
    now = timezone.now()
    with transaction.atomic():
        if force:
            superseded = SyncLog.objects.filter(
                sync_type=sync_type, sync_status=SyncLog.RUNNING,
            ).update(
                sync_status=SyncLog.FAILED,
                sync_completed_at=now,
                error_message='Superseded by forced run.',
            )
            if superseded:
                logger.warning("Forced %s sync closed %d running entries.", sync_type, superseded)
        try:
            with transaction.atomic():
                return SyncLog.objects.create(
                    sync_type=sync_type,
                    sync_started_at=now,
                    sync_status=SyncLog.RUNNING,
                )
        except IntegrityError as exc:
            raise SyncAlreadyRunning(f"A {sync_type} sync is already running.") from exc


def finish_run(log: SyncLog, status: str, *, processed=0, upserted=0, errors=0, message='', started=None):
    log.sync_status = status
    log.sync_completed_at = timezone.now()
    log.records_processed = processed
    log.records_upserted = upserted
    log.error_count = errors
    log.error_message = message[:ERROR_MESSAGE_LIMIT]
    if started is not None:
        log.sync_duration_seconds = round(time.monotonic() - started)
    log.save()


class SyncPipeline:
    def __init__(self, target, *, client=None, runner=None, upsert_batch_size=None):
        self.target = target
        self._client = client
        self._runner = runner
        self._upsert_batch_size = upsert_batch_size

    def run(self, force: bool = False, dry_run: bool = False) -> dict:
        """
        Run one sync pass and return `{success, stats, errors?}`.

        Credentials are checked before anything else, so a misconfigured
        target fails without a log entry or a network call.
        """
        started = time.monotonic()
        client = self._client or self.target.client_factory()
        runner = self._runner or BatchRunner.from_settings(client.fetch_json)

        log = None if dry_run else start_run(self.target.name, force=force)
        logger.info("Starting %s sync%s.", self.target.name, ' (dry run)' if dry_run else '')

        try:
            summary = self._execute(client, runner, dry_run, started)
        except Exception as exc:
            logger.exception("%s sync failed.", self.target.name)
            if log is not None:
                finish_run(log, SyncLog.FAILED, message=str(exc), started=started)
            raise

        stats = summary['stats']
        if log is not None:
            finish_run(
                log,
                SyncLog.COMPLETED if summary['success'] else SyncLog.FAILED,
                processed=stats['total'],
                upserted=stats['upserted'],
                errors=stats['errors'],
                message='\n'.join(summary.get('errors', [])),
                started=started,
            )
        if summary['success'] and not dry_run and self.target.invalidates_read_cache:
            DealsReadService.default().invalidate()

        logger.info(
            "%s sync finished. success=%s total=%d processed=%d upserted=%d errors=%d.",
            self.target.name, summary['success'], stats['total'], stats['processed'],
            stats['upserted'], stats['errors'],
        )
        return summary

    def _execute(self, client, runner, dry_run, started) -> dict:
        errors = []
        records, fetch_failed = self._fetch_records(client, runner, errors)
        entries = self._fetch_custom_fields(client, runner, records, errors)

        rows = self.target.build_rows(records, entries, synced_at=timezone.now())
        unique_rows = deduplicate(rows, self.target.unique_field)

        upserted = failed_batches = 0
        write_failed = False
        if not dry_run:
            result = self._write(unique_rows, fetch_failed)
            upserted, failed_batches = result.upserted, result.failed_batches
            errors.extend(result.errors)
            write_failed = bool(unique_rows) and result.upserted == 0

        summary = {
            'success': not (fetch_failed or write_failed),
            'stats': {
                'total': len(records),
                'processed': len(unique_rows),
                'upserted': upserted,
                'duplicates_removed': len(rows) - len(unique_rows),
                'errors': len(errors),
                'failed_batches': failed_batches,
                'duration_seconds': round(time.monotonic() - started, 2),
            },
        }
        if errors:
            summary['errors'] = errors
        if dry_run:
            summary['dry_run'] = True
            summary['sample'] = unique_rows[:3]
        return summary

    def _fetch_records(self, client, runner, errors):
        target = self.target
        page_size = self._page_size()

        if target.pagination in (WALK, NUMBERED):
            walk = walk_offset_pages if target.pagination == WALK else walk_numbered_pages
            failures_before = len(errors)
            records = walk(
                client, target.records_path, target.records_key, page_size, target.list_params,
                max_retries=self._max_retries(), errors=errors,
            )
            return records, not records and len(errors) > failures_before

        total = probe_total(client, target.records_path, target.list_params, self._max_retries())
        urls = offset_page_urls(client, target.records_path, page_size, total, target.list_params)
        logger.info("%s: %d records available in %d pages.", target.name, total, len(urls))
        batch = runner.run(urls)
        errors.extend(batch.errors)

        records = []
        for payload in batch.results:
            records.extend(payload.get(target.records_key) or [])
        return records, bool(urls) and not batch.results

    def _fetch_custom_fields(self, client, runner, records, errors):
        source = self.target.custom_fields
        if source is None or not records:
            return []

        if source.mode == PER_RECORD:
            urls = [client.url(source.path, {'filters[dealId]': record.get('id')}) for record in records]
        else:
            total = probe_total(client, source.path, max_retries=self._max_retries())
            urls = offset_page_urls(client, source.path, self._page_size(), total)

        batch = runner.run(urls)
        errors.extend(batch.errors)
        entries = []
        for payload in batch.results:
            entries.extend(payload.get(source.key) or [])
        logger.info("%s: fetched %d custom field entries.", self.target.name, len(entries))
        return entries

    def _write(self, rows, fetch_failed) -> UpsertResult:
        writer = UpsertWriter(self.target.model, self.target.unique_field, self._batch_size())
        if not self.target.clear_first:
            return writer.write(rows)

        if fetch_failed:
            logger.warning(
                "%s: record fetch failed, keeping the existing %s rows.",
                self.target.name, self.target.model._meta.db_table,
            )
            return UpsertResult()

        # The table is replaced as a whole: a run that writes nothing restores it.
        with transaction.atomic():
            writer.clear()
            result = writer.write(rows)
            if rows and result.upserted == 0:
                transaction.set_rollback(True)
                logger.warning("%s: every upsert batch failed, clear rolled back.", self.target.name)
        return result

    def _page_size(self) -> int:
        return settings.SYNC_PAGE_SIZE

    def _max_retries(self) -> int:
        return settings.SYNC_MAX_RETRIES

    def _batch_size(self) -> int:
        return self._upsert_batch_size or settings.SYNC_UPSERT_BATCH_SIZE
