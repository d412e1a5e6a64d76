import logging

from celery import shared_task

from .pipeline import SyncAlreadyRunning, SyncPipeline
from .targets import get_target

logger = logging.getLogger(__name__)


@shared_task(bind=True, name='dealsync.run_sync')
def run_sync_task(self, target_name: str, force: bool = False):
    """
    Scheduled entry point for one sync target.

    Steps:
      1. Resolve the target configuration by name.
      2. Claim the running slot in the sync log (skipped if already taken).
      3. Fetch, join, deduplicate and upsert through SyncPipeline.
      4. Return the run summary so it is visible in the result backend.
    """
    logger.info("Scheduled %s sync starting.", target_name)
    target = get_target(target_name)

    try:
        summary = SyncPipeline(target).run(force=force)
    except SyncAlreadyRunning as exc:
        logger.warning("Skipping scheduled %s sync: %s", target_name, exc)
        return {'success': False, 'skipped': True, 'error': str(exc)}

    logger.info(
        "Scheduled %s sync complete. processed=%d, upserted=%d, errors=%d.",
        target_name, summary['stats']['processed'], summary['stats']['upserted'], summary['stats']['errors'],
    )
    return summary
