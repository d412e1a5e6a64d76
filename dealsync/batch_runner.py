import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from django.conf import settings

from .http_client import ApiError

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
MIN_BATCH_INTERVAL = 0.7  # seconds between batch starts
SAFETY_BUFFER = 0.05
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 3.0


def retry_delay(attempt: int) -> float:
    """Capped exponential backoff: 1s, 2s, 3s, 3s, ..."""
    return min(RETRY_BASE_DELAY * 2 ** (attempt - 1), RETRY_MAX_DELAY)


def fetch_with_retry(fetch, url: str, max_retries: int = MAX_RETRIES):
    """
    Call `fetch(url)` up to `max_retries` times with capped backoff.

    A non-retryable ApiError is raised at once. Any other failure is retried
    and the last one is raised when the attempts run out.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    for attempt in range(1, max_retries + 1):
        try:
            return fetch(url)
        except Exception as exc:
            if isinstance(exc, ApiError) and not exc.retryable:
                logger.warning("Non-retryable failure for %s: %s", url, exc)
                raise
            logger.warning("Attempt %d/%d for %s failed: %s", attempt, max_retries, url, exc)
            if attempt == max_retries:
                logger.error("Giving up on %s: %s", url, exc)
                raise
            time.sleep(retry_delay(attempt))


@dataclass
class BatchResult:
    results: list = field(default_factory=list)
    errors: list = field(default_factory=list)


class BatchRunner:
    """
    Runs GET requests in fixed-size concurrent batches.

    Requests inside one batch run concurrently; the next batch starts only
    after every request of the current one has settled. Between batches the
    runner sleeps until at least `min_interval + safety_buffer` seconds have
    passed since the batch started, which keeps the overall cadence under the
    upstream rate limit. Each URL is attempted up to `max_retries` times;
    an exhausted URL adds exactly one entry to `errors` and never aborts the
    rest of the run.
    """

    def __init__(
        self,
        fetch,
        *,
        batch_size: int = BATCH_SIZE,
        min_interval: float = MIN_BATCH_INTERVAL,
        safety_buffer: float = SAFETY_BUFFER,
        max_retries: int = MAX_RETRIES,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._fetch = fetch
        self._batch_size = batch_size
        self._min_interval = min_interval
        self._safety_buffer = safety_buffer
        self._max_retries = max_retries

    @classmethod
    def from_settings(cls, fetch):
        return cls(
            fetch,
            batch_size=settings.SYNC_BATCH_SIZE,
            min_interval=settings.SYNC_MIN_BATCH_INTERVAL_MS / 1000,
            safety_buffer=settings.SYNC_SAFETY_BUFFER_MS / 1000,
            max_retries=settings.SYNC_MAX_RETRIES,
        )

    def run(self, urls) -> BatchResult:
        urls = list(urls)
        outcome = BatchResult()
        total_batches = math.ceil(len(urls) / self._batch_size)

        for index in range(total_batches):
            batch = urls[index * self._batch_size:(index + 1) * self._batch_size]
            started = time.monotonic()
            logger.info("Processing batch %d/%d: %d requests.", index + 1, total_batches, len(batch))

            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                settled = list(pool.map(self._fetch_with_retry, batch))

            for ok, value in settled:
                if ok:
                    outcome.results.append(value)
                else:
                    outcome.errors.append(value)

            if index < total_batches - 1:
                elapsed = time.monotonic() - started
                wait = self._min_interval + self._safety_buffer - elapsed
                if wait > 0:
                    logger.debug("Batch took %.3fs, waiting %.3fs before the next one.", elapsed, wait)
                    time.sleep(wait)

        logger.info(
            "Batch fetch completed: %d successful, %d failed.",
            len(outcome.results), len(outcome.errors),
        )
        return outcome

    def _fetch_with_retry(self, url: str):
        try:
            return True, fetch_with_retry(self._fetch, url, self._max_retries)
        except Exception as exc:
            return False, f"{url}: {exc}"
