"""
Page-URL builders and sequential page walkers.

Two offset strategies exist for the CRM API. When the total is cheap to learn
(a `limit=1` probe returns `meta.total`) every page URL is computed upfront so
the batch runner can fetch them concurrently. When it is not, pages are walked
one request at a time until a short page comes back. The store API paginates
by page number instead of offset and signals the end with a 404.

Every request goes through `fetch_with_retry`, so transient failures are
retried the same way the batch runner retries them. When a walker is given an
`errors` list, a page that still fails is recorded there and the walk stops
with what it has collected; without one the error is raised.
"""
import logging
import math

from .batch_runner import MAX_RETRIES, fetch_with_retry
from .http_client import ApiError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_NUMBERED_PAGES = 100


def offset_page_urls(client, path: str, page_size: int, total: int, params=None) -> list[str]:
    """One URL per page, offsets 0, L, 2L, ... covering `total` records."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    pages = math.ceil(max(total, 0) / page_size)
    urls = []
    for page in range(pages):
        query = {'limit': page_size, 'offset': page * page_size}
        query.update(params or {})
        urls.append(client.url(path, query))
    return urls


def probe_total(client, path: str, params=None, max_retries: int = MAX_RETRIES) -> int:
    """Ask for a single record and read `meta.total` from the response."""
    query = {'limit': 1, 'offset': 0}
    query.update(params or {})
    payload = fetch_with_retry(client.fetch_json, client.url(path, query), max_retries)
    meta = payload.get('meta') or {}
    try:
        return int(meta.get('total') or 0)
    except (TypeError, ValueError):
        logger.warning("Non-numeric meta.total %r for %s, treating as 0.", meta.get('total'), path)
        return 0


def _page_failed(url, exc, errors):
    if errors is None:
        raise exc
    logger.error("Stopping walk at %s: %s", url, exc)
    errors.append(f"{url}: {exc}")


def walk_offset_pages(
    client,
    path: str,
    key: str,
    page_size: int = PAGE_SIZE,
    params=None,
    max_retries: int = MAX_RETRIES,
    errors=None,
) -> list:
    """Fetch pages sequentially until one returns fewer than `page_size` items."""
    items = []
    offset = 0
    while True:
        query = {'limit': page_size, 'offset': offset}
        query.update(params or {})
        url = client.url(path, query)
        try:
            payload = fetch_with_retry(client.fetch_json, url, max_retries)
        except ApiError as exc:
            _page_failed(url, exc, errors)
            break
        page = payload.get(key) or []
        items.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    logger.info("Walked %s: %d items in %d pages.", path, len(items), offset // page_size + 1)
    return items


def walk_numbered_pages(
    client,
    path: str,
    key: str,
    per_page: int = PAGE_SIZE,
    params=None,
    max_pages: int = MAX_NUMBERED_PAGES,
    max_retries: int = MAX_RETRIES,
    errors=None,
) -> list:
    """
    Walk `page=1, 2, ...` until a short page, a 404 past the last page, or `max_pages`.

    The store API may answer with a bare list or with `{key: [...]}`.
    """
    items = []
    for page_number in range(1, max_pages + 1):
        query = {'page': page_number, 'per_page': per_page}
        query.update(params or {})
        url = client.url(path, query)
        try:
            payload = fetch_with_retry(client.fetch_json, url, max_retries)
        except ApiError as exc:
            if exc.status_code == 404 and page_number > 1:
                logger.info("Reached the last page of %s at page %d.", path, page_number - 1)
            else:
                _page_failed(url, exc, errors)
            break

        page = payload if isinstance(payload, list) else (payload.get(key) or [])
        items.extend(page)
        if len(page) < per_page:
            break
    else:
        logger.warning("Stopped walking %s after %d pages.", path, max_pages)
    return items
