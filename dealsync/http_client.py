import logging
from urllib.parse import urlencode

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds
RETRYABLE_STATUS_CODES = {408, 429}


class ApiError(RuntimeError):
    """
    A failed GET against an upstream API.

    `status_code` is None when no response arrived (timeout, connection reset).
    """

    def __init__(self, message: str, status_code=None, retryable=None):
        super().__init__(message)
        self.status_code = status_code
        if retryable is None:
            retryable = is_retryable_status(status_code)
        self.retryable = retryable


class MissingCredentialsError(RuntimeError):
    """Raised before any network call when an API token or base URL is not configured."""


def is_retryable_status(status_code) -> bool:
    if status_code is None:
        return True
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


class ApiClient:
    def __init__(self, base_url: str, headers: dict, timeout: float = DEFAULT_TIMEOUT):
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(headers)

    @property
    def base_url(self) -> str:
        return self._base_url

    def url(self, path: str, params=None) -> str:
        """Absolute URL for `path` with `params` encoded in insertion order."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(list(params.items()))}"
        return url

    def fetch_json(self, url: str, timeout=None):
        """GET `url` and return the decoded JSON body, raising ApiError on any failure."""
        timeout = self._timeout if timeout is None else timeout
        logger.debug("GET %s", url)
        try:
            response = self._session.get(url, timeout=timeout)
        except requests.Timeout as exc:
            raise ApiError(f"GET {url} timed out after {timeout}s") from exc
        except requests.RequestException as exc:
            raise ApiError(f"GET {url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise ApiError(
                f"GET {url} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"GET {url} returned a non-JSON body",
                status_code=response.status_code,
                retryable=False,
            ) from exc


def crm_client() -> ApiClient:
    """Client for the CRM deals API (Api-Token header)."""
    base_url = getattr(settings, 'AC_BASE_URL', '')
    token = getattr(settings, 'AC_API_TOKEN', '')
    if not base_url or not token:
        raise MissingCredentialsError("CRM credentials not configured: set AC_BASE_URL and AC_API_TOKEN.")
    return ApiClient(
        f"{base_url.rstrip('/')}/api/3",
        headers={'Api-Token': token, 'Content-Type': 'application/json'},
        timeout=settings.SYNC_REQUEST_TIMEOUT,
    )


def shop_client() -> ApiClient:
    """Client for the e-commerce store API (bearer-style Authentication header)."""
    user_id = getattr(settings, 'NUVEMSHOP_USER_ID', '')
    token = getattr(settings, 'NUVEMSHOP_ACCESS_TOKEN', '')
    if not user_id or not token:
        raise MissingCredentialsError(
            "Store credentials not configured: set NUVEMSHOP_USER_ID and NUVEMSHOP_ACCESS_TOKEN."
        )
    return ApiClient(
        f"{settings.NUVEMSHOP_API_BASE_URL.rstrip('/')}/{user_id}",
        headers={
            'Authentication': f'bearer {token}',
            'Content-Type': 'application/json',
            'User-Agent': settings.NUVEMSHOP_USER_AGENT,
        },
        timeout=settings.SYNC_REQUEST_TIMEOUT,
    )
