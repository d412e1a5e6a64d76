import pytest
from django.core.cache import caches

CRM_BASE = 'https://acct.api-us1.com'
CRM_API = f'{CRM_BASE}/api/3'
SHOP_API = 'https://api.nuvemshop.com.br/v1/123456'


@pytest.fixture(autouse=True)
def sync_settings(settings):
    settings.AC_BASE_URL = CRM_BASE
    settings.AC_API_TOKEN = 'ac-secret-token'
    settings.NUVEMSHOP_API_BASE_URL = 'https://api.nuvemshop.com.br/v1'
    settings.NUVEMSHOP_USER_ID = '123456'
    settings.NUVEMSHOP_ACCESS_TOKEN = 'shop-secret-token'
    settings.NUVEMSHOP_USER_AGENT = 'dealsync-tests'
    settings.SYNC_TRIGGER_TOKEN = ''
    settings.SYNC_BATCH_SIZE = 10
    settings.SYNC_MIN_BATCH_INTERVAL_MS = 0
    settings.SYNC_SAFETY_BUFFER_MS = 0
    settings.SYNC_MAX_RETRIES = 3
    settings.SYNC_PAGE_SIZE = 2
    settings.SYNC_UPSERT_BATCH_SIZE = 100
    return settings


@pytest.fixture(autouse=True)
def clear_read_cache():
    caches['deals_read'].clear()
    yield
    caches['deals_read'].clear()
