import json
import logging
from datetime import date

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .cache import DealsReadService, period_range
from .health import CRITICAL, sync_health
from .http_client import MissingCredentialsError
from .pipeline import SyncAlreadyRunning, SyncPipeline
from .targets import get_target

logger = logging.getLogger(__name__)

MAX_PERIOD_DAYS = 3650
BOOLEAN_OPTIONS = ('force', 'dry_run')


def _authorized(request) -> bool:
    token = getattr(settings, 'SYNC_TRIGGER_TOKEN', '')
    if not token:
        return True
    return request.headers.get('Authorization') == f'Bearer {token}'


def _parse_body(request) -> dict:
    if not request.body:
        return {}
    body = json.loads(request.body)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object.")
    for option in BOOLEAN_OPTIONS:
        if option in body and not isinstance(body[option], bool):
            raise ValueError(f"'{option}' must be true or false.")
    return body


@csrf_exempt
@require_POST
def sync_trigger(request, target_name):
    """Run one sync pass for `target_name`. Body: empty or {"force": bool, "dry_run": bool}."""
    if not _authorized(request):
        return JsonResponse({'success': False, 'error': 'Unauthorized'}, status=401)
    try:
        target = get_target(target_name)
    except KeyError:
        return JsonResponse({'success': False, 'error': f"Unknown sync target '{target_name}'."}, status=404)
    try:
        body = _parse_body(request)
    except ValueError as exc:
        return JsonResponse({'success': False, 'error': f"Invalid request body: {exc}"}, status=400)

    try:
        summary = SyncPipeline(target).run(
            force=body.get('force', False),
            dry_run=body.get('dry_run', False),
        )
    except MissingCredentialsError as exc:
        logger.error("Cannot run %s sync: %s", target_name, exc)
        return JsonResponse({'success': False, 'error': str(exc)}, status=500)
    except SyncAlreadyRunning as exc:
        return JsonResponse({'success': False, 'error': str(exc), 'is_running': True}, status=409)
    except Exception as exc:
        logger.exception("Unexpected error during %s sync.", target_name)
        return JsonResponse({'success': False, 'error': str(exc) or 'Sync failed'}, status=500)

    return JsonResponse(summary)


@require_GET
def sync_health_view(request, target_name):
    try:
        target = get_target(target_name)
    except KeyError:
        return JsonResponse({'error': f"Unknown sync target '{target_name}'."}, status=404)
    try:
        return JsonResponse(sync_health(target.name, target.model))
    except Exception as exc:
        logger.exception("Health check for %s failed.", target_name)
        return JsonResponse(
            {
                'status': CRITICAL,
                'timestamp': timezone.now().isoformat(),
                'error': str(exc),
                'issues': ['Health check failed'],
            },
            status=500,
        )


@require_GET
def deals_view(request):
    """Cached deals with a closing date in [startDate, endDate] or the last `period` days."""
    start_param = request.GET.get('startDate')
    end_param = request.GET.get('endDate')
    try:
        if start_param and end_param:
            start, end = date.fromisoformat(start_param), date.fromisoformat(end_param)
            period = None
        else:
            period = int(request.GET.get('period', '30'))
            if not 1 <= period <= MAX_PERIOD_DAYS:
                raise ValueError(f"period must be between 1 and {MAX_PERIOD_DAYS} days")
            start, end = period_range(period, timezone.localdate())
    except (ValueError, OverflowError) as exc:
        return JsonResponse({'error': f"Invalid date range: {exc}"}, status=400)

    payload = DealsReadService.default().deals_between(start, end)
    payload['period'] = period
    return JsonResponse(payload)
