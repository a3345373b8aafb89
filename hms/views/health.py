import logging

from django.core.cache import cache
from django.db import connections
from django.http import JsonResponse

from hms.services import whatsapp

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness check: database round trip, cache round trip and integration flags."""
    checks = {'db': False, 'cache': False}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        checks['db'] = bool(row and row[0] == 1)
        cache.set('healthz', 1, 5)
        checks['cache'] = cache.get('healthz') == 1
    except Exception as e:
        logger.exception('health check failed')
        return JsonResponse({'ok': False, **checks, 'error': str(e)}, status=500)
    return JsonResponse({'ok': checks['db'], **checks, 'whatsapp': whatsapp.is_configured()})
