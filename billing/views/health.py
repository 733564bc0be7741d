from django.db import connections
from django.http import JsonResponse


def healthz(request):
    """Liveness probe: confirms the default database answers a trivial query."""
    try:
        with connections['default'].cursor() as cursor:
            cursor.execute('SELECT 1')
            row = cursor.fetchone()
        return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1)})
    except Exception as e:
        return JsonResponse({'ok': False, 'error': str(e)}, status=503)
