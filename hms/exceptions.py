from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response


class SlotUnavailable(ValueError):
    """The doctor already has an appointment at that date and time."""


# Service-layer exceptions and the HTTP status they surface as; first match wins
SERVICE_ERRORS = (
    (SlotUnavailable, 409, 'slot_taken'),
    (PermissionError, 403, 'forbidden'),
    (LookupError, 404, 'not_found'),
    (ValueError, 400, 'invalid'),
)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        for exc_type, status_code, code in SERVICE_ERRORS:
            if isinstance(exc, exc_type):
                return Response({'ok': False, 'error': {'code': code, 'message': str(exc)}}, status=status_code)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
