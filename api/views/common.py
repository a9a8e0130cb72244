import structlog
from rest_framework import status
from rest_framework.response import Response

logger = structlog.get_logger(__name__)


def error_response(code: str, message: str, http_status: int) -> Response:
    return Response({
        'error': {
            'code': code,
            'message': message
        }
    }, status=http_status)


def validation_error_response(errors: dict) -> Response:
    """Первая ошибка валидации в виде 'поле: сообщение'"""
    field, messages = next(iter(errors.items()))
    message = messages[0] if isinstance(messages, list) and messages else messages
    if isinstance(message, dict):
        message = 'invalid value'
    return error_response('VALIDATION_ERROR', f'{field}: {message}', status.HTTP_400_BAD_REQUEST)


def server_error_response(view_name: str) -> Response:
    logger.exception('unexpected_error', view=view_name)
    return error_response('SERVER_ERROR', 'Internal server error', status.HTTP_500_INTERNAL_SERVER_ERROR)
