import uuid

import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'


class RequestContextMiddleware:
    """
    Привязывает request_id к контексту structlog на время запроса
    и возвращает его клиенту в заголовке X-Request-ID.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.path,
        )
        try:
            response = self.get_response(request)
            response[REQUEST_ID_HEADER] = request_id
            logger.info('request_finished', status_code=response.status_code)
            return response
        finally:
            structlog.contextvars.clear_contextvars()
