# MIDDLEWARE DE LOGGING DE PETICIONES
# Registra cada peticion con su duracion y un identificador de correlacion

import json
import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import log_api_request
from app.api.v1.endpoints.metrics import api_request_duration_seconds

logger = logging.getLogger('app.requests')

# Rutas que no se registran para no llenar los logs
SKIP_PATHS = ('/metrics', '/api/v1/metrics', '/api/v1/health')


def generate_request_id() -> str:
    return f'req_{uuid.uuid4().hex[:12]}'


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        request.state.request_id = request_id
        start = time.perf_counter()
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f'Unhandled error: {request.method} {path}',
                extra={'request_id': request_id, 'method': request.method, 'endpoint': path},
            )
            response = Response(
                content=json.dumps({'error': 'Internal server error', 'request_id': request_id}),
                status_code=500,
                media_type='application/json'
            )

        elapsed = time.perf_counter() - start
        response.headers['X-Request-ID'] = request_id

        if path not in SKIP_PATHS:
            route = request.scope.get('route')
            endpoint = getattr(route, 'path', path)
            api_request_duration_seconds.labels(
                method=request.method, endpoint=endpoint, status=str(response.status_code)
            ).observe(elapsed)
            log_api_request(
                logger,
                request.method,
                path,
                status_code=response.status_code,
                response_time_ms=int(elapsed * 1000),
                request_id=request_id,
            )
        return response
