"""
Request logging and application log configuration.

Each request is logged twice as a JSON line, when it starts and when it
completes, tagged with a request id and the authenticated user. Credentials
in headers are masked.
"""

import json
import logging
import re
import time
import traceback
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


# Header and field names whose values are never logged
SENSITIVE_FIELD_PATTERNS = [
    re.compile(r'password', re.IGNORECASE),
    re.compile(r'token', re.IGNORECASE),
    re.compile(r'api[_-]?key', re.IGNORECASE),
    re.compile(r'secret', re.IGNORECASE),
    re.compile(r'authorization', re.IGNORECASE),
    re.compile(r'cookie', re.IGNORECASE),
    re.compile(r'session', re.IGNORECASE),
]

# Health checks hit these constantly
UNLOGGED_PATHS = ('/health', '/ready')


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data."""
    return any(pattern.search(field_name) for pattern in SENSITIVE_FIELD_PATTERNS)


def mask_headers(headers: dict) -> dict:
    """
    Mask sensitive header values.

    The authorization scheme is kept (``Bearer [REDACTED]``) so a missing or
    wrong scheme is still visible in the logs.
    """
    masked = {}
    for key, value in headers.items():
        if not is_sensitive_field(key):
            masked[key] = value
        elif key.lower() == 'authorization' and ' ' in value:
            masked[key] = f"{value.split(' ', 1)[0]} [REDACTED]"
        else:
            masked[key] = "[REDACTED]"
    return masked


def should_log_request(path: str) -> bool:
    return not path.startswith(UNLOGGED_PATHS)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with timing and status.

    The ``x-request-id`` header is taken from the request or generated, and
    echoed on the response. 4xx completions log at warning, 5xx at error.
    """

    def __init__(self, app: ASGIApp, log_headers: bool = True):
        super().__init__(app)
        self.log_headers = log_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers['x-request-id'] = request_id
            return response

        entry = {
            'request_id': request_id,
            'method': request.method,
            'path': request.url.path,
            'user_id': request.scope.get('user_id'),
        }
        started = {'event': 'request_started', **entry}
        if self.log_headers:
            started['headers'] = mask_headers(dict(request.headers))
        logger.info(json.dumps(started))

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            status_code = response.status_code if response is not None else 500
            completed = {
                'event': 'request_completed',
                **entry,
                'status_code': status_code,
                'duration_ms': round((time.perf_counter() - start_time) * 1000, 2),
            }
            if status_code >= 500:
                logger.error(json.dumps(completed))
            elif status_code >= 400:
                logger.warning(json.dumps(completed))
            else:
                logger.info(json.dumps(completed))

        response.headers['x-request-id'] = request_id
        return response


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for extra in ('request_id', 'user_id'):
            if hasattr(record, extra):
                log_data[extra] = getattr(record, extra)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_data['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Format records as JSON instead of plain text
    """
    level = getattr(logging, log_level.upper())

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Quieten chatty libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
