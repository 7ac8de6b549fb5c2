"""
Integration errors and upstream failure classification
"""

from typing import Any, Dict, Optional

import httpx

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class ConfigurationError(Exception):
    """Credentials or identifiers for an integration are missing"""


class APIClientError(Exception):
    """An upstream call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, dropped connections and 408/429/5xx responses"""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, APIClientError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    return isinstance(
        exc,
        (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError),
    )


def summarize_error(exc: BaseException) -> Dict[str, Any]:
    """Status/code/message triple suitable for structured logging"""
    status = None
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
    elif isinstance(exc, APIClientError):
        status = exc.status_code

    code = getattr(exc, "code", None)
    if code is None and isinstance(exc, httpx.RequestError):
        code = type(exc).__name__

    return {
        "status": status,
        "code": code,
        "error": str(exc) or type(exc).__name__,
    }
