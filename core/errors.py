"""
Error taxonomy and classification.

Upstream failures arrive as httpx exceptions, pydantic validation errors or
plain exceptions. ``classify_error`` maps any of them onto a small set of
codes with a retryable flag, which drives both retry decisions and the
remediation text shown to the calling agent.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from pydantic import ValidationError

__all__ = [
    "ErrorCode",
    "StructuredError",
    "ResearchToolError",
    "MissingCredentialsError",
    "UpstreamResponseError",
    "classify_error",
    "is_retryable_error",
]


class ErrorCode(str, Enum):
    """Error codes surfaced to the calling agent."""

    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    NOT_FOUND = "NOT_FOUND"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_INPUT = "INVALID_INPUT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class StructuredError:
    code: ErrorCode
    message: str
    retryable: bool = False
    status_code: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════════
# Exceptions
# ══════════════════════════════════════════════════════════════════════════════


class ResearchToolError(Exception):
    """Base class for errors raised by upstream clients."""


class MissingCredentialsError(ResearchToolError):
    """Raised when a client is created without its API credentials."""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"{variable} is not set")


class UpstreamResponseError(ResearchToolError):
    """Raised when an upstream API answers with an unusable payload."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


# ══════════════════════════════════════════════════════════════════════════════
# Classification
# ══════════════════════════════════════════════════════════════════════════════


def _classify_status(status: int, message: str) -> StructuredError:
    if status == 429:
        return StructuredError(ErrorCode.RATE_LIMITED, message, True, status)
    if status in (401, 403):
        return StructuredError(ErrorCode.AUTH_ERROR, message, False, status)
    if status == 404:
        return StructuredError(ErrorCode.NOT_FOUND, message, False, status)
    if status == 408:
        return StructuredError(ErrorCode.TIMEOUT, message, True, status)
    if status >= 500:
        return StructuredError(ErrorCode.SERVICE_UNAVAILABLE, message, True, status)
    return StructuredError(ErrorCode.INVALID_REQUEST, message, False, status)


def classify_error(error: BaseException) -> StructuredError:
    """Map an exception onto an ``ErrorCode`` with a retryable flag."""
    message = str(error) or type(error).__name__

    if isinstance(error, httpx.TimeoutException):
        return StructuredError(ErrorCode.TIMEOUT, f"Request timed out: {message}", True)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return _classify_status(status, f"HTTP {status}: {error.response.reason_phrase}")
    if isinstance(error, httpx.TransportError):
        return StructuredError(ErrorCode.NETWORK_ERROR, f"Network error: {message}", True)
    if isinstance(error, ValidationError):
        return StructuredError(ErrorCode.INVALID_INPUT, message, False)
    if isinstance(error, MissingCredentialsError):
        return StructuredError(ErrorCode.CONFIGURATION_ERROR, message, False)
    if isinstance(error, UpstreamResponseError) and error.status_code:
        return _classify_status(error.status_code, message)
    if isinstance(error, (json.JSONDecodeError, UpstreamResponseError)):
        return StructuredError(ErrorCode.PARSE_ERROR, message, False)
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return StructuredError(ErrorCode.TIMEOUT, f"Operation timed out: {message}", True)

    # Client libraries with their own HTTP stack (redditwarp)
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return _classify_status(status, f"HTTP {status}: {message}")

    lowered = message.lower()
    if "rate limit" in lowered or "too many requests" in lowered:
        return StructuredError(ErrorCode.RATE_LIMITED, message, True)
    if "timeout" in lowered or "timed out" in lowered:
        return StructuredError(ErrorCode.TIMEOUT, message, True)
    if "api key" in lowered or "unauthorized" in lowered:
        return StructuredError(ErrorCode.AUTH_ERROR, message, False)

    return StructuredError(ErrorCode.UNKNOWN_ERROR, message, False)


def is_retryable_error(error: BaseException) -> bool:
    return classify_error(error).retryable
