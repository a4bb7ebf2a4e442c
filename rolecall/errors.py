"""Error taxonomy shared by the RoleCall clients."""

import asyncio
from typing import Optional

import aiohttp


class RoleCallError(Exception):
    """Base exception for RoleCall errors."""

    user_message = "Something went wrong"

    def __str__(self) -> str:
        return super().__str__() or self.user_message


class ConfigurationError(RoleCallError):
    """Required configuration is missing or inconsistent."""

    user_message = "RoleCall is not configured correctly"


class InvalidURLError(RoleCallError):
    """A request URL could not be built. Indicates a programming error."""

    user_message = "Invalid URL"


class NotAuthenticatedError(RoleCallError):
    """No server address or token is available."""

    user_message = "Not authenticated. Please log in first."


class TransportError(RoleCallError):
    """Network-level failure: unreachable host, timeout, dropped connection."""

    user_message = "Could not reach the server"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class AuthorizationError(RoleCallError):
    """The server rejected the token (HTTP 401)."""

    user_message = "Invalid or expired token"


class ValidationFailedError(RoleCallError):
    """The server rejected the request with a human-readable reason (HTTP 422)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        return self.message


class ServerError(RoleCallError):
    """Any other non-success HTTP status."""

    def __init__(self, status: int, detail: str = ""):
        super().__init__(f"Server error: {status}")
        self.status = status
        self.detail = detail

    @property
    def user_message(self) -> str:
        return f"Server error: {self.status}"


class DecodeError(RoleCallError):
    """A payload did not have the expected shape."""

    user_message = "Received an unexpected response"

    def __init__(self, endpoint: str, field: Optional[str] = None, reason: str = ""):
        where = f"{endpoint} ({field})" if field else endpoint
        super().__init__(f"Failed to decode {where}: {reason}" if reason else f"Failed to decode {where}")
        self.endpoint = endpoint
        self.field = field


class ParseError(DecodeError):
    """An XML envelope could not be located or never closed."""


class ProviderUnsupportedError(RoleCallError):
    """The active filmography backend cannot perform this lookup."""

    user_message = "This lookup is not available for the current provider"

    def __init__(self, provider: str, operation: str):
        super().__init__(f"{provider} does not support {operation}")
        self.provider = provider
        self.operation = operation


class AuthTimeoutError(RoleCallError):
    """The PIN was never authorized within the polling budget."""

    user_message = "Authentication timeout. Please try again."


class SupersededError(RoleCallError):
    """A newer fetch of the same resource replaced this one."""

    user_message = "Request superseded by a newer refresh"

    def __init__(self, resource: str):
        super().__init__(f"Fetch of {resource} was superseded")
        self.resource = resource


TRANSIENT_EXCEPTIONS = (
    aiohttp.ClientConnectionError,
    aiohttp.ServerTimeoutError,
    asyncio.TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth retrying."""
    return isinstance(exc, TransportError) or isinstance(exc, TRANSIENT_EXCEPTIONS)


def describe_error(exc: BaseException) -> str:
    """Short message suitable for showing to a user."""
    if isinstance(exc, RoleCallError):
        return exc.user_message
    return str(exc) or exc.__class__.__name__
