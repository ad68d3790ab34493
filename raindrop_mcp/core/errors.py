"""Error taxonomy for the Raindrop MCP server.

Every failure surfaced to a tool caller is one of the classes below.  Remote
failures derive from ``RaindropAPIError`` and are fully rendered into a
single-line message before they leave the client; the dispatcher forwards
``str(error)`` without re-reading status codes.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Classification attached to every surfaced failure."""

    CONNECTIVITY = "connectivity"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNEXPECTED_STATUS = "unexpected_status"
    UNEXPECTED_RESPONSE = "unexpected_response"
    UNKNOWN_TOOL = "unknown_tool"
    SHUTTING_DOWN = "shutting_down"
    INVALID_ARGUMENTS = "invalid_arguments"


class RaindropMCPError(Exception):
    """Base exception for all raindrop-mcp errors."""

    kind: ErrorKind


# ── Remote API failures ─────────────────────────────────────────────────


class RaindropAPIError(RaindropMCPError):
    """A classified failure of a call to the Raindrop.io REST API.

    Attributes:
        status_code: HTTP status of the final attempt, ``None`` when no
                     response was received.
        retryable:   Whether the client's retry policy applies to this kind.
    """

    retryable = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConnectivityError(RaindropAPIError):
    """No response was received (DNS failure, timeout, connection reset)."""

    kind = ErrorKind.CONNECTIVITY
    retryable = True

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"Network error: {detail}. The Raindrop.io API may be temporarily unavailable. "
            "DO NOT RETRY - this is a connectivity issue."
        )


class BadRequestError(RaindropAPIError):
    kind = ErrorKind.BAD_REQUEST

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"Bad request: {detail}. Please check the input values and DO NOT RETRY with the same parameters.",
            status_code=400,
        )


class UnauthorizedError(RaindropAPIError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self) -> None:
        super().__init__(
            "Authentication failed: Invalid or expired API token. Please check your RAINDROP_API_TOKEN. "
            "DO NOT RETRY - user must fix the token.",
            status_code=401,
        )


class ForbiddenError(RaindropAPIError):
    kind = ErrorKind.FORBIDDEN

    def __init__(self) -> None:
        super().__init__(
            "Access denied: You do not have permission for this operation. DO NOT RETRY.",
            status_code=403,
        )


class NotFoundError(RaindropAPIError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self) -> None:
        super().__init__(
            "Not found: The requested resource does not exist. It may have been deleted. DO NOT RETRY.",
            status_code=404,
        )


class RateLimitedError(RaindropAPIError):
    """429 still returned after the retry budget was spent."""

    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(self) -> None:
        super().__init__(
            "Rate limited: Too many requests. The server has already retried. "
            "Please inform the user to wait before trying again.",
            status_code=429,
        )


class ServerError(RaindropAPIError):
    """5xx still returned after the retry budget was spent."""

    kind = ErrorKind.SERVER_ERROR
    retryable = True

    def __init__(self, status_code: int, retries: int) -> None:
        self.retries = retries
        super().__init__(
            f"Raindrop.io server error ({status_code}): The service is temporarily unavailable. "
            f"Already retried {retries} times.",
            status_code=status_code,
        )


class UnexpectedStatusError(RaindropAPIError):
    """Any other non-success status (409, 422, ...)."""

    kind = ErrorKind.UNEXPECTED_STATUS

    def __init__(self, status_code: int, detail: str) -> None:
        self.detail = detail
        super().__init__(f"API error ({status_code}): {detail}. DO NOT RETRY.", status_code=status_code)


class UnexpectedResponseError(RaindropAPIError):
    """A success status whose body does not hold the expected entity.

    The request itself went through, so a write may already be applied.
    """

    kind = ErrorKind.UNEXPECTED_RESPONSE

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        self.detail = detail
        super().__init__(
            f"Unexpected response from Raindrop.io: {detail}. The operation may already have been applied. "
            "DO NOT RETRY - check the current state first.",
            status_code=status_code,
        )


def _remote_detail(body: Any) -> str | None:
    if isinstance(body, dict):
        return body.get("errorMessage") or body.get("error") or None
    return None


def error_from_response(status_code: int, body: Any, retries: int) -> RaindropAPIError:
    """Map a final non-success response to its error class.

    Args:
        status_code: HTTP status of the last attempt.
        body:        Parsed JSON body (``{}`` if none or not JSON).
        retries:     Retries already spent on this call (used in 5xx messages).
    """
    if status_code == 400:
        return BadRequestError(_remote_detail(body) or "Invalid parameters provided")
    if status_code == 401:
        return UnauthorizedError()
    if status_code == 403:
        return ForbiddenError()
    if status_code == 404:
        return NotFoundError()
    if status_code == 429:
        return RateLimitedError()
    if status_code >= 500:
        return ServerError(status_code, retries)
    return UnexpectedStatusError(status_code, _remote_detail(body) or f"HTTP {status_code}")


# ── Dispatch-level failures ─────────────────────────────────────────────


class UnknownToolError(RaindropMCPError):
    kind = ErrorKind.UNKNOWN_TOOL

    def __init__(self, tool_name: str, available: Iterable[str]) -> None:
        self.tool_name = tool_name
        self.available = list(available)
        super().__init__(
            f"Unknown tool: {tool_name}. Available tools: {', '.join(self.available)}. "
            "DO NOT RETRY with the same tool name."
        )


class ServerShuttingDownError(RaindropMCPError):
    kind = ErrorKind.SHUTTING_DOWN

    def __init__(self) -> None:
        super().__init__("Server is shutting down. Please wait and try again. DO NOT RETRY immediately.")


class InvalidArgumentsError(RaindropMCPError):
    """Tool arguments failed validation against the tool's input model.

    Attributes:
        tool_name: Tool whose arguments were rejected.
        problems:  ``(field, reason)`` pairs, one per validation failure.
    """

    kind = ErrorKind.INVALID_ARGUMENTS

    def __init__(self, tool_name: str, problems: list[tuple[str, str]]) -> None:
        self.tool_name = tool_name
        self.problems = problems
        detail = "; ".join(f"{field}: {reason}" for field, reason in problems)
        super().__init__(
            f"Invalid arguments for {tool_name}: {detail}. "
            "Please check the input values and DO NOT RETRY with the same parameters."
        )


class ToolCallError(RaindropMCPError):
    """Carries an error response's text through the protocol layer.

    The MCP SDK turns an exception raised by a ``call_tool`` handler into an
    ``isError`` result whose only content is ``str(exc)``.
    """
