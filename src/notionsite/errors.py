"""Error hierarchy for notion-site.

Every error raised by the package inherits from :class:`NotionSiteError`.
Each carries a machine-readable ``code`` (from :class:`ErrorCode`), a
human-readable ``message``, an optional structured ``context`` dict, and an
optional ``cause`` (chained exception).

Only the API errors and :class:`NotionSiteTemplateError` ever escape a page
conversion.  Media and enrichment errors are raised internally and recovered
at the block that caused them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the package can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    RENDER_ERROR = "RENDER_ERROR"
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    MEDIA_ERROR = "MEDIA_ERROR"
    ENRICHMENT_ERROR = "ENRICHMENT_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionSiteError(Exception):
    """Base exception for all notion-site errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


class _CodedError(NotionSiteError):
    """Shared constructor for subclasses bound to a single error code."""

    _code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=self._code,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class NotionSiteValidationError(_CodedError):
    """Notion API returned 400 (or another non-retryable 4xx).

    Context keys: ``status_code``, ``notion_code``, ``body``.
    """

    _code = ErrorCode.VALIDATION_ERROR


class NotionSiteAuthError(_CodedError):
    """Notion API returned 401: the integration token is invalid or expired.

    Context keys: ``status_code``, ``notion_code``.
    """

    _code = ErrorCode.AUTH_ERROR


class NotionSitePermissionError(_CodedError):
    """Notion API returned 403: the integration lacks access to the resource.

    Context keys: ``status_code``, ``operation``.
    """

    _code = ErrorCode.PERMISSION_ERROR


class NotionSiteNotFoundError(_CodedError):
    """Notion API returned 404: the requested page, block or database is
    missing or not shared with the integration.

    Context keys: ``status_code``, ``path``.
    """

    _code = ErrorCode.NOT_FOUND


class NotionSiteRateLimitError(_CodedError):
    """Notion API returned 429 and the caller asked not to wait.

    Context keys: ``retry_after_seconds``, ``attempt``.
    """

    _code = ErrorCode.RATE_LIMITED


class NotionSiteRetryExhaustedError(_CodedError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    _code = ErrorCode.RETRY_EXHAUSTED


class NotionSiteNetworkError(_CodedError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``attempt``.
    """

    _code = ErrorCode.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class NotionSiteConfigError(_CodedError):
    """The configuration file is missing, unparsable or incomplete.

    Context keys: ``path``, ``field``.
    """

    _code = ErrorCode.CONFIG_ERROR


# ---------------------------------------------------------------------------
# Rendering errors
# ---------------------------------------------------------------------------

class NotionSiteRenderError(NotionSiteError):
    """Base class for errors raised while rendering a page."""

    def __init__(
        self,
        code: str = ErrorCode.RENDER_ERROR,
        message: str = "Render error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class NotionSiteTemplateError(NotionSiteRenderError):
    """No template is registered for a block type, or the page-level
    content template could not be read or filled.

    Aborts the current document only.

    Context keys: ``template``, ``block_id``, ``path``, ``placeholder``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TEMPLATE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NotionSiteMediaError(NotionSiteRenderError):
    """An asset could not be downloaded or written to disk.

    Context keys: ``url``, ``kind``, ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.MEDIA_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NotionSiteEnrichmentError(NotionSiteRenderError):
    """A block's side-channel data (OpenGraph lookup, embed parsing) could
    not be produced.

    Context keys: ``url``, ``block_type``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.ENRICHMENT_ERROR,
            message=message,
            context=context,
            cause=cause,
        )
