"""
Enumeration types for the vocabulary review client.

These enums provide type-safe constants for session modes, API result
states, error codes and logging levels.
"""

from enum import Enum


class SessionModeKind(Enum):
    """Browsing mode of the word list."""

    NORMAL = "normal"
    SEARCH = "search"


class ResetScopeKind(Enum):
    """Which known words a reset forgets."""

    CURRENT_PAGE = "current_page"
    ALL = "all"


class ApiStatus(Enum):
    """Decoded outcome of a remote API call."""

    OK = "ok"
    APP_ERROR = "app_error"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT_ERROR = "transport_error"


class ApiErrorCode(Enum):
    """Error codes attached to non-OK API results."""

    APPLICATION = "application"
    UNAUTHORIZED = "unauthorized"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"


class RefreshOutcome(Enum):
    """What a known-word refresh request actually did."""

    REFRESHED = "refreshed"
    FAILED = "failed"
    DISCARDED = "discarded"
    SKIPPED_NO_SESSION = "skipped_no_session"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_THROTTLED = "skipped_throttled"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
