"""
Vocab Review - Client-side controller for a vocabulary review service.

This package provides the session controller behind a vocabulary review
screen: paginated browsing and search with sequenced fetches, a throttled
known-word cache, and a tamper-checked persisted login session.
"""

__version__ = "0.1.0"
__author__ = "Vocab Review Team"

from vocab_review.exceptions import (
    VocabReviewError,
    ValidationError,
    LoginRequiredError,
    Unauthenticated,
    Unauthorized,
    ApplicationError,
    TransportError,
    PersistenceError,
    TamperingError,
)
from vocab_review.enums import (
    SessionModeKind,
    ResetScopeKind,
    ApiStatus,
    ApiErrorCode,
    RefreshOutcome,
    LogLevel,
)
from vocab_review.config import (
    ApiConfig,
    KnownWordsConfig,
    PaginationConfig,
    PersistenceConfig,
    LoggingConfig,
    ClientConfig,
    apply_env_overrides,
    load_config_from_file,
    save_config_to_file,
)
from vocab_review.models import (
    Word,
    AuthUser,
    WordPage,
    LoginPayload,
    KnownWordsPayload,
    Stats,
    PageSnapshot,
    SessionMode,
    ResetScope,
    StoredSession,
    WordRow,
    ViewSnapshot,
)
from vocab_review.api_client import (
    ApiClient,
    ApiError,
    ApiResult,
    VocabularyClient,
    AuthClient,
)
from vocab_review.session_store import (
    SessionStore,
)
from vocab_review.known_words import (
    KnownWordsCache,
    RefreshResult,
)
from vocab_review.pagination import (
    FetchTicket,
    PaginationState,
)
from vocab_review.audit_logger import (
    AuditLogger,
    LogEntry,
)
from vocab_review.controller import (
    AuthSession,
    VocabularySessionController,
    create_controller,
)
from vocab_review.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "VocabReviewError",
    "ValidationError",
    "LoginRequiredError",
    "Unauthenticated",
    "Unauthorized",
    "ApplicationError",
    "TransportError",
    "PersistenceError",
    "TamperingError",
    # Enums
    "SessionModeKind",
    "ResetScopeKind",
    "ApiStatus",
    "ApiErrorCode",
    "RefreshOutcome",
    "LogLevel",
    # Configuration
    "ApiConfig",
    "KnownWordsConfig",
    "PaginationConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "ClientConfig",
    "apply_env_overrides",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "Word",
    "AuthUser",
    "WordPage",
    "LoginPayload",
    "KnownWordsPayload",
    "Stats",
    "PageSnapshot",
    "SessionMode",
    "ResetScope",
    "StoredSession",
    "WordRow",
    "ViewSnapshot",
    # API Clients
    "ApiClient",
    "ApiError",
    "ApiResult",
    "VocabularyClient",
    "AuthClient",
    # Session Store
    "SessionStore",
    # Known Words
    "KnownWordsCache",
    "RefreshResult",
    # Pagination
    "FetchTicket",
    "PaginationState",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Controller
    "AuthSession",
    "VocabularySessionController",
    "create_controller",
    # CLI
    "cli_main",
    "create_parser",
]
