"""
Errors — Error kinds and outcome values shared by the extraction pipeline.

Every failure the pipeline raises is an ExtractorError tagged with an ErrorKind.
The orchestrator does not decide "skip this account" versus "abort the run" by
catching particular exception classes; it asks classify() for the Scope of the
failure and acts on that:

  RUN_FATAL   Configuration problems, primary key mismatches, authorization /
              transport (4xx) failures and failures to establish the account
              universe. The run stops with a user-facing message.
  RETRYABLE   Platform (backend) failures and network errors. Retried around
              report extraction; once retries are exhausted they are treated
              as ACCOUNT failures.
  ACCOUNT     Failures scoped to one account. Logged, the run continues.

Empty result sets are not errors at all: extraction reports them with
Outcome.EMPTY.
"""

from enum import Enum
from typing import List, Optional

import requests


class ErrorKind(Enum):
    USER = "user"
    CONFIGURATION = "configuration"
    PRIMARY_KEY = "primary_key"
    TRANSPORT = "transport"
    PLATFORM = "platform"


class Scope(Enum):
    RUN_FATAL = "run_fatal"
    RETRYABLE = "retryable"
    ACCOUNT = "account"


class Outcome(Enum):
    """Result of one table extraction."""

    COMPLETED = "completed"
    EMPTY = "empty"
    FAILED = "failed"


class ExtractorError(Exception):
    """Base class for all errors raised by the extractor."""

    kind = ErrorKind.USER


class UserError(ExtractorError):
    """A failure the user has to fix; its message is shown as-is."""

    kind = ErrorKind.USER


class ConfigurationError(UserError):
    """Missing or invalid settings. Raised before any remote call."""

    kind = ErrorKind.CONFIGURATION


class PrimaryKeyError(UserError):
    """Declared primary key columns are not part of the realized schema."""

    kind = ErrorKind.PRIMARY_KEY

    def __init__(self, invalid_keys: List[str], valid_columns: List[str]):
        self.invalid_keys = list(invalid_keys)
        self.valid_columns = list(valid_columns)
        super().__init__(
            'Primary keys "{}" are not valid. Expected keys: "{}"'.format(
                ", ".join(self.invalid_keys), ", ".join(self.valid_columns)
            )
        )


class QueryError(ExtractorError):
    """Base class for failures reported by the remote query gateway."""


class TransportError(QueryError):
    """Non-structured HTTP failure (4xx-style), e.g. an expired or missing grant.

    Attributes:
        code: HTTP status code.
        message: Human readable message extracted from the response body.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class PlatformError(QueryError):
    """Structured failure from the query backend (malformed query, quota, 5xx).

    Attributes:
        status: Machine status string (e.g., "INVALID_ARGUMENT").
        message: Top-level human message.
        errors: Messages of every individual platform error in the failure.
    """

    kind = ErrorKind.PLATFORM

    def __init__(self, status: str, message: str, errors: Optional[List[str]] = None):
        self.status = status
        self.message = message
        self.errors = list(errors or [])
        super().__init__(f"{status}: {message}")


def classify(exc: BaseException) -> Scope:
    """Map an exception to the scope the orchestrator acts on.

    ExtractorErrors are classified by their kind tag. Of the errors raised
    outside the pipeline only network failures from requests are retried.
    """
    kind = getattr(exc, "kind", None)
    if kind is ErrorKind.PLATFORM:
        return Scope.RETRYABLE
    if kind is ErrorKind.TRANSPORT:
        return Scope.RUN_FATAL if 400 <= exc.code < 500 else Scope.ACCOUNT
    if kind is None and isinstance(
        exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)
    ):
        return Scope.RETRYABLE
    return Scope.RUN_FATAL


def to_user_error(exc: QueryError) -> UserError:
    """Convert a gateway failure that ends the run into a user-facing error."""
    if exc.kind is ErrorKind.TRANSPORT:
        error = UserError(f"{exc.message} (code {exc.code})")
        error.code = exc.code
        return error
    if exc.kind is ErrorKind.PLATFORM:
        return UserError(f"{exc.status}: {exc.message}")
    return UserError(str(exc))
