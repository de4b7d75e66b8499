"""Error taxonomy for export runs.

Every fatal condition is a ``SitemapperError`` carrying the process exit
code the CLI should terminate with. Records that cannot be turned into a
sitemap entry are not errors: they are skipped and counted.
"""

from enum import Enum
from typing import Optional


class ErrorType(str, Enum):
    """Categorizes fatal export errors."""

    CONFIGURATION = "configuration"
    REFERENCE_DATA = "reference_data"
    UPSTREAM_QUERY = "upstream_query"
    UNKNOWN = "unknown"


class SitemapperError(Exception):
    """Base class for all fatal export errors.

    Attributes:
        message: Human-readable error message
        error_type: Categorization for reporting
        original_error: The underlying exception, if any
        exit_code: Process exit code for this class of failure
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNKNOWN,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.original_error = original_error
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_type={self.error_type}, "
            f"exit_code={self.exit_code})"
        )


class ConfigurationError(SitemapperError):
    """Raised when a required parameter is missing or invalid at startup."""

    exit_code = 1

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_type=ErrorType.CONFIGURATION,
            original_error=original_error,
        )


class ReferenceDataError(SitemapperError):
    """Raised when the country reference file cannot be read or parsed."""

    exit_code = 2

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_type=ErrorType.REFERENCE_DATA,
            original_error=original_error,
        )


class UpstreamQueryError(SitemapperError):
    """Raised when the search engine rejects or fails a request."""

    exit_code = 3

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        super().__init__(
            message=message,
            error_type=ErrorType.UPSTREAM_QUERY,
            original_error=original_error,
        )
