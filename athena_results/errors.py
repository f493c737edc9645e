from typing import Optional


class AthenaQueryError(Exception):
    """Raised when a query cannot be submitted, fails, or its results cannot be read."""

    def __init__(self, message: str, query_execution_id: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.query_execution_id = query_execution_id
        self.reason = reason


class QueryTimeoutError(AthenaQueryError):
    """The query did not reach a terminal state before the deadline."""


class ResultProcessingError(AthenaQueryError):
    """Wraps any failure while fetching, decoding or handing off query results."""


class BatchSizeError(ValueError):
    pass
