# ========================
# src/pipeline/exceptions.py
# ========================

"""
Pipeline Exceptions

Error taxonomy shared by the loader, cleaner and aggregator.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class DataFetchError(PipelineError):
    """Raised when the dataset cannot be fetched or parsed. Fatal for the run."""

    def __init__(self, message: str = "Could not load dataset", source: str = None):
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)


class FieldParseError(PipelineError):
    """Raised for a token that cannot be coerced to a number.

    Never escapes the cleaner: the offending field becomes None and the
    failure is counted.
    """

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Cannot parse {token!r} as a number")


class AggregationError(PipelineError):
    """Raised when records cannot be grouped (e.g. a missing grouping key)."""
