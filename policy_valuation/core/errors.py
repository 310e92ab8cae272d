"""
Error taxonomy for the valuation pipeline.

Only InvalidInputError ever reaches the caller. Collaborator failures are
recovered where they happen and recorded as DegradedDataWarning entries on
the result.
"""
from dataclasses import dataclass
from typing import Iterable


class InvalidInputError(ValueError):
    """Malformed policy facts. Names every offending field."""

    def __init__(self, fields: Iterable[str], message: str | None = None):
        self.fields = list(dict.fromkeys(fields))
        super().__init__(message or f"invalid policy facts: {', '.join(self.fields)}")


class CollaboratorError(RuntimeError):
    """An external collaborator (market data, ratings) failed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class CollaboratorTimeoutError(CollaboratorError):
    def __init__(self, source: str, timeout: float):
        self.timeout = timeout
        super().__init__(source, f"timed out after {timeout:g}s")


@dataclass(frozen=True)
class DegradedDataWarning:
    """Non-fatal: an input was missing or replaced by a fallback."""
    source: str   # "market" | "rating" | "document" | "real_estate"
    reason: str

    def to_dict(self) -> dict:
        return {"source": self.source, "reason": self.reason}
