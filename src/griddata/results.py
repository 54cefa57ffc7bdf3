"""
Outcomes returned to the host by the exporter and importer.

Neither side raises into the host: every failure, including invalid options,
comes back as a failed result carrying a user-facing message.
"""
from dataclasses import dataclass
from typing import Any, Self

__all__ = ['ExportResult', 'ImportResult']


@dataclass(frozen=True)
class ExportResult:
    """Result of one export call."""
    succeeded: bool
    message: str | None = None
    table_name: str | None = None
    row_count: int = 0

    @classmethod
    def success(cls, table_name: str, row_count: int) -> Self:
        return cls(True, None, table_name, row_count)

    @classmethod
    def failure(cls, message: str, table_name: str | None = None) -> Self:
        return cls(False, message, table_name)

    def __bool__(self) -> bool:
        return self.succeeded


@dataclass(frozen=True)
class ImportResult:
    """Result of binding an import statement.

    On success `records` is a ResultStream; nothing has executed yet.
    """
    succeeded: bool
    message: str | None = None
    records: Any = None

    @classmethod
    def success(cls, records: Any) -> Self:
        return cls(True, None, records)

    @classmethod
    def failure(cls, message: str) -> Self:
        return cls(False, message)

    def __bool__(self) -> bool:
        return self.succeeded
