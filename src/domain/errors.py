from __future__ import annotations

from decimal import Decimal
from pathlib import Path


class LedgerProcessingError(Exception):
    """Base class for errors that abort a ledger run."""


class SchemaViolationError(LedgerProcessingError):
    def __init__(self, *, source_path: Path | str, line_number: int, reason: str) -> None:
        self.source_path = str(source_path)
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Schema violation in {self.source_path} line_number={line_number}: {reason}")


class SemanticViolationError(LedgerProcessingError):
    def __init__(
        self,
        *,
        category: str,
        operation: str,
        change: Decimal,
        line_number: int,
        reason: str,
    ) -> None:
        self.category = category
        self.operation = operation
        self.change = change
        self.line_number = line_number
        self.reason = reason
        message = (
            f"Invalid entry category={category} operation={operation} "
            f"change={change} line_number={line_number}: {reason}"
        )
        super().__init__(message)


class UnknownOperationError(LedgerProcessingError):
    def __init__(self, *, category: str, operation: str, file_idx: int, line_number: int) -> None:
        self.category = category
        self.operation = operation
        self.file_idx = file_idx
        self.line_number = line_number
        message = (
            f"file_idx: {file_idx} line_number: {line_number}, "
            f"category: {category} operation: {operation}, unknown"
        )
        super().__init__(message)


class ConservationError(LedgerProcessingError):
    def __init__(self, *, asset: str, raw_quantity: Decimal, consolidated_quantity: Decimal) -> None:
        self.asset = asset
        self.raw_quantity = raw_quantity
        self.consolidated_quantity = consolidated_quantity
        message = (
            f"Quantity mismatch after consolidation for asset={asset} "
            f"raw={raw_quantity} consolidated={consolidated_quantity}"
        )
        super().__init__(message)
