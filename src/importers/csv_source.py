from __future__ import annotations

from csv import DictReader
from pathlib import Path
from typing import Iterator, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from domain.errors import SchemaViolationError
from utils.time_ms import parse_utc_time_ms

RowModel = TypeVar("RowModel", bound=BaseModel)


def parse_time_field(value: str | int | None) -> int:
    if isinstance(value, int):
        return value
    if not value:
        raise ValueError("missing timestamp")
    return parse_utc_time_ms(value)


def read_rows(
    source_path: Path,
    model: type[RowModel],
    fieldnames: Sequence[str],
) -> Iterator[tuple[int, RowModel]]:
    """Yield ``(line_number, row)`` for every record of an export.

    Line numbers count the header as line 1, so the first record is line 2.
    """
    with source_path.open(encoding="utf-8-sig", newline="") as handle:
        reader = DictReader(handle)
        if reader.fieldnames is None:
            raise SchemaViolationError(source_path=source_path, line_number=1, reason="file is empty or missing headers")

        missing = set(fieldnames) - {name.strip() for name in reader.fieldnames}
        if missing:
            raise SchemaViolationError(
                source_path=source_path,
                line_number=1,
                reason=f"missing required columns: {', '.join(sorted(missing))}",
            )

        for rec_idx, row in enumerate(reader):
            line_number = rec_idx + 2
            cleaned = {key.strip(): value for key, value in row.items() if key is not None}
            try:
                parsed = model.model_validate(cleaned)
            except ValidationError as exc:
                raise SchemaViolationError(source_path=source_path, line_number=line_number, reason=str(exc)) from exc
            yield line_number, parsed
