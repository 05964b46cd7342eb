from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Sequence, Union

import pandas as pd

RawRow = list[str]
RawMatrix = list[RawRow]

PREVIEW_ROWS = 20
PREVIEW_COLUMNS = 20


def cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def row_cell(row: Sequence[object], position: int) -> str:
    """Cell at ``position`` of a possibly ragged row; missing cells read as blank."""
    if position < len(row):
        return cell_text(row[position])
    return ""


@dataclass(frozen=True)
class HeaderCandidate:
    row_index: int
    score: int


@dataclass(frozen=True)
class HeaderDecision:
    """Outcome of header location, kept visible so a caller can offer an override."""

    row_index: int
    score: int
    accepted: bool
    explicit: bool = False
    candidates: tuple[HeaderCandidate, ...] = ()

    @property
    def header_row_index(self) -> int:
        if self.accepted or self.explicit:
            return self.row_index
        return 0

    @property
    def is_fallback(self) -> bool:
        return not (self.accepted or self.explicit)


@dataclass(frozen=True)
class Column:
    name: str
    position: int
    is_fallback: bool = False


@dataclass(frozen=True)
class Table:
    """Canonical headers + rows handed to editors, previews and exporters.

    Every record carries exactly the keys in ``headers`` and only string
    values. Edits go through ``with_value`` and produce a new Table.
    """

    headers: tuple[str, ...]
    rows: tuple[dict[str, str], ...] = ()
    fallback_headers: frozenset[str] = frozenset()

    @classmethod
    def from_records(
        cls,
        headers: Iterable[str],
        rows: Iterable[Mapping[str, object]],
        fallback_headers: Iterable[str] = (),
    ) -> "Table":
        headers = tuple(headers)
        records = tuple({h: cell_text(row.get(h)) for h in headers} for row in rows)
        return cls(headers=headers, rows=records, fallback_headers=frozenset(fallback_headers))

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def named_headers(self) -> tuple[str, ...]:
        return tuple(h for h in self.headers if h not in self.fallback_headers)

    @property
    def is_low_confidence(self) -> bool:
        return len(self.named_headers) < 3

    def records(self) -> list[dict[str, str]]:
        return [dict(row) for row in self.rows]

    def with_value(self, row_index: int, key: str, value: object) -> "Table":
        if key not in self.headers:
            raise KeyError(f"Unknown column: {key!r}")
        if not self.rows:
            return self
        idx = min(max(row_index, 0), len(self.rows) - 1)
        rows = tuple(
            {**row, key: cell_text(value)} if i == idx else row
            for i, row in enumerate(self.rows)
        )
        return replace(self, rows=rows)

    def to_dataframe(self) -> pd.DataFrame:
        # Duplicate header names collapse to one key per record, so build by position.
        unique = list(dict.fromkeys(self.headers))
        frame = pd.DataFrame([[row[h] for h in unique] for row in self.rows], columns=unique, dtype=str)
        return frame

    def preview(self, max_rows: int = PREVIEW_ROWS, max_columns: int = PREVIEW_COLUMNS) -> pd.DataFrame:
        frame = self.to_dataframe()
        return frame.iloc[:max_rows, :max_columns]


@dataclass(frozen=True)
class RescanAccepted:
    row_index: int
    score: int
    columns: tuple[Column, ...]


@dataclass(frozen=True)
class RescanRejected:
    reason: str
    row_index: int | None = None
    score: int | None = None
    current_score: int | None = None


RescanOutcome = Union[RescanAccepted, RescanRejected]


@dataclass
class Normalization:
    table: Table
    decision: HeaderDecision | None = None
    rescan: RescanOutcome | None = None
    helper_filter_applied: bool = False
    dropped_rows: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "headers": list(self.table.headers),
            "row_count": len(self.table),
            "low_confidence": self.table.is_low_confidence,
            "helper_filter_applied": self.helper_filter_applied,
            "dropped_rows": self.dropped_rows,
            "warnings": list(self.warnings),
            "decision": None,
            "rescan": None,
        }
        if self.decision is not None:
            payload["decision"] = {
                "row_index": self.decision.row_index,
                "header_row_index": self.decision.header_row_index,
                "score": self.decision.score,
                "accepted": self.decision.accepted,
                "explicit": self.decision.explicit,
            }
        if isinstance(self.rescan, RescanAccepted):
            payload["rescan"] = {"status": "accepted", "row_index": self.rescan.row_index, "score": self.rescan.score}
        elif isinstance(self.rescan, RescanRejected):
            payload["rescan"] = {
                "status": "rejected",
                "reason": self.rescan.reason,
                "row_index": self.rescan.row_index,
                "score": self.rescan.score,
            }
        return payload
