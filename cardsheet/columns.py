from __future__ import annotations

from typing import Iterable, Sequence

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.models import Column, cell_text, row_cell


def clean_header_cell(value: object, config: ScoringConfig = DEFAULT_CONFIG) -> str:
    """Trimmed label, or ``""`` for blanks and auto-generated placeholders."""
    text = cell_text(value).strip()
    if config.placeholder_re.search(text):
        return ""
    return text


def _column_has_data(position: int, data_rows: Sequence[Sequence[object]]) -> bool:
    return any(row_cell(row, position).strip() for row in data_rows)


def clean_columns(
    header_row: Sequence[object],
    data_rows: Sequence[Sequence[object]] | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[Column]:
    """
    Turn a raw header row into named columns.

    Blank and placeholder cells are named after their 1-based position in
    ``header_row`` so the fallback name does not move when neighbours are
    dropped. With ``data_rows`` given, a blank-named column that holds no
    value in any data row carries nothing and is dropped. Identical labels
    are kept as they are.
    """
    columns: list[Column] = []
    for position, raw in enumerate(header_row):
        name = clean_header_cell(raw, config)
        if name:
            columns.append(Column(name=name, position=position))
            continue
        if data_rows is not None and not _column_has_data(position, data_rows):
            continue
        columns.append(Column(name=config.fallback_name(position), position=position, is_fallback=True))
    return columns


def named_columns(columns: Iterable[Column], config: ScoringConfig = DEFAULT_CONFIG) -> list[Column]:
    """Columns whose name came from the source rather than from positional fallback."""
    return [
        column
        for column in columns
        if not column.is_fallback and not config.fallback_name_re.match(column.name)
    ]


def fallback_names(columns: Sequence[Column], config: ScoringConfig = DEFAULT_CONFIG) -> set[str]:
    named = {column.name for column in named_columns(columns, config)}
    return {column.name for column in columns if column.name not in named}
