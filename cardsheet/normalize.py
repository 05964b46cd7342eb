"""
normalize.py — raw matrix / first-row records → canonical Table

Two entry points share the same column cleaning and row filtering:

    normalize_matrix(matrix, header_row_index=None)
        Workbook-style input. The header row is the caller's explicit choice
        or the locator's guess; nothing is re-scanned.

    normalize_records(headers, rows)
        Input where an upstream extraction already assumed row 0 is the
        header. The first data rows are re-scanned for a better header row
        and the table is re-based on it when the evidence is strong enough.

Both return a ``Normalization`` carrying the Table plus the decisions taken.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from cardsheet.columns import clean_columns, clean_header_cell, fallback_names, named_columns
from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.errors import EmptySheetError, NoHeadersError
from cardsheet.locator import detect_header, explicit_decision, scan_candidates
from cardsheet.models import (
    Column,
    Normalization,
    RescanAccepted,
    RescanOutcome,
    RescanRejected,
    Table,
    cell_text,
    row_cell,
)
from cardsheet.rows import filter_rows
from cardsheet.scoring import score_header_row


def build_records(data_rows: Sequence[Sequence[object]], columns: Sequence[Column]) -> list[dict[str, str]]:
    # A repeated column name keeps the value of its right-most column.
    records = []
    for row in data_rows:
        record: dict[str, str] = {}
        for column in columns:
            record[column.name] = row_cell(row, column.position)
        records.append(record)
    return records


def _assemble(
    columns: Sequence[Column],
    data_rows: Sequence[Sequence[object]],
    config: ScoringConfig,
    *,
    helper_text: bool,
) -> tuple[Table, int]:
    headers = [column.name for column in columns]
    records = build_records(data_rows, columns)
    kept = filter_rows(records, headers, config, helper_text=helper_text)
    table = Table(
        headers=tuple(headers),
        rows=tuple(kept),
        fallback_headers=frozenset(fallback_names(columns, config)),
    )
    return table, len(records) - len(kept)


def header_confidence(columns: Sequence[Column], config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Score of the source-named columns alone.

    Placeholders and positional fallback names carry no evidence, so a header
    scores the same whether it comes from a raw row or from a canonical Table.
    Both paths gate the helper-text filter on this value.
    """
    return score_header_row([column.name for column in named_columns(columns, config)], config)


def _low_confidence_warning(table: Table, config: ScoringConfig) -> str | None:
    named = len(table.named_headers)
    if named < config.min_named_columns:
        return f"Only {named} named column(s) found; treat this table as low confidence."
    return None


# ══════════════════════════════════════════════════════════════════════════════
# MATRIX PATH
# ══════════════════════════════════════════════════════════════════════════════

def normalize_matrix(
    matrix: Sequence[Sequence[object]],
    header_row_index: int | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Normalization:
    if not matrix:
        raise EmptySheetError("The sheet is empty: there are no rows to read.")

    if header_row_index is None:
        decision = detect_header(matrix, config)
    else:
        if not 0 <= header_row_index < len(matrix):
            raise NoHeadersError(
                f"Header row {header_row_index + 1} is outside the sheet ({len(matrix)} rows)."
            )
        decision = explicit_decision(matrix, header_row_index, config)

    warnings: list[str] = []
    if decision.is_fallback:
        warnings.append(
            f"No row looks like a confident header (best was row {decision.row_index + 1} "
            f"with score {decision.score}); using row 1."
        )

    idx = decision.header_row_index
    header_row = list(matrix[idx] or [])
    data_rows = [list(row or []) for row in matrix[idx + 1 :]]

    if not any(clean_header_cell(cell, config) for cell in header_row):
        raise NoHeadersError(f"Row {idx + 1} has no column names; choose another header row.")
    columns = clean_columns(header_row, data_rows, config)

    helper = not decision.is_fallback or header_confidence(columns, config) >= config.accept_threshold
    table, dropped = _assemble(columns, data_rows, config, helper_text=helper)
    if dropped:
        warnings.append(f"Dropped {dropped} empty or instruction row(s).")
    low = _low_confidence_warning(table, config)
    if low:
        warnings.append(low)

    return Normalization(
        table=table,
        decision=decision,
        helper_filter_applied=helper,
        dropped_rows=dropped,
        warnings=warnings,
    )


def matrix_to_table(
    matrix: Sequence[Sequence[object]],
    header_row_index: int | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Table:
    return normalize_matrix(matrix, header_row_index, config).table


# ══════════════════════════════════════════════════════════════════════════════
# RECORDS PATH
# ══════════════════════════════════════════════════════════════════════════════

def _scoring_positions(columns: Sequence[Column], width: int, config: ScoringConfig) -> list[int]:
    named = named_columns(columns, config)
    if len(named) >= config.min_named_columns:
        return [column.position for column in named]
    # Too few labels to align on; look at every cell instead.
    return list(range(width))


def rescan_header(
    raw_headers: Sequence[object],
    data_rows: Sequence[Sequence[object]],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> RescanOutcome:
    """
    Look for a better header row inside the first ``config.rescan_rows`` data rows.

    Rows are positional (``data_rows[i][p]`` belongs to ``raw_headers[p]``).
    A row is promoted only if it clears the acceptance threshold, outscores
    the current header, and still yields enough named columns once cleaned.
    """
    columns = clean_columns(raw_headers, data_rows, config)
    positions = _scoring_positions(columns, len(raw_headers), config)
    current = score_header_row([row_cell(raw_headers, p) for p in positions], config)

    if not data_rows:
        return RescanRejected("no data rows to scan", current_score=current)

    window = [[row_cell(row, p) for p in positions] for row in data_rows[: config.rescan_rows]]
    candidates = scan_candidates(window, config, scan_rows=config.rescan_rows)
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.score > best.score:
            best = candidate

    if best.score < config.accept_threshold:
        return RescanRejected("no row scored as a header", best.row_index, best.score, current)
    if best.score <= current:
        return RescanRejected("current header scores at least as high", best.row_index, best.score, current)

    promoted = clean_columns(data_rows[best.row_index], data_rows[best.row_index + 1 :], config)
    if len(named_columns(promoted, config)) < config.min_named_columns:
        return RescanRejected(
            f"promoted row leaves fewer than {config.min_named_columns} named columns",
            best.row_index,
            best.score,
            current,
        )
    return RescanAccepted(row_index=best.row_index, score=best.score, columns=tuple(promoted))


def normalize_records(
    headers: Sequence[object],
    rows: Sequence[Mapping[str, object]],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Normalization:
    raw_headers = [cell_text(h) for h in headers]
    positional_rows = [[row.get(h) for h in raw_headers] for row in rows]

    outcome = rescan_header(raw_headers, positional_rows, config)
    warnings: list[str] = []

    if isinstance(outcome, RescanAccepted):
        columns: list[Column] = list(outcome.columns)
        data_rows = positional_rows[outcome.row_index + 1 :]
        helper = True
        warnings.append(
            f"Header found in data row {outcome.row_index + 1} (score {outcome.score}); "
            f"{outcome.row_index + 1} row(s) above the data were discarded."
        )
    else:
        columns = clean_columns(raw_headers, positional_rows, config)
        data_rows = positional_rows
        helper = header_confidence(columns, config) >= config.accept_threshold
        if outcome.reason != "no data rows to scan" and not helper:
            warnings.append(f"Kept the original header row ({outcome.reason}).")

    if not columns:
        raise NoHeadersError("No column names found; choose another header row.")

    table, dropped = _assemble(columns, data_rows, config, helper_text=helper)
    if dropped:
        warnings.append(f"Dropped {dropped} empty or instruction row(s).")
    low = _low_confidence_warning(table, config)
    if low:
        warnings.append(low)

    return Normalization(
        table=table,
        rescan=outcome,
        helper_filter_applied=helper,
        dropped_rows=dropped,
        warnings=warnings,
    )


def normalize_table(table: Table, config: ScoringConfig = DEFAULT_CONFIG) -> Table:
    return normalize_records(table.headers, table.rows, config).table
