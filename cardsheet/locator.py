from __future__ import annotations

from typing import Sequence

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.errors import EmptyInputError
from cardsheet.models import HeaderCandidate, HeaderDecision
from cardsheet.scoring import score_header_row


def scan_candidates(
    matrix: Sequence[Sequence[object]],
    config: ScoringConfig = DEFAULT_CONFIG,
    scan_rows: int | None = None,
) -> list[HeaderCandidate]:
    limit = config.header_scan_rows if scan_rows is None else scan_rows
    return [
        HeaderCandidate(row_index=idx, score=score_header_row(matrix[idx] or [], config))
        for idx in range(min(len(matrix), max(limit, 1)))
    ]


def detect_header(
    matrix: Sequence[Sequence[object]],
    config: ScoringConfig = DEFAULT_CONFIG,
    scan_rows: int | None = None,
) -> HeaderDecision:
    """
    Pick the most header-like row among the leading ``scan_rows`` rows.

    The earliest row wins ties. When the best score stays below
    ``config.accept_threshold`` the decision is marked as not accepted and
    ``header_row_index`` falls back to row 0; the best candidate is still
    reported so the caller can offer it as a manual choice.
    """
    if not matrix:
        raise EmptyInputError("Cannot locate a header row: the matrix has no rows.")

    candidates = scan_candidates(matrix, config, scan_rows)
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.score > best.score:
            best = candidate

    return HeaderDecision(
        row_index=best.row_index,
        score=best.score,
        accepted=best.score >= config.accept_threshold,
        candidates=tuple(candidates),
    )


def locate_header_row(
    matrix: Sequence[Sequence[object]],
    config: ScoringConfig = DEFAULT_CONFIG,
    scan_rows: int | None = None,
) -> int:
    return detect_header(matrix, config, scan_rows).header_row_index


def explicit_decision(
    matrix: Sequence[Sequence[object]],
    header_row_index: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> HeaderDecision:
    """Decision for a row the caller chose; scored for reporting only."""
    score = score_header_row(matrix[header_row_index] or [], config)
    return HeaderDecision(
        row_index=header_row_index,
        score=score,
        accepted=score >= config.accept_threshold,
        explicit=True,
    )
