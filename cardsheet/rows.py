from __future__ import annotations

import math
from typing import Mapping, Sequence

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.models import cell_text


def fill_limit(header_count: int, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Rows with this many filled cells or fewer are noise."""
    return max(1, math.floor(header_count * config.fill_threshold))


def is_mostly_empty(
    row: Mapping[str, object],
    headers: Sequence[str],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> bool:
    filled = sum(1 for h in headers if cell_text(row.get(h)).strip())
    return filled <= fill_limit(len(headers), config)


def joined_row_text(row: Mapping[str, object], headers: Sequence[str]) -> str:
    # One cell per line so a phrase cannot straddle two cells.
    return "\n".join(cell_text(row.get(h)) for h in dict.fromkeys(headers))


def row_text_length(row: Mapping[str, object], headers: Sequence[str]) -> int:
    """Length of the row's values laid end to end, separators not counted."""
    return sum(len(cell_text(row.get(h))) for h in dict.fromkeys(headers))


def looks_like_helper_text(
    row: Mapping[str, object],
    headers: Sequence[str],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> bool:
    """Template instructions ("please fill in ...") rather than product data."""
    # 0 disables the length ceiling for templates with long product descriptions.
    if config.max_helper_text_length and row_text_length(row, headers) > config.max_helper_text_length:
        return True
    folded = joined_row_text(row, headers).casefold()
    return any(phrase in folded for phrase in config.casefolded_helper_phrases)


def filter_rows(
    rows: Sequence[Mapping[str, object]],
    headers: Sequence[str],
    config: ScoringConfig = DEFAULT_CONFIG,
    *,
    helper_text: bool = True,
) -> list[Mapping[str, object]]:
    kept = []
    for row in rows:
        if is_mostly_empty(row, headers, config):
            continue
        if helper_text and looks_like_helper_text(row, headers, config):
            continue
        kept.append(row)
    return kept
