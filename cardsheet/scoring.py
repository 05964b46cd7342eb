"""Header-row plausibility score.

A header row of a marketplace template is short, diverse labels, often
containing well-known field words (SKU, brand, price, ...). Category/group
rows repeat a handful of values, hint rows are long sentences, and auto-named
blank columns (``__EMPTY``) are noise. The score rewards the former and
penalises the latter; higher is more header-like.
"""

from __future__ import annotations

import re
from typing import Iterable

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.models import cell_text

SENTENCE_END_RE = re.compile(r"[^\W\d_][.!?](?:\s|$)")


def non_empty_values(values: Iterable[object]) -> list[str]:
    cleaned = []
    for value in values:
        text = cell_text(value).strip()
        if text:
            cleaned.append(text)
    return cleaned


def value_penalty(value: str, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    penalty = 0
    if config.placeholder_re.search(value):
        penalty += config.placeholder_penalty
    if len(value) > config.long_value_length:
        penalty += config.long_value_penalty
    if len(value.split()) > config.sentence_word_count:
        penalty += config.wordy_penalty
    if SENTENCE_END_RE.search(value):
        penalty += config.sentence_penalty
    return penalty


def score_header_row(values: Iterable[object], config: ScoringConfig = DEFAULT_CONFIG) -> int:
    cleaned = non_empty_values(values)
    if len(cleaned) < config.min_header_cells:
        return config.reject_score

    score = min(len(set(cleaned)), config.distinct_cap)
    for value in cleaned:
        if config.keyword_re.search(value):
            score += config.keyword_bonus
        score -= value_penalty(value, config)
    return score
