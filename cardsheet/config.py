"""Tunable knobs for header scoring, column naming and row filtering.

Everything the heuristics depend on lives in one frozen ``ScoringConfig``
value so a caller can tune a single marketplace template without touching the
engine. ``DEFAULT_CONFIG`` reproduces the behavior the engine ships with.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, fields
from functools import cached_property
from pathlib import Path
from typing import Any

SUPPORTED_CONFIG_SUFFIXES = {".json"}

# Regex fragments, matched case-insensitively anywhere inside a cell.
MARKETPLACE_KEYWORDS = (
    "артикул",
    "article",
    "sku",
    "бренд",
    "brand",
    "наимен",
    "name",
    "описан",
    "descr",
    "цена",
    "price",
    "штрих",
    "barcode",
    "цвет",
    "colou?r",
    "материал",
    "material",
    "модель",
    "model",
    "совместим",
    "compatib",
    "фото",
    "photo",
    "image",
)

HELPER_PHRASES = (
    "this is a number",
    "unique identifier",
    "please fill in",
    "you will be able to",
    "required field",
    "select a value from the list",
    "заполните",
    "обязательное поле",
    "уникальный идентификатор",
    "это число",
    "выберите значение из списка",
    "вы сможете",
)


@dataclass(frozen=True)
class ScoringConfig:
    # header scoring
    header_keywords: tuple[str, ...] = MARKETPLACE_KEYWORDS
    keyword_bonus: int = 6
    distinct_cap: int = 24
    min_header_cells: int = 3
    reject_score: int = -999
    placeholder_pattern: str = r"^__empty"
    placeholder_penalty: int = 10
    long_value_length: int = 80
    long_value_penalty: int = 4
    sentence_word_count: int = 6
    wordy_penalty: int = 2
    sentence_penalty: int = 2

    # header location
    accept_threshold: int = 8
    header_scan_rows: int = 40
    rescan_rows: int = 25
    min_named_columns: int = 3

    # column naming
    fallback_name_template: str = "Column {index}"

    # row filtering
    fill_threshold: float = 0.06
    helper_phrases: tuple[str, ...] = HELPER_PHRASES
    max_helper_text_length: int = 400

    @cached_property
    def keyword_re(self) -> re.Pattern[str]:
        return re.compile("|".join(f"(?:{fragment})" for fragment in self.header_keywords), re.IGNORECASE)

    @cached_property
    def placeholder_re(self) -> re.Pattern[str]:
        return re.compile(self.placeholder_pattern, re.IGNORECASE)

    @cached_property
    def fallback_name_re(self) -> re.Pattern[str]:
        prefix, _, suffix = self.fallback_name_template.partition("{index}")
        return re.compile(rf"^{re.escape(prefix)}\d+{re.escape(suffix)}$")

    @cached_property
    def casefolded_helper_phrases(self) -> tuple[str, ...]:
        return tuple(phrase.casefold() for phrase in self.helper_phrases)

    def fallback_name(self, position: int) -> str:
        """Name for the blank header cell at 0-based ``position``."""
        return self.fallback_name_template.format(index=position + 1)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, tuple):
                payload[key] = list(value)
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoringConfig":
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(getattr(DEFAULT_CONFIG, key), tuple):
                if isinstance(value, str) or not isinstance(value, (list, tuple)):
                    raise ValueError(f"Config key '{key}' must be a list of strings")
                value = tuple(str(item) for item in value)
            values[key] = value
        config = cls(**values)
        if "{index}" not in config.fallback_name_template:
            raise ValueError("fallback_name_template must contain '{index}'")
        if not 0 <= config.fill_threshold < 1:
            raise ValueError("fill_threshold must be in [0, 1)")
        return config


DEFAULT_CONFIG = ScoringConfig()


def load_config(path: "str | Path") -> ScoringConfig:
    """Read a JSON file of overrides on top of ``DEFAULT_CONFIG``."""
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config format '{path.suffix}'. Supported: {', '.join(sorted(SUPPORTED_CONFIG_SUFFIXES))}"
        )
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid config JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be an object, got {type(data).__name__}")
    return ScoringConfig.from_dict(data)
