from __future__ import annotations

import re
from pathlib import Path

from cardsheet.models import Table, cell_text

DELIMITERS = {"semicolon": ";", "comma": ",", "tab": "\t"}
DEFAULT_DELIMITER = ";"
LINE_END = "\r\n"
BOM = "\ufeff"

_SOURCE_SUFFIX_RE = re.compile(r"\.(xlsx|xlsm|xls|ods|csv|tsv|txt)$", re.IGNORECASE)


def escape_cell(value: object, delimiter: str = DEFAULT_DELIMITER) -> str:
    text = cell_text(value)
    must_quote = '"' in text or "\n" in text or "\r" in text or delimiter in text
    escaped = text.replace('"', '""')
    return f'"{escaped}"' if must_quote else escaped


def _check_delimiter(delimiter: str) -> str:
    if delimiter not in DELIMITERS.values():
        raise ValueError(f"Unsupported delimiter {delimiter!r}. Use one of: ';', ',', tab")
    return delimiter


def to_csv(table: Table, delimiter: str = DEFAULT_DELIMITER, include_bom: bool = False) -> str:
    """Header line, then one line per row, every line ending in CRLF."""
    delimiter = _check_delimiter(delimiter)
    lines = [delimiter.join(escape_cell(h, delimiter) for h in table.headers)]
    for row in table.rows:
        lines.append(delimiter.join(escape_cell(row.get(h, ""), delimiter) for h in table.headers))
    csv_text = "".join(line + LINE_END for line in lines)
    return (BOM if include_bom else "") + csv_text


def write_csv(
    table: Table,
    path: "str | Path",
    delimiter: str = DEFAULT_DELIMITER,
    include_bom: bool = True,
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(to_csv(table, delimiter=delimiter, include_bom=include_bom))
    return path


def export_filename(source_name: str, default: str = "cardsheet") -> str:
    base = _SOURCE_SUFFIX_RE.sub("", Path(source_name).name) if source_name else ""
    return f"{base or default}.export.csv"
