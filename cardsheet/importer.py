"""
importer.py — one call from a file on disk to a canonical Table

    result = import_file("template.xlsx")
    result.table                     # canonical Table
    result.normalization.decision    # header decision + score (matrix path)

    result = with_header_row(result, 3)   # user override, fresh normalization
    result = import_file("template.xlsx", sheet_index=1)   # another sheet

Delimited text is read the simple way first (row 1 = header) and then
re-scanned for a better header row. Workbooks, and any call with an explicit
header row, go through the matrix path where the choice is final.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from cardsheet.config import DEFAULT_CONFIG, ScoringConfig
from cardsheet.errors import EmptySheetError
from cardsheet.loader import TEXT_FORMATS, load_matrix, records_from_matrix
from cardsheet.models import Normalization, RawMatrix, RescanAccepted, Table
from cardsheet.normalize import normalize_matrix, normalize_records


@dataclass
class ImportResult:
    table: Table
    normalization: Normalization
    matrix: RawMatrix
    source_path: Path
    detected_format: str
    header_row_index: Optional[int] = None
    sheet_names: Optional[list[str]] = None
    sheet_index: Optional[int] = None
    encoding: Optional[str] = None
    delimiter: Optional[str] = None
    loader_warnings: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return self.loader_warnings + self.normalization.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.source_path.name,
            "detected_format": self.detected_format,
            "encoding": self.encoding,
            "delimiter": self.delimiter,
            "sheet_names": self.sheet_names,
            "sheet_index": self.sheet_index,
            "header_row_index": self.header_row_index,
            "raw_rows": len(self.matrix),
            "normalization": self.normalization.to_dict(),
            "warnings": self.warnings,
        }


def _header_row_in_matrix(normalization: Normalization) -> int:
    """Matrix row the records path ended up using as header, for the override picker."""
    # Records are matrix[1:], so data row i is matrix row i + 1.
    if isinstance(normalization.rescan, RescanAccepted):
        return normalization.rescan.row_index + 1
    return 0


def import_file(
    path: "str | Path",
    *,
    sheet_index: int = 0,
    header_row_index: Optional[int] = None,
    delimiter: Optional[str] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> ImportResult:
    """
    Load ``path`` and normalize it.

    Raises:
        UnsupportedFormatError, ParseError, SheetNotFoundError  from the loader.
        EmptySheetError   when the file or sheet has no rows.
        NoHeadersError    when no usable column names remain.
    """
    path   = Path(path)
    loaded = load_matrix(path, sheet_index=sheet_index, delimiter=delimiter)
    matrix = loaded.matrix

    if not matrix:
        raise EmptySheetError(f"{path.name} has no data rows.")

    if path.suffix.lower() in TEXT_FORMATS and header_row_index is None:
        headers, rows = records_from_matrix(matrix)
        normalization = normalize_records(headers, rows, config)
        resolved_row = _header_row_in_matrix(normalization)
    else:
        normalization = normalize_matrix(matrix, header_row_index, config)
        resolved_row = normalization.decision.header_row_index

    return ImportResult(
        table=normalization.table,
        normalization=normalization,
        matrix=matrix,
        source_path=path,
        detected_format=loaded.detected_format,
        header_row_index=resolved_row,
        sheet_names=loaded.sheet_names,
        sheet_index=loaded.sheet_index,
        encoding=loaded.encoding,
        delimiter=loaded.delimiter,
        loader_warnings=list(loaded.warnings),
    )


def with_header_row(
    result: ImportResult,
    header_row_index: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> ImportResult:
    """Re-normalize the already loaded matrix with an explicit header row.

    ``result`` is left untouched; a failure raises before anything is built.
    """
    normalization = normalize_matrix(result.matrix, header_row_index, config)
    return replace(
        result,
        table=normalization.table,
        normalization=normalization,
        header_row_index=header_row_index,
    )
