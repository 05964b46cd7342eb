"""
loader.py — raw cell extraction for cardsheet

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods

Public API:
    loaded = load_matrix("path/to/template.xlsx", sheet_index=0)
    matrix = loaded.matrix

The loader only turns bytes into a raw matrix of strings (blank cells are
"", rows may be ragged). Deciding which row is the header is the
normalizer's job.
"""

from __future__ import annotations

import csv
import io
import zipfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

import chardet
import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from cardsheet.errors import ParseError, SheetNotFoundError, UnsupportedFormatError
from cardsheet.models import RawMatrix, cell_text

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS             = {".csv", ".tsv", ".txt"}
WORKBOOK_FORMATS         = {".xlsx", ".xlsm"}
LEGACY_WORKBOOK_FORMATS  = {".xls", ".ods"}
ALL_FORMATS              = TEXT_FORMATS | WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS

CSV_ERROR_LABEL      = "CSV error"
WORKBOOK_ERROR_LABEL = "Could not read workbook"
PLACEHOLDER_PREFIX   = "__EMPTY"


@dataclass
class LoadedMatrix:
    matrix: RawMatrix
    detected_format: str
    encoding: Optional[str] = None
    encoding_info: Optional[dict[str, Any]] = None
    delimiter: Optional[str] = None
    sheet_names: Optional[list[str]] = None
    sheet_index: Optional[int] = None
    warnings: list[str] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding_info(raw: bytes) -> dict[str, Any]:
    """
    Detect encoding from raw bytes.

    Returns dict with: detected, confidence, is_utf8, suspicious_chars.
    """
    result     = chardet.detect(raw)
    detected   = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)

    is_utf8 = detected.upper().replace("-", "").replace("_", "") in ("UTF8", "UTF8SIG", "ASCII")

    suspicious: list[str] = []
    if not is_utf8:
        for row_idx, line in enumerate(raw.split(b"\n")[:100], start=1):
            try:
                line.decode("utf-8")
            except UnicodeDecodeError as e:
                bad_byte = line[e.start : e.end]
                suspicious.append(f"row {row_idx}: byte {bad_byte!r} at position {e.start}")

    return {
        "detected":         detected,
        "confidence":       confidence,
        "is_utf8":          is_utf8,
        "suspicious_chars": suspicious[:10],
    }


def decode_text(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. CP1252 with replace (never crashes)

    Strips the byte-order mark and embedded null bytes.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


def read_text(path: Path) -> tuple[str, dict[str, Any]]:
    raw      = path.read_bytes()
    enc_info = detect_encoding_info(raw)
    enc      = enc_info["detected"] if enc_info["detected"] != "unknown" else "utf-8"
    return decode_text(raw, enc), enc_info


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITED TEXT
# ══════════════════════════════════════════════════════════════════════════════

def detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Uses csv.Sniffer first; falls back to scoring each candidate delimiter by
    column-count consistency and column width. Semicolon wins a tie with
    comma because marketplace exports default to it.
    """
    sample_lines = [l for l in text.splitlines() if l.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=";,\t|").delimiter
        except csv.Error:
            pass

    best_delim  = ";"
    best_score  = float("-inf")
    best_width  = 0
    sample_text = "\n".join(sample_lines)

    for delim in (";", ",", "\t", "|"):
        rows = [
            row
            for row in csv.reader(io.StringIO(sample_text), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if not rows:
            continue

        widths       = [len(row) for row in rows]
        mode_width, mode_count = Counter(widths).most_common(1)[0]
        consistency  = mode_count / len(widths)

        score = (mode_width * 2.0) + (consistency * mode_width)
        if len(rows[0]) == mode_width:
            score += 1.0
        if mode_width == 1:
            score -= 10.0

        if score > best_score or (score == best_score and mode_width > best_width):
            best_score = score
            best_width = mode_width
            best_delim = delim

    return best_delim


def parse_delimited(text: str, delimiter: str) -> RawMatrix:
    """Tokenize delimited text; blank lines are skipped, quoted newlines kept."""
    try:
        return [row for row in csv.reader(io.StringIO(text), delimiter=delimiter, strict=True) if row]
    except csv.Error as exc:
        raise ParseError(CSV_ERROR_LABEL, exc) from exc


def _validate_txt_table(matrix: RawMatrix, delimiter: str) -> None:
    """Reject .txt files that are prose rather than delimited data."""
    rows = [row for row in matrix[:50] if any(cell.strip() for cell in row)]
    if sum(1 for row in rows if len(row) > 1) < 2:
        raise ParseError(
            CSV_ERROR_LABEL,
            f".txt file does not appear to contain delimited data (delimiter {delimiter!r})",
        )


def records_from_matrix(matrix: Sequence[Sequence[object]]) -> tuple[list[str], list[dict[str, str]]]:
    """
    Simple first-row extraction: row 0 names the columns, the rest are records.

    Blank header cells become ``__EMPTY``, ``__EMPTY_1``, ... and repeated
    names get ``_1``, ``_2`` suffixes, so every record key is unique. The
    normalizer treats the placeholders as "no name".
    """
    if not matrix:
        return [], []

    width = max(len(row) for row in matrix)
    header_cells = [cell_text(cell).strip() for cell in matrix[0]]
    header_cells += [""] * (width - len(header_cells))

    headers: list[str] = []
    seen: Counter[str] = Counter()
    blanks = 0
    for cell in header_cells:
        if not cell:
            name = PLACEHOLDER_PREFIX if blanks == 0 else f"{PLACEHOLDER_PREFIX}_{blanks}"
            blanks += 1
        else:
            name = cell if seen[cell] == 0 else f"{cell}_{seen[cell]}"
            seen[cell] += 1
        headers.append(name)

    rows = [
        {name: cell_text(row[i]) if i < len(row) else "" for i, name in enumerate(headers)}
        for row in matrix[1:]
    ]
    return headers, rows


def _load_text(path: Path, suffix: str, delimiter: Optional[str]) -> LoadedMatrix:
    text, enc_info = read_text(path)
    if delimiter is None:
        delimiter = "\t" if suffix == ".tsv" else detect_delimiter(text)

    matrix = parse_delimited(text, delimiter)
    if suffix == ".txt":
        _validate_txt_table(matrix, delimiter)

    return LoadedMatrix(
        matrix=matrix,
        detected_format=suffix.lstrip("."),
        encoding=enc_info["detected"],
        encoding_info=enc_info,
        delimiter=delimiter,
    )


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOKS
# ══════════════════════════════════════════════════════════════════════════════

def _trim_trailing_empty_cells(row: list[str]) -> list[str]:
    trimmed = list(row)
    while trimmed and not trimmed[-1].strip():
        trimmed.pop()
    return trimmed


def _normalise_row_cells(values) -> list[str]:
    return _trim_trailing_empty_cells([cell_text(value) for value in values])


def _trim_trailing_empty_rows(rows: RawMatrix) -> RawMatrix:
    trimmed = list(rows)
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def _open_workbook(path: Path):
    try:
        return openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ParseError(WORKBOOK_ERROR_LABEL, exc) from exc


def _require_legacy_engine(suffix: str) -> Optional[str]:
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd — run: pip install xlrd")
        return "xlrd"
    try:
        import odf  # noqa: F401
    except ImportError:
        raise ImportError(".ods files require odfpy — run: pip install odfpy")
    return "odf"


def list_sheets(path: "str | Path") -> list[str]:
    path   = Path(path)
    suffix = path.suffix.lower()
    if suffix in WORKBOOK_FORMATS:
        workbook = _open_workbook(path)
        try:
            return list(workbook.sheetnames)
        finally:
            workbook.close()
    if suffix in LEGACY_WORKBOOK_FORMATS:
        import pandas as pd

        engine = _require_legacy_engine(suffix)
        try:
            with pd.ExcelFile(path, engine=engine) as xf:
                return [str(name) for name in xf.sheet_names]
        except Exception as exc:
            raise ParseError(WORKBOOK_ERROR_LABEL, exc) from exc
    raise UnsupportedFormatError(suffix, WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS)


def _check_sheet_index(sheet_index: int, sheet_names: list[str]) -> None:
    if not 0 <= sheet_index < len(sheet_names):
        raise SheetNotFoundError(sheet_index, sheet_names)


def read_workbook_matrix(path: "str | Path", sheet_index: int = 0) -> RawMatrix:
    path   = Path(path)
    suffix = path.suffix.lower()

    if suffix in LEGACY_WORKBOOK_FORMATS:
        return _read_legacy_matrix(path, suffix, sheet_index)
    if suffix not in WORKBOOK_FORMATS:
        raise UnsupportedFormatError(suffix, WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS)

    workbook = _open_workbook(path)
    try:
        _check_sheet_index(sheet_index, list(workbook.sheetnames))
        sheet = workbook[workbook.sheetnames[sheet_index]]
        return _trim_trailing_empty_rows(
            [_normalise_row_cells(values) for values in sheet.iter_rows(values_only=True)]
        )
    finally:
        workbook.close()


def _read_legacy_matrix(path: Path, suffix: str, sheet_index: int) -> RawMatrix:
    import pandas as pd

    sheet_names = list_sheets(path)
    _check_sheet_index(sheet_index, sheet_names)
    engine = _require_legacy_engine(suffix)
    try:
        df = pd.read_excel(path, sheet_name=sheet_index, header=None, dtype=str, engine=engine)
    except Exception as exc:
        raise ParseError(WORKBOOK_ERROR_LABEL, exc) from exc
    return _trim_trailing_empty_rows(
        [_normalise_row_cells(row) for row in df.fillna("").itertuples(index=False, name=None)]
    )


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_matrix(
    path: "str | Path",
    sheet_index: int = 0,
    delimiter: Optional[str] = None,
) -> LoadedMatrix:
    """
    Load any supported file into a raw matrix.

    Args:
        path:        Path to the file (str or Path).
        sheet_index: For workbooks: 0-based sheet to read.
        delimiter:   For delimited text: force a delimiter instead of sniffing.

    Raises:
        FileNotFoundError       if the file does not exist.
        UnsupportedFormatError  if the extension is not supported.
        ParseError              if the parser cannot read the file.
        SheetNotFoundError      if ``sheet_index`` is out of range.
        ImportError             if an optional engine (xlrd, odfpy) is missing.
    """
    path   = Path(path)
    suffix = path.suffix.lower()

    if suffix not in ALL_FORMATS:
        raise UnsupportedFormatError(suffix, ALL_FORMATS)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix in TEXT_FORMATS:
        return _load_text(path, suffix, delimiter)

    sheet_names = list_sheets(path)
    matrix      = read_workbook_matrix(path, sheet_index)
    warnings: list[str] = []
    if len(sheet_names) > 1:
        others = [name for i, name in enumerate(sheet_names) if i != sheet_index]
        warnings.append(
            f"Multiple sheets found ({len(sheet_names)} total); "
            f"used '{sheet_names[sheet_index]}'. Ignored: {others}"
        )

    return LoadedMatrix(
        matrix=matrix,
        detected_format=suffix.lstrip("."),
        sheet_names=sheet_names,
        sheet_index=sheet_index,
        warnings=warnings,
    )
