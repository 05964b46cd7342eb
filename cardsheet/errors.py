"""Errors surfaced to callers of the loader, importer and normalizer.

Every class is also a ``ValueError`` so callers that only distinguish
"bad input" from "broken program" keep working.
"""

from __future__ import annotations


class CardsheetError(ValueError):
    """Base class for every failure scoped to a single import/normalization call."""


class UnsupportedFormatError(CardsheetError):
    def __init__(self, suffix: str, supported: "list[str] | set[str]") -> None:
        self.suffix = suffix
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported format '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(self.supported)}"
        )


class EmptyInputError(CardsheetError):
    """The raw matrix has no rows at all."""


class EmptySheetError(EmptyInputError):
    """A workbook sheet (or delimited file) produced no rows."""


class NoHeadersError(CardsheetError):
    """No usable column names remain; the caller should pick another header row."""


class SheetNotFoundError(CardsheetError):
    def __init__(self, sheet: "int | str", available: list[str]) -> None:
        self.sheet = sheet
        self.available = list(available)
        super().__init__(f"Sheet {sheet!r} not found. Available: {self.available}")


class ParseError(CardsheetError):
    """The underlying text/workbook parser failed.

    The parser's own message is kept verbatim behind a stable label so the
    caller can show it without guessing where it came from.
    """

    def __init__(self, label: str, detail: object) -> None:
        self.label = label
        self.detail = str(detail)
        super().__init__(f"{label}: {self.detail}")
