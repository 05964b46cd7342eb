from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from cardsheet import __version__ as TOOL_VERSION
from cardsheet.config import DEFAULT_CONFIG, ScoringConfig, load_config
from cardsheet.contracts import build_run_summary, wrap_payload
from cardsheet.errors import CardsheetError
from cardsheet.exporter import DELIMITERS, export_filename, write_csv
from cardsheet.importer import ImportResult, import_file
from cardsheet.loader import ALL_FORMATS, LEGACY_WORKBOOK_FORMATS, TEXT_FORMATS, WORKBOOK_FORMATS, list_sheets
from cardsheet.models import RescanAccepted

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_LOW_CONFIDENCE = 3

DEFAULT_PREVIEW_ROWS = 10


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class CardsheetArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ImportError, UnicodeDecodeError, CardsheetError)):
        return EXIT_PARSE_FAILED
    if isinstance(exc, ValueError):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def resolve_config(args: argparse.Namespace) -> ScoringConfig:
    if getattr(args, "config", None):
        try:
            return load_config(args.config)
        except (ValueError, FileNotFoundError) as exc:
            raise CliError(f"Invalid config: {exc}", EXIT_COMMAND_ERROR) from exc
    return DEFAULT_CONFIG


def resolve_sheet_index(input_path: Path, sheet: str | None) -> int:
    """``--sheet`` takes a 1-based number or a sheet name."""
    if sheet is None:
        return 0
    if input_path.suffix.lower() in TEXT_FORMATS:
        raise CliError("--sheet only applies to workbook inputs.", EXIT_COMMAND_ERROR)
    names = list_sheets(input_path)
    if sheet.isdigit():
        index = int(sheet) - 1
        if not 0 <= index < len(names):
            raise CliError(f"Sheet number {sheet} out of range (1-{len(names)}).", EXIT_COMMAND_ERROR)
        return index
    if sheet not in names:
        raise CliError(f"Sheet '{sheet}' not found. Available: {names}", EXIT_COMMAND_ERROR)
    return names.index(sheet)


def resolve_header_row(value: int | None) -> int | None:
    if value is None:
        return None
    if value < 1:
        raise CliError("--header-row is 1-based and must be at least 1.", EXIT_COMMAND_ERROR)
    return value - 1


def require_input(path_arg: str) -> Path:
    input_path = Path(path_arg)
    if input_path.suffix.lower() not in ALL_FORMATS:
        raise CliError(
            f"Unsupported file type '{input_path.suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(ALL_FORMATS))}",
            EXIT_PARSE_FAILED,
        )
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    return input_path


def run_import(args: argparse.Namespace, input_path: Path) -> ImportResult:
    return import_file(
        input_path,
        sheet_index=resolve_sheet_index(input_path, args.sheet),
        header_row_index=resolve_header_row(args.header_row),
        config=resolve_config(args),
    )


def is_low_confidence(result: ImportResult) -> bool:
    decision = result.normalization.decision
    if decision is not None and decision.is_fallback:
        return True
    return result.table.is_low_confidence


def render_header_line(result: ImportResult) -> str:
    normalization = result.normalization
    decision = normalization.decision
    row = (result.header_row_index or 0) + 1
    if decision is not None:
        if decision.explicit:
            state = "chosen explicitly"
        elif decision.accepted:
            state = "detected"
        else:
            state = f"fallback, best candidate was row {decision.row_index + 1}"
        return f"Header row: {row} (score {decision.score}, {state})"
    rescan = normalization.rescan
    if isinstance(rescan, RescanAccepted):
        return f"Header row: {row} (score {rescan.score}, re-based from first-row header)"
    reason = getattr(rescan, "reason", "not scanned")
    return f"Header row: {row} (first row kept: {reason})"


def render_inspect_text(result: ImportResult, *, preview_rows: int, verbose: bool) -> str:
    table = result.table
    lines = [
        "cardsheet inspect",
        f"File: {result.source_path.name}",
        f"Format: {result.detected_format}",
    ]
    if result.encoding:
        lines.append(f"Encoding: {result.encoding}")
    if result.delimiter:
        lines.append(f"Delimiter: {result.delimiter!r}")
    if result.sheet_names:
        index = result.sheet_index or 0
        lines.append(f"Sheet: {result.sheet_names[index]} ({index + 1} of {len(result.sheet_names)})")
    lines.append(render_header_line(result))
    lines.append(f"Columns: {len(table.headers)} ({', '.join(table.headers)})")
    lines.append(f"Rows: {len(table)}")
    lines.append(f"Confidence: {'low' if is_low_confidence(result) else 'ok'}")

    decision = result.normalization.decision
    if verbose and decision is not None and decision.candidates:
        lines.append("Candidate scores:")
        lines.extend(f"- row {c.row_index + 1}: {c.score}" for c in decision.candidates)
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in result.warnings)
    if preview_rows > 0 and len(table):
        lines.append("")
        lines.append(table.preview(max_rows=preview_rows).to_string(index=False))
    return "\n".join(lines) + "\n"


def run_inspect(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        result = run_import(args, input_path)
        low = is_low_confidence(result)
        if args.json:
            run_summary = build_run_summary(
                command="inspect",
                input_path=input_path,
                status="low_confidence" if low else "ok",
                metrics={"rows": len(result.table), "columns": len(result.table.headers)},
                warnings=result.warnings,
            )
            payload = result.to_dict()
            payload["preview"] = result.table.records()[: args.rows]
            maybe_emit_json_stdout(wrap_payload("cardsheet.inspect", payload, run_summary), True)
        else:
            text = render_inspect_text(result, preview_rows=args.rows, verbose=args.verbose)
            emit_human(text.rstrip(), quiet=args.quiet)
        return EXIT_LOW_CONFIDENCE if low else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def safe_output_path(path: Path, *, force: bool) -> Path:
    if path.exists() and not force:
        raise CliError(f"Refusing to overwrite existing output: {path} (use --force)", EXIT_COMMAND_ERROR)
    return path


def run_export(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        output_path = Path(args.output) if args.output else Path.cwd() / export_filename(input_path.name)
        if output_path.resolve() == input_path.resolve():
            raise CliError("Refusing to overwrite the input file.", EXIT_COMMAND_ERROR)
        output_path = safe_output_path(output_path, force=args.force)

        result = run_import(args, input_path)
        delimiter = DELIMITERS[args.delimiter]
        write_csv(result.table, output_path, delimiter=delimiter, include_bom=not args.no_bom)

        if args.json:
            run_summary = build_run_summary(
                command="export",
                input_path=input_path,
                output_path=output_path,
                metrics={"rows": len(result.table), "columns": len(result.table.headers)},
                warnings=result.warnings,
            )
            payload = {
                "headers": list(result.table.headers),
                "delimiter": delimiter,
                "bom": not args.no_bom,
                "header_row_index": result.header_row_index,
            }
            maybe_emit_json_stdout(wrap_payload("cardsheet.export_summary", payload, run_summary), True)
        else:
            if args.verbose:
                emit_human(render_header_line(result), quiet=args.quiet)
            for warning in result.warnings:
                emit_human(f"Warning: {warning}", quiet=args.quiet)
            emit_human(
                f"Exported {len(result.table)} row(s) x {len(result.table.headers)} column(s): {output_path}",
                quiet=args.quiet,
            )
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_sheets(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        if input_path.suffix.lower() not in WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS:
            raise CliError("Sheet listing only applies to workbook inputs.", EXIT_COMMAND_ERROR)
        names = list_sheets(input_path)
        if args.json:
            run_summary = build_run_summary(command="sheets", input_path=input_path, metrics={"sheets": len(names)})
            maybe_emit_json_stdout(wrap_payload("cardsheet.sheets", {"sheet_names": names}, run_summary), True)
        else:
            print("\n".join(f"{i}. {name}" for i, name in enumerate(names, start=1)))
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json_dumps(DEFAULT_CONFIG.to_dict()) + "\n", encoding="utf-8")
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def add_import_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Input file path")
    parser.add_argument("--sheet", help="Workbook sheet: 1-based number or name (default: first sheet)")
    parser.add_argument("--header-row", dest="header_row", type=int, help="1-based header row; skips detection")
    parser.add_argument("--config", help="JSON file with scoring overrides")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = CardsheetArgumentParser(
        prog="cardsheet",
        description="Find the real header row in marketplace templates and export a clean table.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", help="Show the detected header row, columns and a preview.")
    add_import_arguments(inspect)
    inspect.add_argument("--rows", type=int, default=DEFAULT_PREVIEW_ROWS, help="Preview row count")

    export = subparsers.add_parser("export", help="Normalize a file and write it as CSV.")
    add_import_arguments(export)
    export.add_argument("-o", "--output", help="Output CSV path (default: <name>.export.csv in the current directory)")
    export.add_argument("--delimiter", choices=sorted(DELIMITERS), default="semicolon", help="Field delimiter")
    export.add_argument("--no-bom", dest="no_bom", action="store_true", help="Do not prepend a UTF-8 BOM")
    export.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    sheets = subparsers.add_parser("sheets", help="List workbook sheets.")
    sheets.add_argument("input", help="Input workbook path")
    sheets.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write the default scoring config as JSON.")
    config_init.add_argument("--path", default="cardsheet.json", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "inspect":
            return run_inspect(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "sheets":
            return run_sheets(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
