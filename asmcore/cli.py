from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from asmcore.analyzer import analyze, has_errors
from asmcore.mnemonics import MnemonicTableError, load_default_table, load_table
from asmcore.model import Diagnostic, Program, Severity
from asmcore.parser import ParseError, parse_assembly
from asmcore.program_info import detect_lcd_dimensions


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTIC_ERRORS = 1
EXIT_LOAD_FAILURE = 2

SEVERITY_CHOICES = {severity.name.lower(): severity for severity in Severity}


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asm-check",
        description="Check an educational x86 assembly file and report diagnostics.",
    )
    parser.add_argument("source", help="assembly source file")
    parser.add_argument("--table", help="mnemonic table JSON (defaults to the bundled table)")
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument(
        "--min-severity",
        choices=list(SEVERITY_CHOICES),
        default="hint",
        help="hide diagnostics less severe than this",
    )
    parser.add_argument("--program", action="store_true", help="also parse the file and print a program summary")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def format_diagnostic(path: str, diag: Diagnostic) -> str:
    line = diag.range.start_line + 1
    column = diag.range.start_column + 1
    return f"{path}:{line}:{column}: {diag.severity.label.lower()}: {diag.message} [{diag.source}]"


def program_summary(program: Program) -> dict:
    width, height = detect_lcd_dimensions(program)
    return {
        "instructions": len(program.instructions),
        "labels": dict(program.labels),
        "constants": dict(program.constants),
        "data_items": [
            {"address": item.address, "size": item.size, "values": list(item.values), "label": item.label}
            for item in program.data_segment.items
        ],
        "code_start_address": program.code_start_address,
        "lcd": [width, height],
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    path = Path(args.source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"{args.source}: cannot read file: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILURE

    try:
        table = load_table(args.table) if args.table else load_default_table()
    except MnemonicTableError as exc:
        print(f"{args.table}: {exc.message}", file=sys.stderr)
        return EXIT_LOAD_FAILURE

    threshold = SEVERITY_CHOICES[args.min_severity]
    diagnostics: List[Diagnostic] = [diag for diag in analyze(text, table) if diag.severity <= threshold]

    summary = None
    if args.program:
        try:
            summary = program_summary(parse_assembly(text))
        except ParseError as exc:
            print(f"{args.source}:{exc.line_no}: load error: {exc.message}", file=sys.stderr)
            return EXIT_LOAD_FAILURE

    if args.format == "json":
        payload = {"diagnostics": [diag.to_dict() for diag in diagnostics]}
        if summary is not None:
            payload["program"] = summary
        print(json.dumps(payload, indent=2))
    else:
        for diag in diagnostics:
            print(format_diagnostic(args.source, diag))
        if summary is not None:
            width, height = summary["lcd"]
            print(
                f"{args.source}: {summary['instructions']} instructions, {len(summary['labels'])} labels, "
                f"{len(summary['constants'])} constants, {len(summary['data_items'])} data items, "
                f"LCD {width}x{height}"
            )

    logger.info("%s: %d diagnostics", args.source, len(diagnostics))
    return EXIT_DIAGNOSTIC_ERRORS if has_errors(diagnostics) else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
