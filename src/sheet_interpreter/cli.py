import argparse
import logging
import sys

from openpyxl import Workbook

from .errors import SheetInterpreterError
from .interpreter import SheetEvaluator
from .reader import load_sheet
from .writer import DEFAULT_SEPARATOR, render, write_values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheet-interpreter",
        description="Evaluate a |-delimited sheet of labels, values and formulas",
    )
    parser.add_argument("path", help="Path to the sheet file")
    parser.add_argument(
        "--separator",
        default=DEFAULT_SEPARATOR,
        help=f"Separator between values in the output (default: '{DEFAULT_SEPARATOR}')",
    )
    parser.add_argument(
        "--no-cycle-detection",
        action="store_true",
        help="Abort on a circular reference instead of evaluating its cells to errors",
    )
    parser.add_argument("--output", help="Also save the values to this .xlsx file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        sheet = load_sheet(args.path)
        evaluator = SheetEvaluator(sheet, detect_cycles=not args.no_cycle_detection)
        values = evaluator.evaluate_sheet()
    except FileNotFoundError:
        print(f"Error: File '{args.path}' not found", file=sys.stderr)
        return 1
    except SheetInterpreterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(render(values, args.separator))

    if args.output:
        wb = Workbook()
        write_values(wb.active, values)
        wb.save(args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
