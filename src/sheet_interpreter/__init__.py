from .cells import parse_cell
from .interpreter import SheetEvaluator, evaluate_sheet
from .parser import parse_formula
from .reader import load_sheet, read_file
from .sheet import CellAddress, Sheet
from .writer import render

__all__ = [
    "CellAddress",
    "Sheet",
    "SheetEvaluator",
    "evaluate_sheet",
    "load_sheet",
    "parse_cell",
    "parse_formula",
    "read_file",
    "render",
]
