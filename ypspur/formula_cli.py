"""Command that parses, optimizes and evaluates a formula given on the command line."""

from __future__ import annotations

import math
import struct
import sys
from typing import Optional, Sequence

from ypspur.formula import FormulaError, parse


def _as_single(value: float) -> float:
    """Round a value to single precision."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Show the reverse Polish form of a formula, its optimized form and its value."""
    args = list(sys.argv[1:] if argv is None else argv)
    out = sys.stdout
    if not args:
        out.write("Usage: formula-test <formula>\n")
        return 0

    expr = args[0]
    variables = {"TEST": 0.0}
    try:
        rpf = parse(expr, variables)
    except FormulaError:
        out.write("Invalid formula\n")
        return 1

    out.write(f"Given formula: {expr}\n")
    out.write(f"Reverse polish: {rpf.format()}\n")
    optimized = rpf.optimize()
    out.write(f"Optimized reverse polish: {optimized.format()}\n")
    result = _as_single(optimized.evaluate())
    out.write(f"Result: {result:f} {variables['TEST']:f}\n")
    return 1


if __name__ == "__main__":
    sys.exit(main())