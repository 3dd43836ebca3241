"""Parsing and evaluation of small arithmetic formulas in reverse Polish form."""

from __future__ import annotations

import math
import re
import string
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

_SPACE = " \t\n\v\f\r"
_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_[]")
_NUMBER_CHARS = frozenset(string.digits + ".")
_HEX_NUMBER = re.compile(
    r"0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)(?:[pP][+-]?[0-9]+)?"
)
_DEC_NUMBER = re.compile(r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

Variables = MutableMapping[str, float]


class FormulaError(ValueError):
    """Raised when a formula cannot be parsed or evaluated."""


class OperationKind(Enum):
    """Whether an operation is an infix operator or a named function."""

    OPERATOR = "operator"
    FUNCTION = "function"


@dataclass(frozen=True)
class Operation:
    """An operator or function usable in a formula."""

    name: str
    rank: int
    kind: OperationKind
    func: Optional[Callable[..., float]]
    narg: int

    @property
    def assigns(self) -> bool:
        return self.func is None


class TokenKind(Enum):
    """Kind of an element of a reverse Polish formula."""

    VALUE = "value"
    VARIABLE = "variable"
    OPERATION = "operation"


@dataclass(frozen=True)
class Token:
    """One element of a reverse Polish formula."""

    kind: TokenKind
    value: Union[float, str, Operation]


def _is_odd_integer(b: float) -> bool:
    return math.isfinite(b) and float(b).is_integer() and math.fmod(b, 2.0) != 0.0


def _div(a: float, b: float) -> float:
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _pow(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except OverflowError:
        return -math.inf if a < 0 and _is_odd_integer(b) else math.inf
    except ValueError:
        if a == 0:
            return math.copysign(math.inf, a) if _is_odd_integer(b) else math.inf
        return math.nan


def _log_with(fn: Callable[[float], float]) -> Callable[[float], float]:
    def log(a: float) -> float:
        if a == 0:
            return -math.inf
        if math.isnan(a) or a < 0:
            return math.nan
        return fn(a)

    return log


def _checked(fn: Callable[..., float]) -> Callable[..., float]:
    def call(*args: float) -> float:
        try:
            return fn(*args)
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf

    return call


def _sinh(a: float) -> float:
    try:
        return math.sinh(a)
    except OverflowError:
        return math.copysign(math.inf, a)


def _round(a: float) -> float:
    if not math.isfinite(a):
        return a
    magnitude = abs(a)
    whole = float(math.floor(magnitude))
    if magnitude - whole >= 0.5:
        whole += 1.0
    return math.copysign(whole, a)


def _truth(value: bool) -> float:
    return 1.0 if value else 0.0


_OP = OperationKind.OPERATOR
_FN = OperationKind.FUNCTION

# Matched by prefix, in this order.
OPERATIONS: tuple[Operation, ...] = (
    Operation("==", 4, _OP, lambda a, b: _truth(a == b), 2),
    Operation("=", 1, _OP, None, 2),
    Operation("||", 2, _OP, lambda a, b: _truth(a > 0 or b > 0), 2),
    Operation("&&", 3, _OP, lambda a, b: _truth(a > 0 and b > 0), 2),
    Operation("!=", 4, _OP, lambda a, b: _truth(a != b), 2),
    Operation("<=", 5, _OP, lambda a, b: _truth(a <= b), 2),
    Operation(">=", 5, _OP, lambda a, b: _truth(a >= b), 2),
    Operation("<", 5, _OP, lambda a, b: _truth(a < b), 2),
    Operation(">", 5, _OP, lambda a, b: _truth(a > b), 2),
    Operation("+", 7, _OP, lambda a, b: a + b, 2),
    Operation("-", 7, _OP, lambda a, b: a - b, 2),
    Operation("*", 8, _OP, lambda a, b: a * b, 2),
    Operation("/", 8, _OP, _div, 2),
    Operation("!", 11, _OP, lambda a: _truth(not a > 0), 1),
    Operation("pi", 17, _FN, lambda: math.pi, 0),
    Operation("e", 17, _FN, lambda: math.e, 0),
    Operation("log10", 17, _FN, _log_with(math.log10), 1),
    Operation("ln", 17, _FN, _log_with(math.log), 1),
    Operation("sin", 17, _FN, math.sin, 1),
    Operation("cos", 17, _FN, math.cos, 1),
    Operation("tan", 17, _FN, math.tan, 1),
    Operation("sinh", 17, _FN, _sinh, 1),
    Operation("cosh", 17, _FN, _checked(math.cosh), 1),
    Operation("tanh", 17, _FN, math.tanh, 1),
    Operation("asin", 17, _FN, _checked(math.asin), 1),
    Operation("acos", 17, _FN, _checked(math.acos), 1),
    Operation("atan2", 17, _FN, math.atan2, 2),
    Operation("atan", 17, _FN, math.atan, 1),
    Operation("exp", 17, _FN, _checked(math.exp), 1),
    Operation("sqrt", 17, _FN, _checked(math.sqrt), 1),
    Operation("abs", 17, _FN, math.fabs, 1),
    Operation("sign", 17, _FN, lambda a: -1.0 if a < 0 else 1.0, 1),
    Operation("round", 17, _FN, _round, 1),
    Operation("mod", 17, _FN, _checked(math.fmod), 2),
    Operation("pow", 17, _FN, _pow, 2),
)

_SUB = next(op for op in OPERATIONS if op.name == "-")
_MUL = next(op for op in OPERATIONS if op.name == "*")


@dataclass
class Formula:
    """A parsed formula held as a sequence of reverse Polish tokens."""

    tokens: tuple[Token, ...]
    variables: Optional[Variables] = None

    def _resolve(self, item: Union[float, str]) -> float:
        if isinstance(item, str):
            if self.variables is None or item not in self.variables:
                raise FormulaError(f"unknown variable {item!r}")
            return float(self.variables[item])
        return item

    def _apply(self, op: Operation, args: list[Union[float, str]]) -> float:
        if op.assigns:
            target, source = args
            value = self._resolve(source)
            if isinstance(target, str) and self.variables is not None:
                self.variables[target] = value
            return value
        assert op.func is not None
        return op.func(*(self._resolve(arg) for arg in args))

    def evaluate(self) -> float:
        """Compute the value of the formula with the current variable values."""
        stack: list[Union[float, str]] = []
        for token in self.tokens:
            if token.kind is TokenKind.OPERATION:
                op = token.value
                assert isinstance(op, Operation)
                if op.narg > len(stack):
                    raise FormulaError(f"not enough operands for {op.name!r}")
                split = len(stack) - op.narg
                args = stack[split:]
                del stack[split:]
                stack.append(self._apply(op, args))
            else:
                stack.append(token.value)  # type: ignore[arg-type]
        if not stack:
            raise FormulaError("empty formula")
        return self._resolve(stack[0])

    def optimize(self) -> "Formula":
        """Return a copy with every operation on constants folded into a constant."""
        entries: list[tuple[Token, bool]] = []
        for token in self.tokens:
            if token.kind is TokenKind.VALUE:
                entries.append((token, True))
            elif token.kind is TokenKind.VARIABLE:
                entries.append((token, False))
            else:
                op = token.value
                assert isinstance(op, Operation)
                split = len(entries) - op.narg
                if split >= 0 and all(fixed for _, fixed in entries[split:]):
                    values = [float(t.value) for t, _ in entries[split:]]  # type: ignore[arg-type]
                    del entries[split:]
                    if op.assigns:
                        result = values[1]
                    else:
                        assert op.func is not None
                        result = op.func(*values)
                    entries.append((Token(TokenKind.VALUE, result), True))
                else:
                    entries.append((token, False))
        return Formula(tuple(token for token, _ in entries), self.variables)

    def format(self) -> str:
        """Render the reverse Polish tokens, each followed by a space."""
        parts = []
        for token in self.tokens:
            if token.kind is TokenKind.VALUE:
                parts.append(f"{token.value:f} ")
            elif token.kind is TokenKind.VARIABLE:
                parts.append("VARIABLE ")
            else:
                assert isinstance(token.value, Operation)
                parts.append(f"{token.value.name} ")
        return "".join(parts)


def _skip_space(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _SPACE:
        pos += 1
    return pos


def _closing(text: str, pos: int) -> int:
    """Return the index where the bracket depth counted from ``pos`` returns to zero."""
    depth = 0
    for end in range(pos, len(text)):
        ch = text[end]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if depth == 0:
            return end
    raise FormulaError("unbalanced parentheses")


def _reduce(nums: list[list[Token]], ops: list[Operation]) -> None:
    """Pop every operation in ``ops`` and join it with its operands."""
    while ops:
        op = ops.pop()
        if op.narg > len(nums):
            raise FormulaError(f"missing operand for {op.name!r}")
        split = len(nums) - op.narg
        joined = [token for entry in nums[split:] for token in entry]
        del nums[split:]
        joined.append(Token(TokenKind.OPERATION, op))
        nums.append(joined)


def _match_operation(text: str, pos: int) -> Optional[Operation]:
    for op in OPERATIONS:
        if text.startswith(op.name, pos):
            return op
    return None


def _read_number(text: str, pos: int) -> float:
    match = _HEX_NUMBER.match(text, pos)
    if match:
        return float.fromhex(match.group())
    match = _DEC_NUMBER.match(text, pos)
    if match:
        return float(match.group())
    return 0.0


def _negation() -> list[Token]:
    return [Token(TokenKind.VALUE, -1.0)]


def _parse_from(text: str, pos: int, variables: Optional[Variables]) -> list[Token]:
    nums: list[list[Token]] = []
    ops: list[Operation] = []
    after_operator = False
    while pos < len(text):
        ch = text[pos]
        if ch == "(":
            end = _closing(text, pos)
            inner = _parse_from(text, pos + 1, variables)
            if inner:
                nums.append(inner)
            pos = end + 1
            after_operator = False
            continue
        if ch == ")":
            break
        if ch == ",":
            _reduce(nums, ops)
            after_operator = False
            pos += 1
            continue
        if ch in _SPACE:
            after_operator = False
            pos += 1
            continue

        op = _match_operation(text, pos)
        if op is not None:
            if ops and ops[-1].rank == op.rank:
                _reduce(nums, [ops.pop()])
            elif ops and ops[-1].rank > op.rank:
                _reduce(nums, ops)
            pos = _skip_space(text, pos + len(op.name))

            if op is _SUB and (not nums or after_operator):
                nums.append(_negation())
                ops.append(_MUL)
                after_operator = False
                continue
            if after_operator and op.kind is not OperationKind.FUNCTION:
                raise FormulaError(f"unexpected operator {op.name!r}")

            if op.kind is OperationKind.OPERATOR:
                after_operator = True
                ops.append(op)
            else:
                after_operator = False
                if op.narg > 0:
                    end = _closing(text, pos)
                    args = _parse_from(text, pos + 1, variables)
                    if not args:
                        raise FormulaError(f"missing arguments for {op.name!r}")
                    args.append(Token(TokenKind.OPERATION, op))
                    nums.append(args)
                    pos = end + 1
                else:
                    ops.append(op)
            continue

        after_operator = False
        if ch.isascii() and ch.isalpha():
            if variables is None:
                raise FormulaError("formula uses variables but none were given")
            end = pos
            while end < len(text) and text[end] in _NAME_CHARS:
                end += 1
            name = text[pos:end]
            if name not in variables:
                raise FormulaError(f"unknown variable {name!r}")
            nums.append([Token(TokenKind.VARIABLE, name)])
            pos = end
        else:
            end = pos
            while end < len(text) and text[end] in _NUMBER_CHARS:
                end += 1
            if end == pos:
                raise FormulaError(f"unexpected character {ch!r}")
            nums.append([Token(TokenKind.VALUE, _read_number(text, pos))])
            pos = end

    _reduce(nums, ops)
    return [token for entry in reversed(nums) for token in entry]


def parse(expr: str, variables: Optional[Variables] = None) -> Formula:
    """Parse ``expr`` into a formula whose names refer to keys of ``variables``.

    Assignments made by ``=`` are written back into ``variables``.
    """
    return Formula(tuple(_parse_from(expr, 0, variables)), variables)