"""
Transcendental primitives for the NUMERUS numeric tower.

Every function takes decimal.Decimal operands and a numeric context, and
evaluates with sympy at the context's working precision (the session precision
plus guard digits). Results come back as decimal.Decimal at working precision;
callers round them with context.round() once the whole computation is done.

Signals:
    DomainError           the result is undefined or not real (asin(2), log(0))
    NumericOverflowError  the result is infinite
"""

import decimal
from typing import Callable, Dict

import sympy

from .errors import DomainError, NumericOverflowError


FUNCTIONS: Dict[str, Callable] = {
    # circular
    "sin": sympy.sin,
    "cos": sympy.cos,
    "tan": sympy.tan,
    "cot": sympy.cot,
    "sec": sympy.sec,
    "csc": sympy.csc,
    "asin": sympy.asin,
    "acos": sympy.acos,
    "atan": sympy.atan,
    "acot": sympy.acot,
    "asec": sympy.asec,
    "acsc": sympy.acsc,
    # hyperbolic
    "sinh": sympy.sinh,
    "cosh": sympy.cosh,
    "tanh": sympy.tanh,
    "coth": sympy.coth,
    "sech": sympy.sech,
    "csch": sympy.csch,
    "asinh": sympy.asinh,
    "acosh": sympy.acosh,
    "atanh": sympy.atanh,
    "acoth": sympy.acoth,
    "asech": sympy.asech,
    "acsch": sympy.acsch,
    # exponential
    "exp": sympy.exp,
    "ln": sympy.log,
}


def _to_float(value: decimal.Decimal, digits: int) -> sympy.Float:
    return sympy.Float(str(value), digits)


def _to_decimal(result, operation: str, digits: int) -> decimal.Decimal:
    if result.has(sympy.nan) or result.has(sympy.zoo):
        raise DomainError(f"{operation} is undefined for this argument", operation)
    if result.is_infinite:
        raise NumericOverflowError(f"{operation} is infinite for this argument", operation)
    if not result.is_real:
        raise DomainError(f"{operation} has no real value for this argument", operation)
    return decimal.Decimal(str(sympy.Float(result, digits)))


def evaluate(name: str, value: decimal.Decimal, context) -> decimal.Decimal:
    """
    Evaluate a named function at the context's working precision.

    Args:
        name: Key of FUNCTIONS ("sin", "acosh", "ln", ...)
        value: Argument
        context: NumericContext supplying the working precision

    Returns:
        The real result, not yet rounded to the session precision.
    """
    digits = context.working_digits
    result = FUNCTIONS[name](_to_float(value, digits)).evalf(digits)
    return _to_decimal(result, name, digits)


def ln(value: decimal.Decimal, context) -> decimal.Decimal:
    return evaluate("ln", value, context)


def exp(value: decimal.Decimal, context) -> decimal.Decimal:
    return evaluate("exp", value, context)


def sin(value: decimal.Decimal, context) -> decimal.Decimal:
    return evaluate("sin", value, context)


def cos(value: decimal.Decimal, context) -> decimal.Decimal:
    return evaluate("cos", value, context)


def atan2(y: decimal.Decimal, x: decimal.Decimal, context) -> decimal.Decimal:
    """Angle of the point (x, y), in (-pi, pi]."""
    digits = context.working_digits
    result = sympy.atan2(_to_float(y, digits), _to_float(x, digits)).evalf(digits)
    return _to_decimal(result, "atan2", digits)


def pi(context) -> decimal.Decimal:
    digits = context.working_digits
    return _to_decimal(sympy.pi.evalf(digits), "pi", digits)


def euler(context) -> decimal.Decimal:
    digits = context.working_digits
    return _to_decimal(sympy.E.evalf(digits), "e", digits)
