"""
Logarithms, circular and hyperbolic functions.

Logarithms:
    (NaturalLogarithm x) (DecimalLogarithm x) (BinaryLogarithm x) (Logarithm x base)

    (DecimalLogarithm 1000)   -> 3          exact power of an exact base
    (Logarithm 1/8 2)         -> -3
    (NaturalLogarithm 0)      -> (Negative Infinity)
    (NaturalLogarithm 2.0)    -> 0.69314718055994530942
    (NaturalLogarithm -1.0)   -> (Complex 0.0 3.1415926535897932385)

Circular and hyperbolic functions go through one table keyed by tag. Exact
arguments are only rewritten at zero, or in numeric mode:

    (Sine 0)         -> 0
    (Cosecant 0)     -> Undefined
    (Sine 1)         stays as it is
    (N (Sine 1))     -> 0.84147098480789650665
    (ArcTangent2 1.0 1.0) -> 0.78539816339744830962

Domain, overflow and underflow signals of the numeric functions produce
Undefined. A non-numeric operand makes the reducer decline.
"""

import decimal
import math
from fractions import Fraction
from typing import Dict, Optional

from . import functions
from .arithmetic import replace_with_number, typed_zero
from .engine import ReductionEngine
from .errors import DomainError, NonNumericError, NumericOverflowError, NumericUnderflowError, ValidationError
from .expression import UNDEFINED, Expression, number_of
from .tower import (
    MAX_EXACT_BITS, ONE, ZERO, Complex, Decimal, Integer, Number, NumericContext, create_complex,
    decimal_signals,
)

SIGNALS = (DomainError, NumericOverflowError, NumericUnderflowError)

LOGARITHM_BASES: Dict[str, Optional[int]] = {
    "NaturalLogarithm": None,
    "DecimalLogarithm": 10,
    "BinaryLogarithm": 2,
}

TRIGONOMETRIC: Dict[str, str] = {
    "Sine": "sin",
    "Cosine": "cos",
    "Tangent": "tan",
    "Cotangent": "cot",
    "Secant": "sec",
    "Cosecant": "csc",
    "ArcSine": "asin",
    "ArcCosine": "acos",
    "ArcTangent": "atan",
    "ArcCotangent": "acot",
    "ArcSecant": "asec",
    "ArcCosecant": "acsc",
    "HyperbolicSine": "sinh",
    "HyperbolicCosine": "cosh",
    "HyperbolicTangent": "tanh",
    "HyperbolicCotangent": "coth",
    "HyperbolicSecant": "sech",
    "HyperbolicCosecant": "csch",
    "HyperbolicArcSine": "asinh",
    "HyperbolicArcCosine": "acosh",
    "HyperbolicArcTangent": "atanh",
    "HyperbolicArcCotangent": "acoth",
    "HyperbolicArcSecant": "asech",
    "HyperbolicArcCosecant": "acsch",
}

# Values at an exact zero; None means Undefined. Tags missing here have an
# irrational value at zero (ArcCosine, ArcCotangent).
AT_ZERO: Dict[str, Optional[Number]] = {
    "Sine": ZERO,
    "Cosine": ONE,
    "Tangent": ZERO,
    "Cotangent": None,
    "Secant": ONE,
    "Cosecant": None,
    "ArcSine": ZERO,
    "ArcTangent": ZERO,
    "ArcSecant": None,
    "ArcCosecant": None,
    "HyperbolicSine": ZERO,
    "HyperbolicCosine": ONE,
    "HyperbolicTangent": ZERO,
    "HyperbolicCotangent": None,
    "HyperbolicSecant": ONE,
    "HyperbolicCosecant": None,
    "HyperbolicArcSine": ZERO,
    "HyperbolicArcCosine": None,
    "HyperbolicArcTangent": ZERO,
    "HyperbolicArcCotangent": None,
    "HyperbolicArcSecant": None,
    "HyperbolicArcCosecant": None,
}


def _undefined(node: Expression) -> bool:
    node.replace_by(Expression(UNDEFINED))
    return True


def _decimal(number: Number, context: NumericContext) -> decimal.Decimal:
    return number.to_decimal(context).value


# ============================================================
# Logarithms
# ============================================================

def _log(value: Fraction) -> float:
    return math.log(value.numerator) - math.log(value.denominator)


def exact_logarithm(x: Fraction, base: Fraction) -> Optional[int]:
    """The integer k with base^k == x, or None."""
    if x <= 0:
        return None
    k = round(_log(x) / _log(base))
    size = max(abs(base.numerator), base.denominator).bit_length()
    if size * abs(k) > MAX_EXACT_BITS:
        return None
    return k if base ** k == x else None


def _base_of(node: Expression) -> Optional[Number]:
    """The base of a logarithm node: a Number, None for e, or raise."""
    if node.tag in LOGARITHM_BASES:
        base = LOGARITHM_BASES[node.tag]
        return None if base is None else Integer(base)
    base = number_of(node.children[1])
    if base is None:
        raise NonNumericError("Symbolic base", "log")
    if isinstance(base, Complex) or not base.is_positive() or base.is_one():
        raise ValidationError(node.children[1], "Invalid base")
    return base


def _complex_logarithm(x: Number, base: Optional[Number], context: NumericContext) -> Number:
    """(ln|x| + i*arg(x)) / ln(base) for a negative or complex x."""
    real, imag = (x.real, x.imag) if isinstance(x, Complex) else (x, ZERO)
    re, im = _decimal(real, context), _decimal(imag, context)
    wide = context.wide()
    with decimal_signals("log"):
        modulus = wide.sqrt(wide.add(wide.multiply(re, re), wide.multiply(im, im)))
        log_modulus = functions.ln(modulus, context)
        angle = functions.atan2(im, re, context)
        if base is not None:
            log_base = functions.ln(_decimal(base, context), context)
            log_modulus = wide.divide(log_modulus, log_base)
            angle = wide.divide(angle, log_base)
    return create_complex(Decimal(context.round(log_modulus)), Decimal(context.round(angle)))


def _real_logarithm(x: Number, base: Optional[Number], context: NumericContext) -> Number:
    result = functions.ln(_decimal(x, context), context)
    if base is not None:
        with decimal_signals("log"):
            result = context.wide().divide(result, functions.ln(_decimal(base, context), context))
    return Decimal(context.round(result))


def logarithm(node, session) -> bool:
    """Natural, decimal, binary and arbitrary base logarithms."""
    expected = 1 if node.tag in LOGARITHM_BASES else 2
    if len(node.children) != expected:
        return False
    x = number_of(node.children[0])
    if x is None:
        return False
    base = _base_of(node)
    operands = [x] if base is None else [x, base]

    if x.is_one():
        return replace_with_number(node, typed_zero(*operands))
    if x.is_zero():
        node.replace_by(Expression.infinity(negative=base is None or base.fraction() > 1))
        return True

    exact = all(op.exact for op in operands)
    if exact and base is not None and not isinstance(x, Complex):
        k = exact_logarithm(x.fraction(), base.fraction())
        if k is not None:
            return replace_with_number(node, Integer(k))
    if exact and not session.numeric:
        return False

    context = session.context
    try:
        if isinstance(x, Complex) or x.is_negative():
            result = _complex_logarithm(x, base, context)
        else:
            result = _real_logarithm(x, base, context)
    except SIGNALS:
        return _undefined(node)
    return replace_with_number(node, result)


# ============================================================
# Circular and hyperbolic functions
# ============================================================

def trigonometric(node, session) -> bool:
    """Every circular and hyperbolic function, through TRIGONOMETRIC."""
    if len(node.children) != 1:
        return False
    x = number_of(node.children[0])
    if x is None or isinstance(x, Complex):
        return False

    if x.exact and x.is_zero() and node.tag in AT_ZERO:
        value = AT_ZERO[node.tag]
        return _undefined(node) if value is None else replace_with_number(node, value)
    if x.exact and not session.numeric:
        return False

    context = session.context
    try:
        result = functions.evaluate(TRIGONOMETRIC[node.tag], _decimal(x, context), context)
    except SIGNALS:
        return _undefined(node)
    except NonNumericError:
        return False
    return replace_with_number(node, Decimal(context.round(result)))


def arc_tangent2(node, session) -> bool:
    """ArcTangent2(y, x), the angle of the point (x, y)."""
    if len(node.children) != 2:
        return False
    y, x = number_of(node.children[0]), number_of(node.children[1])
    if y is None or x is None or isinstance(y, Complex) or isinstance(x, Complex):
        return False
    if y.is_zero() and x.is_zero():
        return _undefined(node)

    exact = y.exact and x.exact
    if exact and y.is_zero() and x.is_positive():
        return replace_with_number(node, ZERO)
    if exact and not session.numeric:
        return False

    context = session.context
    try:
        result = functions.atan2(_decimal(y, context), _decimal(x, context), context)
    except SIGNALS:
        return _undefined(node)
    return replace_with_number(node, Decimal(context.round(result)))


def register(engine: ReductionEngine) -> None:
    """Register the logarithm and trigonometric reducers."""
    for tag in LOGARITHM_BASES:
        engine.add_reducer(tag, logarithm, tag.replace("Logarithm", "").lower() + "-logarithm",
                           f"{tag} of a number")
    engine.add_reducer("Logarithm", logarithm, "logarithm", "Logarithm of a number in a base")

    for tag, name in TRIGONOMETRIC.items():
        engine.add_reducer(tag, trigonometric, f"{name}-numeric", f"{tag} of a number")
    engine.add_reducer("ArcTangent2", arc_tangent2, "atan2-numeric", "Angle of a point")
