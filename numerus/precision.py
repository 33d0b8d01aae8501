"""
Precision and rounding reducers.

Session settings:
    (SetPrecision 50)                  -> Null, Decimal results now carry 50 digits
    (GetPrecision)                     -> 50
    (SetRoundingMode RoundingMode.HalfEven)
    (SetEuclideanDivisionMode EuclideanMode)
    (WithPrecision (Division 1.0 3) 5) -> 0.33333, the precision is restored afterwards

Rounding family, each with an optional trailing rounding mode operand:
    (RoundToPrecision 3.14159 3)             -> 3.14
    (RoundToDecimalPlaces 2/3 2)             -> 0.67
    (RoundToMultiple 17 5)                   -> 15
    (RoundToInteger 2.5 RoundingMode.HalfEven) -> 2
    (Truncate x [places]) (Ceiling x [places]) (Floor x [places]) (Round x [places])

Numeric evaluation:
    (Numeric (Division 1 3))     -> 0.33333333333333333333
    (Numeric Pi 30)              -> 3.14159265358979323846264338328
"""

from . import functions
from .arithmetic import replace_with_number, require_integer
from .engine import Precedence, ReductionEngine
from .errors import ValidationError
from .expression import EULER, NULL, NUMBER, PI, Expression, number_of
from .tower import (
    MAX_PRECISION, ROUNDING_MODES, Complex, Decimal, Integer, RoundingMode, decimal_places,
    round_to_multiple, round_to_places, round_to_precision, significant_digits,
)


POSITIVE_INTEGER = "Expression must be a positive integer number"
INTEGER = "Expression must be an integer number"
ROUNDING_MODE = "Expression must be a rounding mode"


def rounding_mode_of(node: Expression) -> RoundingMode:
    """Read a rounding mode operand, or raise ValidationError."""
    mode = RoundingMode.from_tag(node.tag) if not node.children else None
    if mode not in ROUNDING_MODES:
        raise ValidationError(node, ROUNDING_MODE)
    return mode


def precision_of(node: Expression) -> int:
    return require_integer(node, POSITIVE_INTEGER, minimum=1, maximum=MAX_PRECISION)


# ============================================================
# Session settings
# ============================================================

def set_precision(node, session) -> bool:
    if len(node.children) != 1:
        return False
    session.set_precision(precision_of(node.children[0]))
    node.replace_by(Expression(NULL))
    return True


def get_precision(node, session) -> bool:
    return replace_with_number(node, Integer(session.precision))


def set_rounding_mode(node, session) -> bool:
    if len(node.children) != 1:
        return False
    session.set_rounding(rounding_mode_of(node.children[0]))
    node.replace_by(Expression(NULL))
    return True


def get_rounding_mode(node, session) -> bool:
    node.replace_by(Expression(session.rounding.tag))
    return True


def set_euclidean_division_mode(node, session) -> bool:
    if len(node.children) != 1:
        return False
    argument = node.children[0]
    mode = RoundingMode.from_tag(argument.tag) if not argument.children else None
    if mode is None:
        raise ValidationError(argument, "Expression must be a rounding mode or the euclidean mode")
    session.set_euclidean_mode(mode)
    node.replace_by(Expression(NULL))
    return True


def get_euclidean_division_mode(node, session) -> bool:
    node.replace_by(Expression(session.euclidean_mode.tag))
    return True


def with_precision(node, session) -> bool:
    """WithPrecision(expr, p) reduces expr with p digits of precision."""
    if len(node.children) != 2:
        return False
    session.reduce_child(node, 1)
    precision = precision_of(node.children[1])
    with session.scoped_precision(precision):
        session.reduce_child(node, 0)
    node.replace_by(node.children[0])
    return True


# ============================================================
# Introspection
# ============================================================

def significant_digits_reducer(node, session) -> bool:
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None:
        return False
    return replace_with_number(node, Integer(significant_digits(number)))


def decimal_places_reducer(node, session) -> bool:
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None:
        return False
    return replace_with_number(node, Integer(decimal_places(number)))


# ============================================================
# Rounding
# ============================================================

def _session_mode(node: Expression, session, mode_index: int) -> RoundingMode:
    """The explicit mode operand at mode_index, or the session mode."""
    if len(node.children) <= mode_index:
        return session.rounding
    return rounding_mode_of(node.children[mode_index])


def round_to_precision_reducer(node, session) -> bool:
    if not 2 <= len(node.children) <= 3:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    digits = precision_of(node.children[1])
    mode = _session_mode(node, session, 2)
    return replace_with_number(node, round_to_precision(number, digits, mode))


def round_to_integer_reducer(node, session) -> bool:
    if not 1 <= len(node.children) <= 2:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    mode = _session_mode(node, session, 1)
    return replace_with_number(node, round_to_places(number, 0, mode, keep_decimal=False))


def round_to_decimal_places_reducer(node, session) -> bool:
    if not 2 <= len(node.children) <= 3:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    places = require_integer(node.children[1], INTEGER)
    mode = _session_mode(node, session, 2)
    return replace_with_number(node, round_to_places(number, places, mode))


def round_to_multiple_reducer(node, session) -> bool:
    if not 2 <= len(node.children) <= 3:
        return False
    number = number_of(node.children[0])
    multiple = number_of(node.children[1])
    if number is None or multiple is None:
        return False
    if isinstance(multiple, Complex) or multiple.is_zero():
        raise ValidationError(node.children[1], "Expression must be a non-zero real number")
    mode = _session_mode(node, session, 2)
    return replace_with_number(node, round_to_multiple(number, multiple, mode, session.context))


_FIXED_MODES = {
    "Truncate": RoundingMode.TOWARDS_ZERO,
    "Ceiling": RoundingMode.TOWARDS_INFINITY,
    "Floor": RoundingMode.TOWARDS_MINUS_INFINITY,
}


def floor_ceiling_round_truncate(node, session) -> bool:
    """Truncate, Ceiling, Floor and Round, with optional decimal places."""
    if not 1 <= len(node.children) <= 2:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    places = require_integer(node.children[1], INTEGER) if len(node.children) == 2 else 0
    mode = _FIXED_MODES.get(node.tag, session.rounding)
    return replace_with_number(node, round_to_places(number, places, mode, keep_decimal=False))


# ============================================================
# Numeric evaluation
# ============================================================

def _to_decimals(node: Expression, session) -> None:
    """Convert every exact number in a tree into a Decimal."""
    if node.tag == NUMBER:
        number = node.value
        if number.exact:
            node.replace_by(Expression.number(number.to_decimal(session.context)))
        return
    for child in list(node.children):
        _to_decimals(child, session)


def _evaluate_numeric(node: Expression, session) -> None:
    with session.numeric_mode():
        session.reduce_child(node, 0)
    _to_decimals(node.children[0], session)
    node.replace_by(node.children[0])


def numeric_precision(node, session) -> bool:
    """Numeric(expr, p) evaluates expr numerically with p digits."""
    if len(node.children) != 2:
        return False
    session.reduce_child(node, 1)
    precision = precision_of(node.children[1])
    with session.scoped_precision(precision):
        _evaluate_numeric(node, session)
    return True


def numeric(node, session) -> bool:
    """Numeric(expr) evaluates expr numerically."""
    if len(node.children) != 1:
        return False
    _evaluate_numeric(node, session)
    return True


def _constant(node, session, value) -> bool:
    if not session.numeric:
        return False
    context = session.context
    return replace_with_number(node, Decimal(context.round(value(context))))


def pi(node, session) -> bool:
    return _constant(node, session, functions.pi)


def euler(node, session) -> bool:
    return _constant(node, session, functions.euler)


def register(engine: ReductionEngine) -> None:
    """Register the precision and rounding reducers."""
    engine.add_reducer("SetPrecision", set_precision, "set-precision", "Sets the session precision")
    engine.add_reducer("GetPrecision", get_precision, "get-precision", "The session precision")
    engine.add_reducer("WithPrecision", with_precision, "with-precision",
                       "Reduces an expression under a temporary precision", special=True)
    engine.add_reducer("SetRoundingMode", set_rounding_mode, "set-rounding-mode",
                       "Sets the session rounding mode")
    engine.add_reducer("GetRoundingMode", get_rounding_mode, "get-rounding-mode",
                       "The session rounding mode")
    engine.add_reducer("SetEuclideanDivisionMode", set_euclidean_division_mode,
                       "set-euclidean-division-mode", "Sets the quotient rounding of Div and Mod")
    engine.add_reducer("GetEuclideanDivisionMode", get_euclidean_division_mode,
                       "get-euclidean-division-mode", "The quotient rounding of Div and Mod")

    engine.add_reducer("SignificantDigits", significant_digits_reducer, "significant-digits",
                       "Number of significant digits")
    engine.add_reducer("DecimalPlaces", decimal_places_reducer, "decimal-places",
                       "Number of decimal places")

    engine.add_reducer("RoundToPrecision", round_to_precision_reducer, "round-to-precision",
                       "Rounds to a number of significant digits")
    engine.add_reducer("RoundToInteger", round_to_integer_reducer, "round-to-integer",
                       "Rounds to an integer")
    engine.add_reducer("RoundToDecimalPlaces", round_to_decimal_places_reducer,
                       "round-to-decimal-places", "Rounds to a number of decimal places")
    engine.add_reducer("RoundToMultiple", round_to_multiple_reducer, "round-to-multiple",
                       "Rounds to a multiple of a number")
    for tag in ("Truncate", "Ceiling", "Floor", "Round"):
        engine.add_reducer(tag, floor_ceiling_round_truncate, tag.lower(),
                           f"{tag} with optional decimal places")

    engine.add_reducer("Numeric", numeric_precision, "numeric-precision",
                       "Numeric evaluation with a given precision", special=True,
                       precedence=Precedence.HIGH)
    engine.add_reducer("Numeric", numeric, "numeric", "Numeric evaluation", special=True)
    engine.add_reducer(PI, pi, "pi-numeric", "Pi in numeric mode")
    engine.add_reducer(EULER, euler, "euler-numeric", "Euler's number in numeric mode")
