"""
Conversion, introspection and random number reducers.

    (Rationalize 0.75)             -> 3/4
    (Rationalize 0.1666 1)         -> 1/6, the last digit repeats
    (IsInteger 3)                  -> True
    (ToDecimal 1/4)                -> 0.25
    (ToNumber "ff" 16)             -> 255
    (ToString 255 2)               -> "11111111"
    (Digits 255 16 4)              -> (List 0 0 15 15)
    (IntegerPart -7/2)             -> 3
    (FractionalPart -7/2)          -> 1/2
    (Random 5)                     -> a Decimal in [0, 1) with 5 digits
    (RandomInRange 1 6)            -> an Integer between 1 and 6
"""

import decimal
import re
import string
from fractions import Fraction
from typing import Callable, Dict, Optional

from .arithmetic import integer_value, replace_with_number
from .engine import ReductionEngine
from .expression import FALSE, STRING, TRUE, Expression, number_of
from .tower import (
    Complex, Decimal, Integer, Number, Rational, decimal_places, from_fraction,
)

DIGITS = string.digits + string.ascii_lowercase

_DECIMAL_RE = re.compile(r"-?[0-9]+\.?[0-9]*")


# ============================================================
# Rationalize
# ============================================================

def rationalize_decimal(value: Fraction, places: int, repeating: int) -> Optional[Fraction]:
    """
    The rational whose expansion is value with its last `repeating` digits
    repeating forever, or None if there are not that many decimal places.

        rationalize_decimal(Fraction("0.1666"), 4, 1) -> 1/6
    """
    offset = places - repeating
    if offset < 0:
        return None
    shifted = value * 10 ** offset
    integral = shifted.numerator // shifted.denominator
    period = (shifted - integral) * 10 ** repeating
    return Fraction(integral, 10 ** offset) + period / ((10 ** repeating - 1) * 10 ** offset)


def rationalize(node, session) -> bool:
    """Exact value of a Decimal, optionally with repeating trailing digits."""
    if not 1 <= len(node.children) <= 2:
        return False
    number = number_of(node.children[0])
    if number is None or isinstance(number, Complex):
        return False
    exact = from_fraction(number.fraction())
    if len(node.children) == 1 or not isinstance(number, Decimal) or number.has_integer_value():
        return replace_with_number(node, exact)

    repeating = integer_value(node.children[1])
    if repeating is None or repeating < 1:
        return False
    result = rationalize_decimal(number.fraction(), decimal_places(number), repeating)
    if result is None:
        return False
    return replace_with_number(node, from_fraction(result))


# ============================================================
# Predicates
# ============================================================

def _integral(number: Number) -> Optional[int]:
    if isinstance(number, Integer):
        return number.value
    if isinstance(number, Decimal) and number.has_integer_value():
        return int(number.value)
    return None


PREDICATES: Dict[str, Callable[[Number], bool]] = {
    "IsRealNumber": lambda n: not isinstance(n, Complex),
    "IsRationalNumber": lambda n: isinstance(n, (Integer, Rational)),
    "IsNumeric": lambda n: True,
    "IsIntegerValue": lambda n: _integral(n) is not None,
    "IsInteger": lambda n: isinstance(n, Integer),
    "IsDecimal": lambda n: isinstance(n, Decimal),
    "IsComplex": lambda n: isinstance(n, Complex),
    "IsNegativeNumber": lambda n: n.is_negative(),
    "IsPositiveNumber": lambda n: n.is_positive(),
    "IsNumberZero": lambda n: n.is_zero(),
    "IsEven": lambda n: _integral(n) is not None and _integral(n) % 2 == 0,
    "IsOdd": lambda n: _integral(n) is not None and _integral(n) % 2 != 0,
}


def predicate(node, session) -> bool:
    """Is* predicates; anything but a number gives False."""
    if len(node.children) != 1:
        return False
    number = number_of(node.children[0])
    result = number is not None and PREDICATES[node.tag](number)
    node.replace_by(Expression(TRUE if result else FALSE))
    return True


# ============================================================
# Conversions
# ============================================================

def to_integer(node, session) -> bool:
    """ToInteger and ToIfInteger. A non-integral Decimal is kept by ToIfInteger."""
    if len(node.children) != 1:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    if isinstance(number, Decimal):
        if number.has_integer_value():
            return replace_with_number(node, Integer(int(number.value)))
        if node.tag == "ToInteger":
            return False
    node.replace_by(node.children[0])
    return True


def to_decimal(node, session) -> bool:
    if len(node.children) != 1:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    return replace_with_number(node, number.to_decimal(session.context))


def _base_of(node: Expression, position: int) -> Optional[int]:
    if len(node.children) <= position:
        return 10
    base = integer_value(node.children[position])
    if base is None or not 2 <= base <= 36:
        return None
    return base


def parse_in_base(text: str, base: int) -> Optional[Fraction]:
    """Parse '-ff.8' style text in a base from 2 to 36, or None if malformed."""
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    whole, point, fraction = text.partition(".")
    if not whole and not fraction:
        return None
    value = Fraction(0)
    scale = Fraction(1)
    for position, char in enumerate(whole + fraction):
        digit = DIGITS.find(char.lower())
        if digit < 0 or digit >= base:
            return None
        if position < len(whole):
            value = value * base + digit
        else:
            scale /= base
            value += scale * digit
    return -value if negative else value


def to_number(node, session) -> bool:
    """ToNumber(string[, base]) parses an Integer, or a Decimal if there is a point."""
    if not 1 <= len(node.children) <= 2 or node.children[0].tag != STRING:
        return False
    text = node.children[0].value
    base = _base_of(node, 1)
    if base is None:
        return False

    if base == 10:
        if not _DECIMAL_RE.fullmatch(text):
            return False
        if "." in text:
            return replace_with_number(node, Decimal(session.context.round(decimal.Decimal(text))))
        return replace_with_number(node, Integer(int(text)))

    value = parse_in_base(text, base)
    if value is None:
        return False
    if "." in text:
        return replace_with_number(node, Decimal(session.context.divide_fraction(value)))
    return replace_with_number(node, Integer(int(value)))


def format_in_base(value: int, base: int) -> str:
    if value == 0:
        return "0"
    digits = []
    n = abs(value)
    while n:
        n, r = divmod(n, base)
        digits.append(DIGITS[r])
    return ("-" if value < 0 else "") + "".join(reversed(digits))


def to_string(node, session) -> bool:
    """ToString(x[, base]). Bases other than 10 need an Integer."""
    if not 1 <= len(node.children) <= 2:
        return False
    number = number_of(node.children[0])
    base = _base_of(node, 1)
    if number is None or base is None or isinstance(number, Complex):
        return False

    if isinstance(number, Integer):
        text = format_in_base(number.value, base)
    elif base != 10:
        return False
    elif isinstance(number, Decimal):
        text = format(number.value, "f")
    else:
        text = str(number)
    node.replace_by(Expression.string(text))
    return True


def digits(node, session) -> bool:
    """Digits(n[, base[, size]]), most significant first, left padded with zeros."""
    if not 1 <= len(node.children) <= 3:
        return False
    n = integer_value(node.children[0])
    if n is None or n < 0:
        return False
    base = 10
    if len(node.children) >= 2:
        base = integer_value(node.children[1])
        if base is None or base < 2:
            return False
    size = 0
    if len(node.children) == 3:
        size = integer_value(node.children[2])
        if size is None:
            return False

    result = []
    while True:
        n, r = divmod(n, base)
        result.append(r)
        if n == 0:
            break
    result.extend([0] * (size - len(result)))
    node.replace_by(Expression.list([Expression.number(d) for d in reversed(result)]))
    return True


# ============================================================
# Integer and fractional parts
# ============================================================

def integer_part(node, session) -> bool:
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None or isinstance(number, Complex):
        return False
    value = abs(number.fraction())
    return replace_with_number(node, Integer(value.numerator // value.denominator))


def fractional_part(node, session) -> bool:
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None or isinstance(number, Complex):
        return False
    if isinstance(number, Decimal):
        x = abs(number.value)
        return replace_with_number(node, Decimal(x - x.to_integral_value(rounding=decimal.ROUND_DOWN)))
    value = abs(number.fraction())
    return replace_with_number(node, from_fraction(value - value.numerator // value.denominator))


# ============================================================
# Random numbers
# ============================================================

def random_decimal(node, session) -> bool:
    """Random([digits]): a Decimal in [0, 1) with the given number of digits."""
    if len(node.children) > 1:
        return False
    places = session.precision
    if node.children:
        places = integer_value(node.children[0])
        if places is None or places < 1:
            return False
    value = session.random.randrange(10 ** places)
    return replace_with_number(node, Decimal(decimal.Decimal(value).scaleb(-places)))


def random_in_range(node, session) -> bool:
    """RandomInRange(a, b): a uniformly chosen Integer between a and b, inclusive."""
    if len(node.children) != 2:
        return False
    a = integer_value(node.children[0])
    b = integer_value(node.children[1])
    if a is None or b is None:
        return False
    return replace_with_number(node, Integer(session.random.randint(min(a, b), max(a, b))))


def register(engine: ReductionEngine) -> None:
    """Register the conversion reducers."""
    engine.add_reducer("Rationalize", rationalize, "rationalize", "Exact value of a decimal")

    for tag in PREDICATES:
        name = re.sub(r"(?<!^)(?=[A-Z])", "-", tag).lower()
        engine.add_reducer(tag, predicate, name, f"{tag} predicate")

    engine.add_reducer("ToInteger", to_integer, "to-integer", "Integral Decimal to Integer")
    engine.add_reducer("ToIfInteger", to_integer, "to-if-integer",
                       "Integral Decimal to Integer, others unchanged")
    engine.add_reducer("ToDecimal", to_decimal, "to-decimal", "Number to Decimal")
    engine.add_reducer("ToNumber", to_number, "to-number", "Parses a number from a string")
    engine.add_reducer("ToString", to_string, "to-string", "Formats a number as a string")
    engine.add_reducer("Digits", digits, "digits", "Digits of a non-negative integer")

    engine.add_reducer("IntegerPart", integer_part, "integer-part", "Integer part of |x|")
    engine.add_reducer("FractionalPart", fractional_part, "fractional-part", "Fractional part of |x|")

    engine.add_reducer("Random", random_decimal, "random", "Random Decimal in [0, 1)")
    engine.add_reducer("RandomInRange", random_in_range, "random-in-range",
                       "Random Integer in a closed range")
