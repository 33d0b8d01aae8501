"""
Numeric tower for NUMERUS.

Four kinds of canonical numbers exist, ordered by the promotion lattice

    Integer  <  Rational  <  Decimal,      Complex wraps any of them

    Integer(7)                      arbitrary precision int
    Rational(Fraction(3, 4))        reduced, denominator > 1
    Decimal(decimal.Decimal("0.5")) produced at session precision and rounding
    Complex(Integer(1), Integer(2)) non-zero imaginary part

Numbers are immutable. Arithmetic takes a NumericContext carrying the session
precision and rounding mode:

    ctx = NumericContext(precision=20)
    Integer(1).division(Integer(3), ctx)            # Rational 1/3
    Decimal.of("1").division(Integer(3), ctx)       # Decimal 0.33333333333333333333

Exact operands stay exact. A result becomes Decimal only when an operand is
Decimal or the operation is intrinsically inexact (an irrational root, a
transcendental function).

The tower signals with the NumericError family from numerus.errors rather than
returning special values.
"""

import decimal
import math
import re
from contextlib import contextmanager
from enum import Enum
from fractions import Fraction
from typing import Optional, Tuple, Union

from . import functions
from .errors import DomainError, NonNumericError, NumericOverflowError, NumericUnderflowError


GUARD_DIGITS = 3
EXPONENT_LIMIT = 9 * 10 ** 15
MAX_PRECISION = 10 ** 9
# Largest exact power materialized, in bits
MAX_EXACT_BITS = 1 << 24

_TRAPS = [decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow, decimal.Underflow]


# ============================================================
# Rounding modes
# ============================================================

class RoundingMode(Enum):
    """
    The nine rounding modes, plus the Euclidean division mode.

    Values are the tags of the nullary expressions that name them, so a mode
    can be read straight off an expression node.
    """

    AWAY_FROM_ZERO = "RoundingMode.AwayFromZero"
    TOWARDS_ZERO = "RoundingMode.TowardsZero"
    TOWARDS_INFINITY = "RoundingMode.TowardsInfinity"
    TOWARDS_MINUS_INFINITY = "RoundingMode.TowardsMinusInfinity"
    HALF_AWAY_FROM_ZERO = "RoundingMode.HalfAwayFromZero"
    HALF_TOWARDS_ZERO = "RoundingMode.HalfTowardsZero"
    HALF_EVEN = "RoundingMode.HalfEven"
    HALF_TOWARDS_INFINITY = "RoundingMode.HalfTowardsInfinity"
    HALF_TOWARDS_MINUS_INFINITY = "RoundingMode.HalfTowardsMinusInfinity"
    # Only valid as a Euclidean division mode: remainder in [0, |divisor|)
    EUCLIDEAN = "EuclideanMode"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        """Short name: 'HalfEven', 'TowardsZero', 'EuclideanMode'."""
        return self.value.split(".")[-1]

    @classmethod
    def from_tag(cls, tag: str) -> Optional['RoundingMode']:
        for mode in cls:
            if mode.value == tag:
                return mode
        return None

    @classmethod
    def from_name(cls, name: str) -> Optional['RoundingMode']:
        """
        Look a mode up leniently, for the command line and REPL.

        Accepts the tag ('RoundingMode.HalfEven'), the label ('HalfEven',
        'halfeven') or the enum name ('HALF_EVEN', 'half-even').
        """
        key = name.strip().lower().replace("-", "_")
        for mode in cls:
            if key in (mode.value.lower(), mode.label.lower(), mode.name.lower(),
                       mode.name.lower().replace("_", "")):
                return mode
        return None

    def decimal_rounding(self, negative: bool = False) -> str:
        """The decimal module rounding constant for a value of the given sign."""
        if self is RoundingMode.HALF_TOWARDS_INFINITY:
            return decimal.ROUND_HALF_DOWN if negative else decimal.ROUND_HALF_UP
        if self is RoundingMode.HALF_TOWARDS_MINUS_INFINITY:
            return decimal.ROUND_HALF_UP if negative else decimal.ROUND_HALF_DOWN
        if self is RoundingMode.EUCLIDEAN:
            raise ValueError("EuclideanMode is not a rounding mode")
        return _DECIMAL_ROUNDING[self]


_DECIMAL_ROUNDING = {
    RoundingMode.AWAY_FROM_ZERO: decimal.ROUND_UP,
    RoundingMode.TOWARDS_ZERO: decimal.ROUND_DOWN,
    RoundingMode.TOWARDS_INFINITY: decimal.ROUND_CEILING,
    RoundingMode.TOWARDS_MINUS_INFINITY: decimal.ROUND_FLOOR,
    RoundingMode.HALF_AWAY_FROM_ZERO: decimal.ROUND_HALF_UP,
    RoundingMode.HALF_TOWARDS_ZERO: decimal.ROUND_HALF_DOWN,
    RoundingMode.HALF_EVEN: decimal.ROUND_HALF_EVEN,
}

ROUNDING_MODES = tuple(mode for mode in RoundingMode if mode is not RoundingMode.EUCLIDEAN)


def round_fraction(value: Fraction, mode: RoundingMode) -> int:
    """Round an exact rational to an integer under one of the nine modes."""
    floor = value.numerator // value.denominator
    if floor == value:
        return floor
    ceiling = floor + 1
    negative = value < 0
    toward_zero, away_from_zero = (ceiling, floor) if negative else (floor, ceiling)

    if mode is RoundingMode.TOWARDS_ZERO:
        return toward_zero
    if mode is RoundingMode.AWAY_FROM_ZERO:
        return away_from_zero
    if mode is RoundingMode.TOWARDS_INFINITY:
        return ceiling
    if mode is RoundingMode.TOWARDS_MINUS_INFINITY:
        return floor

    difference = value - floor
    half = Fraction(1, 2)
    if difference < half:
        return floor
    if difference > half:
        return ceiling

    # Exactly halfway
    if mode is RoundingMode.HALF_AWAY_FROM_ZERO:
        return away_from_zero
    if mode is RoundingMode.HALF_TOWARDS_ZERO:
        return toward_zero
    if mode is RoundingMode.HALF_EVEN:
        return floor if floor % 2 == 0 else ceiling
    if mode is RoundingMode.HALF_TOWARDS_INFINITY:
        return ceiling
    if mode is RoundingMode.HALF_TOWARDS_MINUS_INFINITY:
        return floor
    raise ValueError(f"Cannot round with {mode.label}")


# ============================================================
# Numeric context
# ============================================================

class NumericContext:
    """
    Precision and rounding in effect for a computation.

    Intermediate results are computed with GUARD_DIGITS extra digits and then
    rounded once to the target precision with the context's rounding mode.
    """

    def __init__(self, precision: int = 20,
                 rounding: RoundingMode = RoundingMode.HALF_AWAY_FROM_ZERO):
        self.precision = precision
        self.rounding = rounding

    @property
    def working_digits(self) -> int:
        return self.precision + GUARD_DIGITS

    def wide(self, extra: int = GUARD_DIGITS) -> decimal.Context:
        """A decimal context for intermediate results."""
        return decimal.Context(prec=self.precision + extra, rounding=decimal.ROUND_05UP,
                               Emax=EXPONENT_LIMIT, Emin=-EXPONENT_LIMIT, traps=_TRAPS)

    def round(self, value: decimal.Decimal) -> decimal.Decimal:
        """Round a value to the context precision with the context rounding mode."""
        rounding = self.rounding.decimal_rounding(value.is_signed())
        context = decimal.Context(prec=self.precision, rounding=rounding,
                                  Emax=EXPONENT_LIMIT, Emin=-EXPONENT_LIMIT, traps=_TRAPS)
        return guarded(context.plus, value)

    def compute(self, operation: str, *operands: decimal.Decimal) -> decimal.Decimal:
        """
        Apply a decimal.Context operation with guard digits, then round.

        Example:
            ctx.compute("divide", decimal.Decimal(1), decimal.Decimal(3))
        """
        raw = guarded(getattr(self.wide(), operation), *operands)
        return self.round(raw)

    def divide_fraction(self, value: Fraction) -> decimal.Decimal:
        return self.compute("divide", decimal.Decimal(value.numerator),
                            decimal.Decimal(value.denominator))

    def __repr__(self) -> str:
        return f"NumericContext(precision={self.precision}, rounding={self.rounding.label})"


@contextmanager
def decimal_signals(operation: str = "decimal"):
    """Translate trapped decimal signals into NumericErrors."""
    try:
        yield
    except decimal.Overflow as e:
        raise NumericOverflowError("Numeric overflow", operation) from e
    except decimal.Underflow as e:
        raise NumericUnderflowError("Numeric underflow", operation) from e
    except decimal.DivisionByZero as e:
        raise DomainError("Division by zero", operation) from e
    except decimal.InvalidOperation as e:
        raise DomainError("Invalid operation", operation) from e


def guarded(operation, *operands):
    """Run a single decimal operation under decimal_signals()."""
    with decimal_signals(operation.__name__):
        return operation(*operands)


# ============================================================
# Number kinds
# ============================================================

class Number:
    """Base class of the canonical numbers."""

    kind = "Number"
    exact = True

    def is_zero(self) -> bool:
        raise NotImplementedError

    def is_one(self) -> bool:
        raise NotImplementedError

    def is_negative(self) -> bool:
        raise NotImplementedError

    def is_positive(self) -> bool:
        raise NotImplementedError

    def has_integer_value(self) -> bool:
        raise NotImplementedError

    def negate(self) -> 'Number':
        raise NotImplementedError

    def absolute(self) -> 'Number':
        return self.negate() if self.is_negative() else self

    def fraction(self) -> Fraction:
        """The exact rational value. Complex numbers have none."""
        raise NonNumericError(f"{self.kind} has no rational value")

    def to_decimal(self, context: NumericContext) -> 'Number':
        raise NotImplementedError

    # Binary operations delegate to the module-level functions

    def addition(self, other: 'Number', context: NumericContext) -> 'Number':
        return add(self, other, context)

    def multiplication(self, other: 'Number', context: NumericContext) -> 'Number':
        return multiply(self, other, context)

    def division(self, other: 'Number', context: NumericContext) -> 'Number':
        return divide(self, other, context)

    def exponentiation(self, other: 'Number', context: NumericContext) -> 'Number':
        return power(self, other, context)

    def comparison(self, other: 'Number') -> int:
        return compare(self, other)

    def div_mod(self, other: 'Number', mode: RoundingMode,
                context: NumericContext) -> Tuple['Number', 'Number']:
        return div_mod(self, other, mode, context)


class Integer(Number):
    kind = "Integer"
    __slots__ = ("value",)

    def __init__(self, value: int):
        self.value = int(value)

    def is_zero(self) -> bool:
        return self.value == 0

    def is_one(self) -> bool:
        return self.value == 1

    def is_negative(self) -> bool:
        return self.value < 0

    def is_positive(self) -> bool:
        return self.value > 0

    def has_integer_value(self) -> bool:
        return True

    def negate(self) -> 'Integer':
        return Integer(-self.value)

    def fraction(self) -> Fraction:
        return Fraction(self.value)

    def to_decimal(self, context: NumericContext) -> 'Decimal':
        return Decimal(context.round(decimal.Decimal(self.value)))

    def __eq__(self, other) -> bool:
        return type(other) is Integer and other.value == self.value

    def __hash__(self) -> int:
        return hash(("Integer", self.value))

    def __repr__(self) -> str:
        return f"Integer({self.value})"

    def __str__(self) -> str:
        return str(self.value)


class Rational(Number):
    """A reduced fraction whose denominator is greater than one."""

    kind = "Rational"
    __slots__ = ("value",)

    def __init__(self, value: Fraction):
        self.value = value

    @property
    def numerator(self) -> int:
        return self.value.numerator

    @property
    def denominator(self) -> int:
        return self.value.denominator

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def is_negative(self) -> bool:
        return self.value < 0

    def is_positive(self) -> bool:
        return self.value > 0

    def has_integer_value(self) -> bool:
        return False

    def negate(self) -> 'Rational':
        return Rational(-self.value)

    def fraction(self) -> Fraction:
        return self.value

    def to_decimal(self, context: NumericContext) -> 'Decimal':
        return Decimal(context.divide_fraction(self.value))

    def __eq__(self, other) -> bool:
        return type(other) is Rational and other.value == self.value

    def __hash__(self) -> int:
        return hash(("Rational", self.value))

    def __repr__(self) -> str:
        return f"Rational({self.value.numerator}, {self.value.denominator})"

    def __str__(self) -> str:
        return f"{self.value.numerator}/{self.value.denominator}"


class Decimal(Number):
    kind = "Decimal"
    exact = False
    __slots__ = ("value",)

    def __init__(self, value: decimal.Decimal):
        if not value.is_finite():
            raise DomainError(f"Not a finite decimal: {value}")
        self.value = value

    @classmethod
    def of(cls, text: Union[str, int]) -> 'Decimal':
        """Build a Decimal holding exactly the given literal."""
        return cls(decimal.Decimal(text))

    def is_zero(self) -> bool:
        return self.value.is_zero()

    def is_one(self) -> bool:
        return self.value == 1

    def is_negative(self) -> bool:
        return self.value < 0

    def is_positive(self) -> bool:
        return self.value > 0

    def has_integer_value(self) -> bool:
        return self.value == self.value.to_integral_value()

    def negate(self) -> 'Decimal':
        # Zero has no sign: -(0.0) is 0.0
        if self.value.is_zero():
            return Decimal(self.value.copy_abs())
        return Decimal(self.value.copy_negate())

    def absolute(self) -> 'Decimal':
        return Decimal(self.value.copy_abs())

    def fraction(self) -> Fraction:
        return Fraction(self.value)

    def to_decimal(self, context: NumericContext) -> 'Decimal':
        return self

    def __eq__(self, other) -> bool:
        return type(other) is Decimal and other.value == self.value

    def __hash__(self) -> int:
        return hash(("Decimal", self.value))

    def __repr__(self) -> str:
        return f"Decimal('{self.value}')"

    def __str__(self) -> str:
        return format_decimal(self.value)


class Complex(Number):
    """A complex number with real components and a non-zero imaginary part."""

    kind = "Complex"
    __slots__ = ("real", "imag")

    def __init__(self, real: Number, imag: Number):
        self.real = real
        self.imag = imag

    @property
    def exact(self) -> bool:
        return self.real.exact and self.imag.exact

    def is_zero(self) -> bool:
        return False

    def is_one(self) -> bool:
        return False

    def is_negative(self) -> bool:
        return False

    def is_positive(self) -> bool:
        return False

    def has_integer_value(self) -> bool:
        return False

    def negate(self) -> 'Complex':
        return Complex(self.real.negate(), self.imag.negate())

    def absolute(self) -> Number:
        raise NonNumericError("The absolute value of a complex number is its modulus")

    def to_decimal(self, context: NumericContext) -> Number:
        return create_complex(self.real.to_decimal(context), self.imag.to_decimal(context))

    def conjugate(self) -> 'Complex':
        return Complex(self.real, self.imag.negate())

    def __eq__(self, other) -> bool:
        return type(other) is Complex and other.real == self.real and other.imag == self.imag

    def __hash__(self) -> int:
        return hash(("Complex", self.real, self.imag))

    def __repr__(self) -> str:
        return f"Complex({self.real!r}, {self.imag!r})"

    def __str__(self) -> str:
        imag = str(self.imag)
        sign = "" if imag.startswith("-") else "+"
        return f"{self.real}{sign}{imag}i"


ZERO = Integer(0)
ONE = Integer(1)
MINUS_ONE = Integer(-1)


# ============================================================
# Construction
# ============================================================

def from_fraction(value: Fraction) -> Number:
    """Normalize an exact rational into Integer or Rational."""
    if value.denominator == 1:
        return Integer(value.numerator)
    return Rational(value)


def create_rational(numerator: int, denominator: int = 1) -> Number:
    if denominator == 0:
        raise DomainError("Division by zero")
    return from_fraction(Fraction(numerator, denominator))


def create_complex(real: Number, imag: Number) -> Number:
    """Build a complex value, collapsing to the real part when imag is zero."""
    if isinstance(real, Complex) or isinstance(imag, Complex):
        raise NonNumericError("Complex components must be real")
    if imag.is_zero():
        return real
    return Complex(real, imag)


def create_decimal(value: Union[decimal.Decimal, Fraction, int, str],
                   context: Optional[NumericContext] = None) -> Decimal:
    """
    Build a Decimal, rounded to the context precision when a context is given.
    Literals without a context are kept exactly.
    """
    if isinstance(value, Fraction):
        if context is None:
            raise ValueError("Converting a fraction to a decimal needs a context")
        return Decimal(context.divide_fraction(value))
    if not isinstance(value, decimal.Decimal):
        value = decimal.Decimal(value)
    if context is not None:
        value = context.round(value)
    return Decimal(value)


_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_RATIONAL_RE = re.compile(r"^([+-]?\d+)/(\d+)$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


def parse_number(text: str) -> Optional[Number]:
    """
    Parse a numeric literal, or return None.

    Examples:
        "42"     -> Integer(42)
        "3/4"    -> Rational(3, 4)
        "1.50"   -> Decimal('1.50')
        "6.02e23" -> Decimal('6.02E+23')
    """
    if _INTEGER_RE.match(text):
        return Integer(int(text))
    m = _RATIONAL_RE.match(text)
    if m:
        if int(m.group(2)) == 0:
            return None
        return create_rational(int(m.group(1)), int(m.group(2)))
    if _DECIMAL_RE.match(text):
        return Decimal(decimal.Decimal(text))
    return None


def create_number(value) -> Number:
    """Coerce a Python value into a canonical number."""
    if isinstance(value, Number):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not numbers")
    if isinstance(value, int):
        return Integer(value)
    if isinstance(value, Fraction):
        return from_fraction(value)
    if isinstance(value, decimal.Decimal):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(decimal.Decimal(repr(value)))
    if isinstance(value, complex):
        return create_complex(create_number(value.real), create_number(value.imag))
    if isinstance(value, str):
        number = parse_number(value.strip())
        if number is None:
            raise ValueError(f"Not a number: {value!r}")
        return number
    raise TypeError(f"Cannot convert {type(value).__name__} to a number")


# ============================================================
# Arithmetic
# ============================================================

def _parts(value: Number) -> Tuple[Number, Number]:
    if isinstance(value, Complex):
        return value.real, value.imag
    return value, ZERO


def _operand(value: Number, context: NumericContext) -> decimal.Decimal:
    """A decimal operand carrying as many digits as the computation needs."""
    if isinstance(value, Integer):
        return decimal.Decimal(value.value)
    if isinstance(value, Rational):
        return guarded(context.wide().divide, decimal.Decimal(value.numerator),
                       decimal.Decimal(value.denominator))
    if isinstance(value, Decimal):
        return value.value
    raise NonNumericError(f"{value.kind} has no decimal value")


def _inexact(a: Number, b: Number) -> bool:
    return isinstance(a, Decimal) or isinstance(b, Decimal)


def add(a: Number, b: Number, context: NumericContext) -> Number:
    if isinstance(a, Complex) or isinstance(b, Complex):
        ar, ai = _parts(a)
        br, bi = _parts(b)
        return create_complex(add(ar, br, context), add(ai, bi, context))
    if _inexact(a, b):
        return Decimal(context.compute("add", _operand(a, context), _operand(b, context)))
    if isinstance(a, Integer) and isinstance(b, Integer):
        return Integer(a.value + b.value)
    return from_fraction(a.fraction() + b.fraction())


def subtract(a: Number, b: Number, context: NumericContext) -> Number:
    return add(a, b.negate(), context)


def multiply(a: Number, b: Number, context: NumericContext) -> Number:
    if isinstance(a, Complex) or isinstance(b, Complex):
        ar, ai = _parts(a)
        br, bi = _parts(b)
        real = subtract(multiply(ar, br, context), multiply(ai, bi, context), context)
        imag = add(multiply(ar, bi, context), multiply(ai, br, context), context)
        return create_complex(real, imag)
    if _inexact(a, b):
        return Decimal(context.compute("multiply", _operand(a, context), _operand(b, context)))
    if isinstance(a, Integer) and isinstance(b, Integer):
        return Integer(a.value * b.value)
    return from_fraction(a.fraction() * b.fraction())


def divide(a: Number, b: Number, context: NumericContext) -> Number:
    if b.is_zero():
        raise DomainError("Division by zero", "divide")
    if isinstance(a, Complex) or isinstance(b, Complex):
        ar, ai = _parts(a)
        br, bi = _parts(b)
        norm = add(multiply(br, br, context), multiply(bi, bi, context), context)
        real = add(multiply(ar, br, context), multiply(ai, bi, context), context)
        imag = subtract(multiply(ai, br, context), multiply(ar, bi, context), context)
        return create_complex(divide(real, norm, context), divide(imag, norm, context))
    if _inexact(a, b):
        return Decimal(context.compute("divide", _operand(a, context), _operand(b, context)))
    return from_fraction(a.fraction() / b.fraction())


def compare(a: Number, b: Number) -> int:
    """Three-way comparison of real numbers: -1, 0 or 1."""
    if isinstance(a, Complex) or isinstance(b, Complex):
        raise NonNumericError("Complex numbers are not ordered", "compare")
    fa, fb = a.fraction(), b.fraction()
    if fa < fb:
        return -1
    if fa > fb:
        return 1
    return 0


def equal(a: Number, b: Number) -> bool:
    """Numeric equality across kinds: Integer(2) equals Decimal 2.0."""
    ar, ai = _parts(a)
    br, bi = _parts(b)
    return compare(ar, br) == 0 and compare(ai, bi) == 0


# ============================================================
# Exponentiation
# ============================================================

def _check_exact_size(base: int, exponent: int) -> None:
    if abs(base) > 1 and abs(base).bit_length() * abs(exponent) > MAX_EXACT_BITS:
        raise NumericOverflowError("Exact power is too large", "power")


def integer_power(base: Number, exponent: int, context: NumericContext) -> Number:
    """Raise a number to an integer power."""
    if isinstance(base, Complex):
        result: Number = ONE
        square = base
        n = abs(exponent)
        while n:
            if n & 1:
                result = multiply(result, square, context)
            n >>= 1
            if n:
                square = multiply(square, square, context)
        return divide(ONE, result, context) if exponent < 0 else result
    if isinstance(base, Decimal):
        if base.is_zero() and exponent < 0:
            raise DomainError("Zero raised to a negative power", "power")
        return Decimal(context.compute("power", base.value, decimal.Decimal(exponent)))

    value = base.fraction()
    if value == 0 and exponent < 0:
        raise DomainError("Zero raised to a negative power", "power")
    _check_exact_size(max(abs(value.numerator), value.denominator), exponent)
    return from_fraction(value ** exponent)


def integer_nth_root(value: int, k: int) -> int:
    """Floor of the k-th root of a non-negative integer."""
    if value < 0:
        raise DomainError("Root of a negative integer", "root")
    if value < 2:
        return value
    if k == 2:
        return math.isqrt(value)
    if k >= value.bit_length():
        return 1
    x = 1 << -(-value.bit_length() // k)
    while True:
        y = ((k - 1) * x + value // x ** (k - 1)) // k
        if y >= x:
            return x
        x = y


def exact_root(value: Fraction, k: int) -> Optional[Fraction]:
    """The exact k-th root of a non-negative rational, or None if irrational."""
    numerator = integer_nth_root(value.numerator, k)
    if numerator ** k != value.numerator:
        return None
    denominator = integer_nth_root(value.denominator, k)
    if denominator ** k != value.denominator:
        return None
    return Fraction(numerator, denominator)


def polar_power(base: Number, exponent: Number, context: NumericContext) -> Number:
    """
    Principal value of base^exponent through the polar form:

        |b|^e = exp(e * (ln|b| + i*arg(b)))
    """
    br, bi = (_operand(part, context) for part in _parts(base))
    er, ei = (_operand(part, context) for part in _parts(exponent))
    wide = context.wide()
    with decimal_signals("power"):
        modulus = wide.sqrt(wide.add(wide.multiply(br, br), wide.multiply(bi, bi)))
        if modulus.is_zero():
            raise DomainError("Zero has no argument", "power")
        log_modulus = functions.ln(modulus, context)
        angle = functions.atan2(bi, br, context)

        real = wide.subtract(wide.multiply(er, log_modulus), wide.multiply(ei, angle))
        theta = wide.add(wide.multiply(er, angle), wide.multiply(ei, log_modulus))
        magnitude = functions.exp(real, context)
        real_part = wide.multiply(magnitude, functions.cos(theta, context))
        imag_part = wide.multiply(magnitude, functions.sin(theta, context))
    return create_complex(Decimal(context.round(real_part)), Decimal(context.round(imag_part)))


def power(base: Number, exponent: Number, context: NumericContext) -> Number:
    """
    General exponentiation.

    Exact operands give exact results when the result is rational:
        (4)^(1/2) -> 2,  (8/27)^(2/3) -> 4/9
    Otherwise the result is a Decimal (positive base) or a Complex principal
    value (negative or complex base).
    """
    if isinstance(exponent, Integer):
        return integer_power(base, exponent.value, context)
    if isinstance(base, Complex) or isinstance(exponent, Complex):
        return polar_power(base, exponent, context)
    if base.is_zero():
        if exponent.is_zero():
            raise DomainError("Zero raised to zero", "power")
        if exponent.is_negative():
            raise DomainError("Zero raised to a negative power", "power")
        return Decimal(decimal.Decimal(0)) if _inexact(base, exponent) else ZERO
    if exponent.has_integer_value():
        # A Decimal exponent with an integral value
        result = integer_power(base, int(exponent.fraction()), context)
        return result.to_decimal(context)
    if base.is_negative():
        return polar_power(base, exponent, context)
    if isinstance(exponent, Rational) and base.exact:
        root = exact_root(base.fraction(), exponent.denominator)
        if root is not None:
            return integer_power(from_fraction(root), exponent.numerator, context)
    return Decimal(context.compute("power", _operand(base, context), _operand(exponent, context)))


def square_root(value: Number, context: NumericContext) -> Number:
    """Square root, exact when possible, imaginary for negative arguments."""
    if isinstance(value, Complex):
        return polar_power(value, Rational(Fraction(1, 2)), context)
    if value.is_negative():
        return create_complex(ZERO, square_root(value.negate(), context))
    if value.exact:
        root = exact_root(value.fraction(), 2)
        if root is not None:
            return from_fraction(root)
    return Decimal(context.compute("sqrt", _operand(value, context)))


# ============================================================
# Division with remainder and rounding
# ============================================================

def div_mod(a: Number, b: Number, mode: RoundingMode,
            context: NumericContext) -> Tuple[Number, Number]:
    """
    Quotient and remainder with a = b*q + r, where q = round(a/b) under mode.

    With RoundingMode.EUCLIDEAN the remainder lies in [0, |b|). The quotient
    is an Integer when both operands are exact, otherwise a Decimal.
    """
    if isinstance(a, Complex) or isinstance(b, Complex):
        raise NonNumericError("Division with remainder needs real operands", "divmod")
    if b.is_zero():
        raise DomainError("Division by zero", "divmod")
    fa, fb = a.fraction(), b.fraction()
    ratio = fa / fb
    if mode is RoundingMode.EUCLIDEAN:
        quotient = math.floor(ratio) if fb > 0 else math.ceil(ratio)
    else:
        quotient = round_fraction(ratio, mode)
    remainder = fa - fb * quotient
    if a.exact and b.exact:
        return Integer(quotient), from_fraction(remainder)
    return (Decimal(context.round(decimal.Decimal(quotient))),
            Decimal(context.divide_fraction(remainder)))


def _exact_decimal(value: int, places: int) -> decimal.Decimal:
    return decimal.Decimal(f"{value}E{-places}")


def round_to_places(value: Number, places: int, mode: RoundingMode,
                    keep_decimal: bool = True) -> Number:
    """
    Round to a number of decimal places (negative places round to tens,
    hundreds, ...).

    The result is a Decimal when places > 0, or when the input is a Decimal and
    keep_decimal is set. Otherwise it is an Integer.
    """
    if isinstance(value, Complex):
        raise NonNumericError("Cannot round a complex number", "round")
    scaled = value.fraction() * Fraction(10) ** places
    rounded = round_fraction(scaled, mode)
    if places > 0 or (keep_decimal and isinstance(value, Decimal)):
        return Decimal(_exact_decimal(rounded, places))
    return Integer(rounded * 10 ** -places)


def leading_exponent(value: Fraction) -> int:
    """The e with 10^e <= |value| < 10^(e+1)."""
    value = abs(value)
    e = len(str(value.numerator)) - len(str(value.denominator))
    if value < Fraction(10) ** e:
        e -= 1
    return e


def round_to_precision(value: Number, digits: int, mode: RoundingMode,
                       keep_decimal: bool = True) -> Number:
    """Round to a number of significant digits."""
    if isinstance(value, Complex):
        raise NonNumericError("Cannot round a complex number", "round")
    if value.is_zero():
        return value
    places = digits - 1 - leading_exponent(value.fraction())
    return round_to_places(value, places, mode, keep_decimal)


def round_to_multiple(value: Number, multiple: Number, mode: RoundingMode,
                      context: NumericContext) -> Number:
    """Round to the nearest multiple of a non-zero number."""
    if isinstance(value, Complex) or isinstance(multiple, Complex):
        raise NonNumericError("Cannot round a complex number", "round")
    if multiple.is_zero():
        raise DomainError("Rounding to a multiple of zero", "round")
    step = multiple.fraction()
    result = step * round_fraction(value.fraction() / step, mode)
    if value.exact and multiple.exact:
        return from_fraction(result)
    return Decimal(context.divide_fraction(result))


# ============================================================
# Introspection and formatting
# ============================================================

def _stripped(value: decimal.Decimal) -> Tuple[int, Tuple[int, ...], int]:
    sign, digits, exponent = value.as_tuple()
    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    return sign, tuple(digits), exponent


def significant_digits(value: Number) -> int:
    """Number of significant digits of an Integer or Decimal."""
    if isinstance(value, Integer):
        return len(str(abs(value.value)).rstrip("0"))
    if isinstance(value, Decimal):
        if value.is_zero():
            return 0
        return len(_stripped(value.value)[1])
    raise NonNumericError(f"{value.kind} has no significant digits")


def decimal_places(value: Number) -> int:
    """Number of digits after the decimal point, ignoring trailing zeros."""
    if isinstance(value, Integer):
        return 0
    if isinstance(value, Decimal):
        if value.is_zero():
            return 0
        return max(0, -_stripped(value.value)[2])
    raise NonNumericError(f"{value.kind} has no decimal places")


def format_decimal(value: decimal.Decimal) -> str:
    """
    Format a decimal without trailing zeros, always with a decimal point.

    Examples:
        Decimal('2.50')   -> "2.5"
        Decimal('3')      -> "3.0"
        Decimal('1.5E+30') -> "1.5e+30"
    """
    if value.is_zero():
        return "-0.0" if value.is_signed() else "0.0"
    stripped = decimal.Decimal(_stripped(value))
    if -7 <= stripped.adjusted() < 21:
        text = format(stripped, "f")
        if "." not in text:
            text += ".0"
        return text
    mantissa, _, exponent = format(stripped, "e").partition("e")
    if "." not in mantissa:
        mantissa += ".0"
    return f"{mantissa}e{exponent}"
