"""
Arithmetic reducers: Addition, Multiplication, Negative, Division,
Exponentiation, SquareRoot, AbsoluteValue, Sign, Complex, ImaginaryUnit and the
comparisons.

Numeric evaluation reducers are always active. Structural rewrites that only
make sense for symbolic operands are registered in the "symbolic" group:

    (Addition 1 x 2)                   -> (Addition 3 x)           numeric fold
    (Multiplication 2 (Addition x y))  -> (Addition (Multiplication 2 x) (Multiplication 2 y))
    (Division (Multiplication 6 x) (Multiplication 4 y))
                                       -> (Multiplication 3/2 (Division x y))
"""

from fractions import Fraction
from typing import Callable, List, Optional

from .engine import SYMBOLIC, Precedence, ReductionEngine
from .errors import NonNumericError, NumericOverflowError, ValidationError
from .expression import (
    ADDITION, DIVISION, EXPONENTIATION, FALSE, IMAGINARY_UNIT, MULTIPLICATION, NEGATIVE, TRUE,
    UNDEFINED, Expression, number_of,
)
from .tower import (
    ONE, ZERO, Complex, Decimal, Integer, Number, Rational, compare, create_complex, equal,
    exact_root, from_fraction, integer_power, polar_power, power, square_root,
)


def replace_with_number(node: Expression, number: Number) -> bool:
    node.replace_by(Expression.number(number))
    return True


def numbers_of(node: Expression) -> Optional[List[Number]]:
    """The numbers of all children, or None if any child is not a Number."""
    numbers = [number_of(child) for child in node.children]
    if any(n is None for n in numbers):
        return None
    return numbers


def integer_value(node: Expression) -> Optional[int]:
    """The value of an Integer Number node, else None."""
    number = number_of(node)
    return number.value if isinstance(number, Integer) else None


def require_integer(node: Expression, message: str, minimum: Optional[int] = None,
                    maximum: Optional[int] = None) -> int:
    """The value of an Integer Number node within bounds, or ValidationError."""
    value = integer_value(node)
    if value is None or (minimum is not None and value < minimum) or \
            (maximum is not None and value > maximum):
        raise ValidationError(node, message)
    return value


def typed_one(*operands: Number) -> Number:
    """1, as a Decimal when any operand is inexact."""
    if all(op.exact for op in operands):
        return ONE
    return Decimal.of(1)


def typed_zero(*operands: Number) -> Number:
    if all(op.exact for op in operands):
        return ZERO
    return Decimal.of(0)


# ============================================================
# Addition and Multiplication
# ============================================================

def _fold(node: Expression, operation: Callable, is_identity: Callable,
          is_absorbing: Optional[Callable]) -> bool:
    """
    Absorb the numeric children of an n-ary node into one accumulator.

    The accumulator goes to position 0. Returns True only when the node is
    replaced; a node normalized in place returns False so that later reducers
    still see it.
    """
    positions = [i for i, child in enumerate(node.children) if child.is_internal_number()]
    if not positions:
        return False

    accumulator = number_of(node.children[positions[0]])
    for i in positions[1:]:
        accumulator = operation(accumulator, number_of(node.children[i]))

    single = len(positions) == 1
    if single and not is_identity(accumulator) and not (is_absorbing and is_absorbing(accumulator)):
        if positions[0] == 0:
            return False
    for i in reversed(positions):
        node.remove_child_at(i)

    if not node.children or (is_absorbing and is_absorbing(accumulator)):
        return replace_with_number(node, accumulator)
    if is_identity(accumulator):
        if len(node.children) == 1:
            node.replace_by(node.children[0])
            return True
        return False
    node.add_child_at(0, Expression.number(accumulator))
    return False


def addition_fold(node, session) -> bool:
    context = session.context
    return _fold(node, lambda a, b: a.addition(b, context), lambda n: n.is_zero(), None)


def multiplication_fold(node, session) -> bool:
    context = session.context
    return _fold(node, lambda a, b: a.multiplication(b, context), lambda n: n.is_one(),
                 lambda n: n.is_zero())


def _flatten(node: Expression) -> bool:
    if len(node.children) == 1:
        node.replace_by(node.children[0])
        return True
    if not any(child.tag == node.tag for child in node.children):
        return False
    flat = Expression(node.tag)
    for child in node.children:
        if child.tag == node.tag:
            for grandchild in list(child.children):
                flat.add_child(grandchild)
        else:
            flat.add_child(child)
    node.replace_by(flat)
    return True


def addition_flatten(node, session) -> bool:
    """(Addition a (Addition b c)) -> (Addition a b c)"""
    return _flatten(node)


def multiplication_flatten(node, session) -> bool:
    return _flatten(node)


def addition_negative_addition(node, session) -> bool:
    """a + -(b + c) -> a + -b + -c"""
    if not any(child.tag == NEGATIVE and child.children and child.children[0].tag == ADDITION
               for child in node.children):
        return False
    result = Expression(ADDITION)
    for child in node.children:
        if child.tag == NEGATIVE and child.children[0].tag == ADDITION:
            for addend in list(child.children[0].children):
                result.add_child(Expression(NEGATIVE, [addend]))
        else:
            result.add_child(child)
    node.replace_by(result)
    return True


def multiplication_negative(node, session) -> bool:
    """-W * X * -Y -> W * X * Y, with an odd number of negatives -> -(W * X * Y)"""
    negatives = 0
    for i, child in enumerate(node.children):
        if child.tag == NEGATIVE:
            node.set_child(i, child.children[0])
            negatives += 1
    if negatives == 0:
        return False
    product = Expression(MULTIPLICATION, list(node.children))
    if negatives % 2:
        node.replace_by(Expression(NEGATIVE, [product]))
    else:
        node.replace_by(product)
    return True


def multiplication_distribute(node, session) -> bool:
    """numeric * (X + Y) -> numeric * X + numeric * Y"""
    if len(node.children) != 2:
        return False
    numeric, addition = node.children
    if not numeric.is_internal_number() or addition.tag != ADDITION:
        return False
    result = Expression(ADDITION)
    for addend in list(addition.children):
        result.add_child(Expression(MULTIPLICATION, [numeric.clone(), addend]))
    node.replace_by(result)
    return True


# ============================================================
# Negative
# ============================================================

def negative_numeric(node, session) -> bool:
    if len(node.children) != 1:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    return replace_with_number(node, number.negate())


def negative_negative(node, session) -> bool:
    """--x -> x"""
    argument = node.children[0] if len(node.children) == 1 else None
    if argument is None or argument.tag != NEGATIVE:
        return False
    node.replace_by(argument.children[0])
    return True


# ============================================================
# Division
# ============================================================

def division_numeric(node, session) -> bool:
    """
    numeric / numeric -> numeric
    numeric / 0       -> Infinity, or -Infinity for a negative numerator
    0 / 0             -> Undefined
    """
    if len(node.children) != 2:
        return False
    numbers = numbers_of(node)
    if numbers is None:
        return False
    numerator, denominator = numbers
    if denominator.is_zero():
        if numerator.is_zero():
            node.replace_by(Expression(UNDEFINED))
        else:
            node.replace_by(Expression.infinity(negative=numerator.is_negative()))
        return True
    return replace_with_number(node, numerator.division(denominator, session.context))


def division_negative(node, session) -> bool:
    """-x / y -> -(x / y),  x / -y -> -(x / y),  -x / -y -> x / y"""
    negatives = 0
    for i in (0, 1):
        child = node.children[i]
        if child.tag == NEGATIVE:
            node.set_child(i, child.children[0])
            negatives += 1
    if negatives == 0:
        return False
    division = Expression(DIVISION, list(node.children))
    node.replace_by(division if negatives == 2 else Expression(NEGATIVE, [division]))
    return True


def division_zero_one(node, session) -> bool:
    """x / 0 -> Infinity,  x / 1 -> x,  0 / x -> 0"""
    if len(node.children) != 2:
        return False
    numerator, denominator = node.children
    d = number_of(denominator)
    if d is not None and d.is_zero():
        node.replace_by(Expression.infinity())
        return True
    if d is not None and d.is_one():
        node.replace_by(numerator)
        return True
    n = number_of(numerator)
    if n is not None and n.is_zero():
        node.replace_by(numerator)
        return True
    return False


def _split_coefficient(side: Expression):
    """Split a leading numeric factor off a product: (coefficient, rest)."""
    if side.tag == MULTIPLICATION and side.children and side.children[0].is_internal_number():
        rest = side.children[1:]
        if len(rest) == 1:
            return number_of(side.children[0]), rest[0]
        return number_of(side.children[0]), Expression(MULTIPLICATION, rest)
    return None, side


def division_extract_numerics(node, session) -> bool:
    """
    n / X             -> n * (1 / X),      n != 1
    X / n             -> (1/n) * X
    (n1 X) / (n2 Y)   -> (n1/n2) * (X / Y)
    """
    if len(node.children) != 2:
        return False
    numerator, denominator = node.children
    context = session.context
    n = number_of(numerator)
    d = number_of(denominator)
    if n is not None and d is not None:
        return False

    if n is not None:
        if n.is_one():
            return False
        node.replace_by(Expression(MULTIPLICATION, [
            numerator, Expression(DIVISION, [Expression.number(ONE), denominator])]))
        return True

    if d is not None:
        if d.is_zero():
            return False
        node.replace_by(Expression(MULTIPLICATION, [
            Expression.number(ONE.division(d, context)), numerator]))
        return True

    n, rest_numerator = _split_coefficient(numerator)
    d, rest_denominator = _split_coefficient(denominator)
    if n is None and d is None:
        return False
    if d is not None and d.is_zero():
        return False
    coefficient = (n or ONE).division(d or ONE, context)
    node.replace_by(Expression(MULTIPLICATION, [
        Expression.number(coefficient), Expression(DIVISION, [rest_numerator, rest_denominator])]))
    return True


# ============================================================
# Exponentiation
# ============================================================

def _imaginary_power(p: int) -> Number:
    """i^p"""
    return [ONE, create_complex(ZERO, ONE), Integer(-1), create_complex(ZERO, Integer(-1))][p % 4]


def exponentiation_numeric(node, session) -> bool:
    """
    numeric ^ numeric, exact whenever the result is rational:

        0^0 -> Undefined,  0^-n -> Infinity,  4^(1/2) -> 2,  (-4)^(1/2) -> 2i
        2^(3/2) -> 2 * 2^(1/2)

    An irrational result of exact operands is only computed in numeric mode.
    Zero raised to a complex power has no principal value here and is left
    unreduced.
    """
    if len(node.children) != 2:
        return False
    numbers = numbers_of(node)
    if numbers is None:
        return False
    base, exponent = numbers
    context = session.context
    exact = base.exact and exponent.exact

    if base.is_zero():
        if isinstance(exponent, Complex):
            return False
        if exponent.is_zero():
            node.replace_by(Expression(UNDEFINED))
            return True
        if exponent.is_negative():
            node.replace_by(Expression.infinity())
            return True
        return replace_with_number(node, typed_zero(base, exponent))
    if exponent.is_zero():
        return replace_with_number(node, typed_one(base, exponent))
    if exponent.is_one():
        return replace_with_number(node, base if exponent.exact else base.to_decimal(context))
    if base.is_one():
        return replace_with_number(node, typed_one(base, exponent))

    if isinstance(exponent, Integer):
        try:
            return replace_with_number(node, integer_power(base, exponent.value, context))
        except NumericOverflowError:
            if exact:
                return False
            raise

    real_operands = not isinstance(base, Complex) and not isinstance(exponent, Complex)

    if real_operands and base.is_negative() and not exponent.has_integer_value():
        if base.exact and isinstance(exponent, Rational) and exponent.denominator == 2:
            magnitude = exact_root(-base.fraction(), 2)
            if magnitude is not None:
                p = exponent.numerator
                result = integer_power(from_fraction(magnitude), p, context)
                return replace_with_number(node, result.multiplication(_imaginary_power(p), context))
        if not exact or session.numeric:
            return replace_with_number(node, polar_power(base, exponent, context))
        return False

    if real_operands and base.exact and isinstance(exponent, Rational):
        p, q = exponent.numerator, exponent.denominator
        root = exact_root(base.fraction(), q)
        if root is not None:
            return replace_with_number(node, integer_power(from_fraction(root), p, context))
        k, r = divmod(p, q)
        if k != 0:
            node.replace_by(Expression(MULTIPLICATION, [
                Expression.number(integer_power(base, k, context)),
                Expression(EXPONENTIATION, [Expression.number(base), Expression.number(from_fraction(Fraction(r, q)))]),
            ]))
            return True
        if session.numeric:
            return replace_with_number(node, power(base.to_decimal(context), exponent, context))
        return False

    if exact and not session.numeric:
        return False
    try:
        return replace_with_number(node, power(base, exponent, context))
    except NumericOverflowError:
        if exact:
            return False
        raise


def exponentiation_specials(node, session) -> bool:
    """x^0 -> 1,  x^1 -> x,  0^n -> 0 (n > 0),  1^x -> 1"""
    if len(node.children) != 2:
        return False
    base, exponent = node.children
    b = number_of(base)
    e = number_of(exponent)
    if e is not None and e.is_zero():
        return replace_with_number(node, typed_one(e))
    if e is not None and e.is_one() and e.exact:
        node.replace_by(base)
        return True
    if b is not None and b.is_zero() and e is not None and e.is_positive():
        return replace_with_number(node, typed_zero(b, e))
    if b is not None and b.is_one():
        return replace_with_number(node, typed_one(b))
    return False


def exponentiation_distribute(node, session) -> bool:
    """(x * y)^n -> x^n * y^n,  (x / y)^n -> x^n / y^n,  for Integer n"""
    if len(node.children) != 2:
        return False
    base, exponent = node.children
    if base.tag not in (MULTIPLICATION, DIVISION) or not isinstance(number_of(exponent), Integer):
        return False
    result = Expression(base.tag)
    for factor in list(base.children):
        result.add_child(Expression(EXPONENTIATION, [factor, exponent.clone()]))
    node.replace_by(result)
    return True


def exponentiation_negative(node, session) -> bool:
    """(-x)^n -> x^n for even n, -(x^n) for odd n"""
    if len(node.children) != 2:
        return False
    base, exponent = node.children
    e = number_of(exponent)
    if base.tag != NEGATIVE or not isinstance(e, Integer):
        return False
    result = Expression(EXPONENTIATION, [base.children[0], exponent])
    node.replace_by(result if e.value % 2 == 0 else Expression(NEGATIVE, [result]))
    return True


# ============================================================
# Roots, absolute value, sign, complex numbers
# ============================================================

def square_root_numeric(node, session) -> bool:
    """
    Exact when the root is rational, imaginary for negative arguments:
        SquareRoot(9/4) -> 3/2,  SquareRoot(-4) -> 2i,  SquareRoot(-2) -> SquareRoot(2) * i
    """
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None:
        return False
    context = session.context
    allow_inexact = not number.exact or session.numeric

    if isinstance(number, Complex):
        if not allow_inexact:
            return False
        return replace_with_number(node, square_root(number, context))

    magnitude = number.absolute()
    if magnitude.exact:
        root = exact_root(magnitude.fraction(), 2)
        if root is not None:
            root_number = from_fraction(root)
            if number.is_negative():
                return replace_with_number(node, create_complex(ZERO, root_number))
            return replace_with_number(node, root_number)
    if allow_inexact:
        return replace_with_number(node, square_root(number, context))
    if number.is_negative():
        node.replace_by(Expression(MULTIPLICATION, [
            Expression("SquareRoot", [Expression.number(magnitude)]),
            Expression(IMAGINARY_UNIT),
        ]))
        return True
    return False


def absolute_value_numeric(node, session) -> bool:
    """|x| for reals, the modulus for complex numbers"""
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None:
        return False
    if not isinstance(number, Complex):
        return replace_with_number(node, number.absolute())
    context = session.context
    norm = number.real.multiplication(number.real, context).addition(
        number.imag.multiplication(number.imag, context), context)
    modulus = square_root(norm, context)
    if modulus.exact or not number.exact or session.numeric:
        return replace_with_number(node, modulus)
    return False


def absolute_value_negative(node, session) -> bool:
    """|-x| -> |x|"""
    argument = node.children[0] if len(node.children) == 1 else None
    if argument is None or argument.tag != NEGATIVE:
        return False
    node.set_child(0, argument.children[0])
    return True


def sign_numeric(node, session) -> bool:
    number = number_of(node.children[0]) if len(node.children) == 1 else None
    if number is None:
        return False
    if isinstance(number, Complex):
        raise NonNumericError("Sign of a complex number")
    return replace_with_number(node, Integer(compare(number, ZERO)))


def imaginary_unit(node, session) -> bool:
    return replace_with_number(node, Complex(ZERO, ONE))


def complex_numeric(node, session) -> bool:
    """Complex(re, im) -> re + im i"""
    if len(node.children) != 2:
        return False
    numbers = numbers_of(node)
    if numbers is None:
        return False
    return replace_with_number(node, create_complex(*numbers))


# ============================================================
# Comparison
# ============================================================

COMPARISON_LESS = "Comparison.Less"
COMPARISON_EQUALS = "Comparison.Equals"
COMPARISON_GREATER = "Comparison.Greater"

_RELATIONS = {
    "Less": lambda c: c < 0,
    "LessOrEqual": lambda c: c <= 0,
    "Greater": lambda c: c > 0,
    "GreaterOrEqual": lambda c: c >= 0,
}


def compare_numeric(node, session) -> bool:
    numbers = numbers_of(node)
    if numbers is None or len(numbers) != 2:
        return False
    result = compare(*numbers)
    tag = COMPARISON_EQUALS if result == 0 else (COMPARISON_LESS if result < 0 else COMPARISON_GREATER)
    node.replace_by(Expression(tag))
    return True


def relation_numeric(node, session) -> bool:
    numbers = numbers_of(node)
    if numbers is None or len(numbers) != 2:
        return False
    if node.tag in _RELATIONS:
        holds = _RELATIONS[node.tag](compare(*numbers))
    elif node.tag == "Equals":
        holds = equal(*numbers)
    else:
        holds = not equal(*numbers)
    node.replace_by(Expression(TRUE if holds else FALSE))
    return True


def register(engine: ReductionEngine) -> None:
    """Register the arithmetic reducers."""
    symbolic = [SYMBOLIC]

    engine.add_reducer(ADDITION, addition_fold, "addition-fold",
                       "Numeric addends are added together")
    engine.add_reducer(ADDITION, addition_flatten, "addition-flatten",
                       "Nested additions are flattened", groups=symbolic)
    engine.add_reducer(ADDITION, addition_negative_addition, "addition-negative-addition",
                       "a - (b + c) = a - b - c", groups=symbolic)

    engine.add_reducer(MULTIPLICATION, multiplication_fold, "multiplication-fold",
                       "Numeric factors are multiplied together")
    engine.add_reducer(MULTIPLICATION, multiplication_flatten, "multiplication-flatten",
                       "Nested multiplications are flattened", groups=symbolic)
    engine.add_reducer(MULTIPLICATION, multiplication_negative, "multiplication-negative",
                       "Negatives are extracted from a multiplication", groups=symbolic)
    engine.add_reducer(MULTIPLICATION, multiplication_distribute, "multiplication-distribute",
                       "Numeric factor distributes over addition", groups=symbolic)

    engine.add_reducer(NEGATIVE, negative_numeric, "negative-numeric", "Negation of a number")
    engine.add_reducer(NEGATIVE, negative_negative, "negative-negative",
                       "Double negation cancels", groups=symbolic)

    engine.add_reducer(DIVISION, division_numeric, "division-numeric",
                       "Division between numbers", precedence=Precedence.HIGH)
    engine.add_reducer(DIVISION, division_negative, "division-negative",
                       "Negatives are extracted from a division", groups=symbolic)
    engine.add_reducer(DIVISION, division_zero_one, "division-zero-one",
                       "Division by zero or one, zero numerator", groups=symbolic)
    engine.add_reducer(DIVISION, division_extract_numerics, "division-extract-numerics",
                       "Numeric factors are extracted from a division", groups=symbolic,
                       precedence=Precedence.LOW)

    engine.add_reducer(EXPONENTIATION, exponentiation_numeric, "exponentiation-numeric",
                       "Exponentiation between numbers")
    engine.add_reducer(EXPONENTIATION, exponentiation_specials, "exponentiation-specials",
                       "x^0, x^1, 0^x and 1^x", groups=symbolic)
    engine.add_reducer(EXPONENTIATION, exponentiation_distribute, "exponentiation-distribute",
                       "Integer power distributes over multiplication and division", groups=symbolic)
    engine.add_reducer(EXPONENTIATION, exponentiation_negative, "exponentiation-negative",
                       "Integer power of a negative", groups=symbolic)

    engine.add_reducer("SquareRoot", square_root_numeric, "square-root-numeric", "Square root of a number")
    engine.add_reducer("AbsoluteValue", absolute_value_numeric, "absolute-value-numeric",
                       "Absolute value of a number")
    engine.add_reducer("AbsoluteValue", absolute_value_negative, "absolute-value-negative",
                       "|-x| = |x|", groups=symbolic)
    engine.add_reducer("Sign", sign_numeric, "sign-numeric", "Sign of a real number")
    engine.add_reducer(IMAGINARY_UNIT, imaginary_unit, "imaginary-unit", "The imaginary unit")
    engine.add_reducer("Complex", complex_numeric, "complex-numeric", "Complex number from its parts")

    engine.add_reducer("Compare", compare_numeric, "compare-numeric", "Three-way comparison of numbers")
    for tag, name in (("Less", "less"), ("LessOrEqual", "less-or-equal"), ("Greater", "greater"),
                      ("GreaterOrEqual", "greater-or-equal"), ("Equals", "equals"),
                      ("NotEquals", "not-equals")):
        engine.add_reducer(tag, relation_numeric, f"{name}-numeric", f"{tag} between numbers")
