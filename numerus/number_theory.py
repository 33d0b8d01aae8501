"""
Number theory reducers.

    (Div 7 2) (Mod 7 2) (DivMod 7 2)      quotient rounding follows the session's
                                          Euclidean division mode
    (GreatestCommonDivisor (List 12 18))  -> 6
    (LeastCommonMultiple 4 6)             -> 12
    (Factors 60)                          -> (List 2 2 3 5)
    (FactorsWithExponents 60)             -> (List (List 2 2) (List 3 1) (List 5 1))
    (Divisors 12)                         -> (List 1 2 3 4 6 12)
    (ModularExponentiation 4 13 497)      -> 445
    (ModularMultiplicativeInverse 3 11)   -> 4
    (IsPrime 97)                          -> True
    (Divides 3 12)                        -> True
    (Factorial 5)                         -> 120
"""

import math
from itertools import product
from typing import Callable, List, Tuple

from .arithmetic import integer_value, numbers_of, replace_with_number, require_integer
from .engine import ReductionEngine
from .errors import ValidationError
from .expression import FALSE, LIST, TRUE, Expression, number_of
from .tower import Integer

MILLER_RABIN_ROUNDS = 17


# ============================================================
# Division with remainder
# ============================================================

def div_mod(node, session) -> bool:
    """Div, Mod and DivMod under the session's Euclidean division mode."""
    if len(node.children) != 2:
        return False
    numbers = numbers_of(node)
    if numbers is None:
        return False
    dividend, divisor = numbers
    if divisor.is_zero():
        node.replace_by(Expression.infinity())
        return True
    quotient, remainder = dividend.div_mod(divisor, session.euclidean_mode, session.context)
    if node.tag == "Div":
        return replace_with_number(node, quotient)
    if node.tag == "Mod":
        return replace_with_number(node, remainder)
    node.replace_by(Expression.list([Expression.number(quotient), Expression.number(remainder)]))
    return True


def division_test(node, session) -> bool:
    """Divides(d, m) and DoesNotDivide(d, m) for integers."""
    if len(node.children) != 2:
        return False
    divisor = integer_value(node.children[0])
    multiple = integer_value(node.children[1])
    if divisor is None or multiple is None or divisor == 0:
        return False
    divides = multiple % divisor == 0
    if node.tag == "DoesNotDivide":
        divides = not divides
    node.replace_by(Expression(TRUE if divides else FALSE))
    return True


# ============================================================
# GCD and LCM
# ============================================================

def _lcm(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return abs(a * b) // math.gcd(a, b)


def _fold_integers(node: Expression, operation: Callable[[int, int], int]) -> bool:
    container = node.children[0] if len(node.children) == 1 and node.children[0].tag == LIST else node
    positions = [i for i, child in enumerate(container.children) if integer_value(child) is not None]
    if not positions:
        return False

    result = integer_value(container.children[positions[0]])
    for i in positions[1:]:
        result = operation(result, integer_value(container.children[i]))

    if len(positions) == len(container.children):
        return replace_with_number(node, Integer(abs(result)))
    if len(positions) == 1 and positions[0] == 0:
        return False
    for i in reversed(positions):
        container.remove_child_at(i)
    container.add_child_at(0, Expression.number(abs(result)))
    return False


def greatest_common_divisor(node, session) -> bool:
    return _fold_integers(node, math.gcd)


def least_common_multiple(node, session) -> bool:
    return _fold_integers(node, _lcm)


# ============================================================
# Factorization
# ============================================================

def factorize(n: int) -> List[int]:
    """Prime factors of n >= 2 in ascending order, by trial division."""
    result = []
    while n % 2 == 0:
        result.append(2)
        n //= 2
    f = 3
    while f * f <= n:
        if n % f == 0:
            result.append(f)
            n //= f
        else:
            f += 2
    if n > 1:
        result.append(n)
    return result


def factor_exponents(n: int) -> List[Tuple[int, int]]:
    """[(prime, exponent), ...] for n >= 2."""
    pairs: List[Tuple[int, int]] = []
    for p in factorize(n):
        if pairs and pairs[-1][0] == p:
            pairs[-1] = (p, pairs[-1][1] + 1)
        else:
            pairs.append((p, 1))
    return pairs


def divisors(n: int) -> List[int]:
    """All positive divisors of n >= 1, ascending."""
    if n == 1:
        return [1]
    pairs = factor_exponents(n)
    result = []
    for exponents in product(*[range(e + 1) for _, e in pairs]):
        d = 1
        for (p, _), k in zip(pairs, exponents):
            d *= p ** k
        result.append(d)
    return sorted(result)


def _integers(values: List[int]) -> Expression:
    return Expression.list([Expression.number(v) for v in values])


def factors(node, session) -> bool:
    n = integer_value(node.children[0]) if len(node.children) == 1 else None
    if n is None or n < 2:
        return False
    node.replace_by(_integers(factorize(n)))
    return True


def factors_with_exponents(node, session) -> bool:
    n = integer_value(node.children[0]) if len(node.children) == 1 else None
    if n is None or n < 2:
        return False
    node.replace_by(Expression.list([_integers([p, e]) for p, e in factor_exponents(n)]))
    return True


def divisors_reducer(node, session) -> bool:
    """Divisors(n) and ProperDivisors(n), the latter excluding n itself."""
    n = integer_value(node.children[0]) if len(node.children) == 1 else None
    if n is None or n < 1:
        return False
    result = divisors(n)
    if node.tag == "ProperDivisors":
        result = result[:-1]
    node.replace_by(_integers(result))
    return True


# ============================================================
# Modular arithmetic
# ============================================================

def modular_exponentiation(node, session) -> bool:
    if len(node.children) != 3:
        return False
    b = require_integer(node.children[0], "Base must be an integer, non-negative number", minimum=0)
    e = require_integer(node.children[1], "Exponent must be an integer, non-negative number", minimum=0)
    m = require_integer(node.children[2], "Modulo must be a positive integer number", minimum=1)
    # Three-argument pow does the square-and-multiply reduction modulo m
    return replace_with_number(node, Integer(pow(b, e, m)))


def modular_multiplicative_inverse(node, session) -> bool:
    if len(node.children) != 2:
        return False
    a = require_integer(node.children[0], "Expression must be a non-negative integer", minimum=0)
    m = require_integer(node.children[1], "Modulo must be a positive integer number", minimum=1)
    try:
        inverse = pow(a, -1, m)
    except ValueError:
        raise ValidationError(node.children[0], "Number is not invertible in such that base")
    return replace_with_number(node, Integer(inverse))


# ============================================================
# Primality and factorial
# ============================================================

def is_probable_prime(n: int, rng, rounds: int = MILLER_RABIN_ROUNDS) -> bool:
    """Miller-Rabin test with random witnesses."""
    if n < 2:
        return False
    for p in (2, 3, 5, 7):
        if n % p == 0:
            return n == p
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for _ in range(rounds):
        a = rng.randrange(2, n - 1)
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def is_prime(node, session) -> bool:
    if len(node.children) != 1:
        return False
    argument = node.children[0]
    if number_of(argument) is None:
        return False
    n = require_integer(argument, "Expression must be a non-negative integer number", minimum=0)
    node.replace_by(Expression(TRUE if is_probable_prime(n, session.random) else FALSE))
    return True


def factorial(node, session) -> bool:
    if len(node.children) != 1 or integer_value(node.children[0]) is None:
        return False
    n = require_integer(node.children[0], "Expression must be a non-negative integer number", minimum=0)
    return replace_with_number(node, Integer(math.factorial(n)))


def register(engine: ReductionEngine) -> None:
    """Register the number theory reducers."""
    engine.add_reducer("Div", div_mod, "div", "Quotient of a division")
    engine.add_reducer("Mod", div_mod, "mod", "Remainder of a division")
    engine.add_reducer("DivMod", div_mod, "div-mod", "Quotient and remainder of a division")
    engine.add_reducer("Divides", division_test, "divides", "Divisibility test")
    engine.add_reducer("DoesNotDivide", division_test, "does-not-divide", "Negated divisibility test")

    engine.add_reducer("GreatestCommonDivisor", greatest_common_divisor, "greatest-common-divisor",
                       "GCD of integers")
    engine.add_reducer("LeastCommonMultiple", least_common_multiple, "least-common-multiple",
                       "LCM of integers")

    engine.add_reducer("Factors", factors, "factors", "Prime factorization")
    engine.add_reducer("FactorsWithExponents", factors_with_exponents, "factors-with-exponents",
                       "Prime factorization as (prime, exponent) pairs")
    engine.add_reducer("Divisors", divisors_reducer, "divisors", "Positive divisors")
    engine.add_reducer("ProperDivisors", divisors_reducer, "proper-divisors",
                       "Positive divisors, excluding the number itself")

    engine.add_reducer("ModularExponentiation", modular_exponentiation, "modular-exponentiation",
                       "b^e mod m")
    engine.add_reducer("ModularMultiplicativeInverse", modular_multiplicative_inverse,
                       "modular-multiplicative-inverse", "Inverse of a modulo m")
    engine.add_reducer("IsPrime", is_prime, "is-prime", "Miller-Rabin primality test")
    engine.add_reducer("Factorial", factorial, "factorial", "n!")
