"""Tests for the number theory reducers."""

import random

import pytest

from numerus import ValidationError, default_engine, format_sexpr
from numerus.number_theory import divisors, factor_exponents, factorize, is_probable_prime
from numerus.tower import RoundingMode


class TestDivMod:
    """Tests for Div, Mod and DivMod."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text, **options):
        return format_sexpr(self.engine(text, **options))

    def test_truncated(self):
        """The default mode truncates the quotient."""
        assert self.reduce("(Div 7 2)") == "3"
        assert self.reduce("(Mod 7 2)") == "1"
        assert self.reduce("(Div -7 2)") == "-3"
        assert self.reduce("(Mod -7 2)") == "-1"

    def test_div_mod(self):
        """DivMod gives both."""
        assert self.reduce("(DivMod 7 2)") == "(List 3 1)"

    def test_euclidean(self):
        """Euclidean remainders are non-negative."""
        mode = RoundingMode.EUCLIDEAN
        assert self.reduce("(DivMod -7 2)", euclidean_mode=mode) == "(List -4 1)"
        assert self.reduce("(Mod 7 -2)", euclidean_mode=mode) == "1"

    def test_floor_mode(self):
        """Any rounding mode can drive the quotient."""
        assert self.reduce("(Div -7 2)", euclidean_mode="TowardsMinusInfinity") == "-4"

    def test_decimal_operands(self):
        """Inexact operands give Decimals."""
        assert self.reduce("(Mod 5.5 2)") == "1.5"

    def test_by_zero(self):
        """Division by zero gives Infinity."""
        assert self.reduce("(Mod 7 0)") == "Infinity"

    def test_symbolic(self):
        """Symbols are left alone."""
        assert self.reduce("(Mod x 2)") == "(Mod x 2)"


class TestDivisibility:
    """Tests for Divides and DoesNotDivide."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_divides(self):
        """Divisibility tests."""
        assert self.reduce("(Divides 3 12)") == "True"
        assert self.reduce("(Divides 5 12)") == "False"
        assert self.reduce("(DoesNotDivide 3 12)") == "False"

    def test_zero_divisor(self):
        """Zero divides nothing."""
        assert self.reduce("(Divides 0 5)") == "(Divides 0 5)"


class TestGcdLcm:
    """Tests for GreatestCommonDivisor and LeastCommonMultiple."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_gcd(self):
        """GCD of arguments or of a list."""
        assert self.reduce("(GreatestCommonDivisor 12 18 8)") == "2"
        assert self.reduce("(GreatestCommonDivisor (List 12 18 30))") == "6"
        assert self.reduce("(GreatestCommonDivisor -4 6)") == "2"

    def test_lcm(self):
        """LCM of arguments or of a list."""
        assert self.reduce("(LeastCommonMultiple 4 6)") == "12"
        assert self.reduce("(LeastCommonMultiple (List 12 18 30))") == "180"

    def test_partial(self):
        """Integers are folded, symbols stay."""
        assert self.reduce("(GreatestCommonDivisor 12 x 18)") == "(GreatestCommonDivisor 6 x)"


class TestFactorization:
    """Tests for Factors, FactorsWithExponents and Divisors."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_factorize(self):
        """Prime factors in ascending order."""
        assert factorize(360) == [2, 2, 2, 3, 3, 5]
        assert factorize(97) == [97]
        assert factorize(2 ** 10) == [2] * 10

    def test_factor_exponents(self):
        """Primes with multiplicities."""
        assert factor_exponents(360) == [(2, 3), (3, 2), (5, 1)]

    def test_divisors(self):
        """All positive divisors."""
        assert divisors(12) == [1, 2, 3, 4, 6, 12]
        assert divisors(1) == [1]

    def test_factors_reducer(self):
        """Factors reducer."""
        assert self.reduce("(Factors 60)") == "(List 2 2 3 5)"
        assert self.reduce("(Factors 1)") == "(Factors 1)"

    def test_factors_with_exponents_reducer(self):
        """FactorsWithExponents reducer."""
        assert self.reduce("(FactorsWithExponents 360)") == "(List (List 2 3) (List 3 2) (List 5 1))"

    def test_divisors_reducer(self):
        """Divisors and ProperDivisors."""
        assert self.reduce("(Divisors 12)") == "(List 1 2 3 4 6 12)"
        assert self.reduce("(ProperDivisors 28)") == "(List 1 2 4 7 14)"


class TestModular:
    """Tests for modular arithmetic."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_modular_exponentiation(self):
        """b^e mod m"""
        assert self.reduce("(ModularExponentiation 4 13 497)") == "445"
        assert self.reduce("(ModularExponentiation 2 10 1)") == "0"

    def test_modular_exponentiation_invalid(self):
        """Operands are validated."""
        with pytest.raises(ValidationError) as info:
            self.engine("(ModularExponentiation -2 3 5)")
        assert info.value.message == "Base must be an integer, non-negative number"
        with pytest.raises(ValidationError) as info:
            self.engine("(ModularExponentiation 2 3 0)")
        assert info.value.message == "Modulo must be a positive integer number"

    def test_inverse(self):
        """Modular multiplicative inverse."""
        assert self.reduce("(ModularMultiplicativeInverse 3 11)") == "4"

    def test_no_inverse(self):
        """Numbers sharing a factor with the modulus have no inverse."""
        with pytest.raises(ValidationError) as info:
            self.engine("(ModularMultiplicativeInverse 2 4)")
        assert info.value.message == "Number is not invertible in such that base"


class TestPrimality:
    """Tests for IsPrime."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text, seed=1))

    def test_small(self):
        """Small numbers."""
        assert self.reduce("(IsPrime 2)") == "True"
        assert self.reduce("(IsPrime 97)") == "True"
        assert self.reduce("(IsPrime 100)") == "False"
        assert self.reduce("(IsPrime 1)") == "False"
        assert self.reduce("(IsPrime 0)") == "False"

    def test_carmichael(self):
        """Carmichael numbers are detected."""
        assert self.reduce("(IsPrime 561)") == "False"

    def test_large_prime(self):
        """A Mersenne prime."""
        assert is_probable_prime(2 ** 61 - 1, random.Random(0))
        assert not is_probable_prime(2 ** 61 + 1, random.Random(0))

    def test_negative(self):
        """Negative numbers are rejected."""
        with pytest.raises(ValidationError):
            self.engine("(IsPrime -5)")

    def test_decimal(self):
        """Non-integers are rejected."""
        with pytest.raises(ValidationError):
            self.engine("(IsPrime 2.5)")

    def test_symbol(self):
        """Symbols are left alone."""
        assert self.reduce("(IsPrime x)") == "(IsPrime x)"


class TestFactorial:
    """Tests for Factorial."""

    def setup_method(self):
        self.engine = default_engine()

    def test_factorial(self):
        """n!"""
        assert format_sexpr(self.engine("(Factorial 5)")) == "120"
        assert format_sexpr(self.engine("(Factorial 0)")) == "1"

    def test_negative(self):
        """Negative factorials are rejected."""
        with pytest.raises(ValidationError):
            self.engine("(Factorial -1)")
