"""Tests for conversion, introspection and random number reducers."""

from fractions import Fraction

import pytest

from numerus import default_engine, format_sexpr
from numerus.conversion import format_in_base, parse_in_base, rationalize_decimal


class TestRationalize:
    """Tests for Rationalize."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_rationalize_decimal(self):
        """Trailing digits repeat."""
        assert rationalize_decimal(Fraction("0.1666"), 4, 1) == Fraction(1, 6)
        assert rationalize_decimal(Fraction("0.142857"), 6, 6) == Fraction(1, 7)
        assert rationalize_decimal(Fraction("0.5"), 1, 2) is None

    def test_exact_value(self):
        """Decimals become their exact value."""
        assert self.reduce("(Rationalize 0.75)") == "3/4"
        assert self.reduce("(Rationalize 2.0)") == "2"

    def test_repeating(self):
        """Repeating digits."""
        assert self.reduce("(Rationalize 0.1666 1)") == "1/6"


class TestPredicates:
    """Tests for the Is* predicates."""

    def setup_method(self):
        self.engine = default_engine()

    @pytest.mark.parametrize("text,expected", [
        ("(IsInteger 3)", "True"),
        ("(IsInteger 3.0)", "False"),
        ("(IsIntegerValue 3.0)", "True"),
        ("(IsDecimal 3.0)", "True"),
        ("(IsEven 4)", "True"),
        ("(IsOdd 4.0)", "False"),
        ("(IsOdd 1/2)", "False"),
        ("(IsRationalNumber 1/2)", "True"),
        ("(IsRationalNumber 0.5)", "False"),
        ("(IsRealNumber 0.5)", "True"),
        ("(IsComplex (Complex 1 2))", "True"),
        ("(IsRealNumber (Complex 1 2))", "False"),
        ("(IsNegativeNumber -1/2)", "True"),
        ("(IsPositiveNumber 0)", "False"),
        ("(IsNumberZero 0.0)", "True"),
        ("(IsNumeric x)", "False"),
        ("(IsNumeric 1)", "True"),
    ])
    def test_predicate(self, text, expected):
        """Predicates on numbers and non-numbers."""
        assert format_sexpr(self.engine(text)) == expected


class TestConversions:
    """Tests for ToInteger, ToIfInteger and ToDecimal."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_to_integer(self):
        """Integral Decimals become Integers."""
        assert self.reduce("(ToInteger 3.0)") == "3"
        assert self.reduce("(ToInteger 3.5)") == "(ToInteger 3.5)"

    def test_to_if_integer(self):
        """Non-integral values are kept."""
        assert self.reduce("(ToIfInteger 3.0)") == "3"
        assert self.reduce("(ToIfInteger 3.5)") == "3.5"
        assert self.reduce("(ToIfInteger 1/2)") == "1/2"

    def test_to_decimal(self):
        """Numbers become Decimals."""
        assert self.reduce("(ToDecimal 1/4)") == "0.25"
        assert self.reduce("(ToDecimal 3)") == "3.0"


class TestStrings:
    """Tests for ToNumber, ToString and Digits."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_parse_in_base(self):
        """Digits and points in any base."""
        assert parse_in_base("ff", 16) == 255
        assert parse_in_base("-10.1", 2) == Fraction(-5, 2)
        assert parse_in_base("19", 8) is None
        assert parse_in_base(".", 10) is None

    def test_format_in_base(self):
        """Integers in any base."""
        assert format_in_base(255, 16) == "ff"
        assert format_in_base(-5, 2) == "-101"
        assert format_in_base(0, 7) == "0"

    def test_to_number(self):
        """Strings become numbers."""
        assert self.reduce('(ToNumber "ff" 16)') == "255"
        assert self.reduce('(ToNumber "-12.5")') == "-12.5"
        assert self.reduce('(ToNumber "42")') == "42"
        assert self.reduce('(ToNumber "0.1" 2)') == "0.5"

    def test_to_number_malformed(self):
        """Malformed strings are left alone."""
        assert self.reduce('(ToNumber "1z" 16)') == '(ToNumber "1z" 16)'

    def test_to_string(self):
        """Numbers become strings."""
        assert self.reduce("(ToString 255 2)") == '"11111111"'
        assert self.reduce("(ToString 255 16)") == '"ff"'
        assert self.reduce("(ToString 1/3)") == '"1/3"'
        assert self.reduce("(ToString 2.50)") == '"2.50"'

    def test_digits(self):
        """Digits, most significant first."""
        assert self.reduce("(Digits 1234)") == "(List 1 2 3 4)"
        assert self.reduce("(Digits 255 16 4)") == "(List 0 0 15 15)"
        assert self.reduce("(Digits 0)") == "(List 0)"

    def test_digits_negative(self):
        """Negative numbers have no digits."""
        assert self.reduce("(Digits -5)") == "(Digits -5)"


class TestParts:
    """Tests for IntegerPart and FractionalPart."""

    def setup_method(self):
        self.engine = default_engine()

    def reduce(self, text):
        return format_sexpr(self.engine(text))

    def test_integer_part(self):
        """Integer part of the absolute value."""
        assert self.reduce("(IntegerPart -7/2)") == "3"
        assert self.reduce("(IntegerPart 2.75)") == "2"

    def test_fractional_part(self):
        """Fractional part of the absolute value."""
        assert self.reduce("(FractionalPart -7/2)") == "1/2"
        assert self.reduce("(FractionalPart -2.75)") == "0.75"
        assert self.reduce("(FractionalPart 5)") == "0"


class TestRandom:
    """Tests for Random and RandomInRange."""

    def setup_method(self):
        self.engine = default_engine()

    def test_seeded(self):
        """The same seed draws the same numbers."""
        first = format_sexpr(self.engine("(List (Random) (RandomInRange 1 100))", seed=7))
        second = format_sexpr(self.engine("(List (Random) (RandomInRange 1 100))", seed=7))
        assert first == second

    def test_random_range(self):
        """Random Decimals lie in [0, 1)."""
        for seed in range(5):
            value = format_sexpr(self.engine("(Random 5)", seed=seed))
            assert value.startswith("0.")

    def test_random_in_range(self):
        """RandomInRange is inclusive on both ends."""
        for seed in range(10):
            value = int(format_sexpr(self.engine("(RandomInRange 1 6)", seed=seed)))
            assert 1 <= value <= 6

    def test_equal_bounds(self):
        """Equal bounds give the bound."""
        assert format_sexpr(self.engine("(RandomInRange 3 3)")) == "3"
