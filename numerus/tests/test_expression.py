"""Tests for the expression substrate."""

import pytest

from numerus import E, Expression, format_sexpr, number_of
from numerus.errors import ERROR_ATTRIBUTE, set_in_error
from numerus.expression import ScopeEntry
from numerus.tower import Decimal, Integer


class TestParsing:
    """Tests for s-expression parsing."""

    def test_round_trip(self):
        """Parsing then formatting gives the same text."""
        text = "(Addition 1 (Multiplication 2/3 x) 0.5)"
        assert format_sexpr(E(text)) == text

    def test_aliases(self):
        """Short operator aliases expand to tags."""
        expr = E("(+ 1 (* 2 x) (^ y 2) (/ 1 z) (- w))")
        assert format_sexpr(expr) == \
            "(Addition 1 (Multiplication 2 x) (Exponentiation y 2) (Division 1 z) (Negative w))"

    def test_nullary_tags(self):
        """Known constants are not symbols."""
        assert E("Pi").tag == "Pi"
        assert E("True").tag == "True"
        assert E("RoundingMode.HalfEven").tag == "RoundingMode.HalfEven"
        assert E("x").tag == "Symbol"

    def test_numbers(self):
        """Literals become Number nodes."""
        assert number_of(E("42")) == Integer(42)
        assert isinstance(number_of(E("2.5")), Decimal)

    def test_decimal_formatting(self):
        """Decimals lose trailing zeros but keep a point."""
        assert format_sexpr(E("(Addition 1 2.50 3.0)")) == "(Addition 1 2.5 3.0)"

    def test_strings(self):
        """Strings keep escaped quotes."""
        expr = E('(ToNumber "a\\"b")')
        assert expr.children[0].value == 'a"b'
        assert format_sexpr(expr) == '(ToNumber "a\\"b")'

    def test_empty_list(self):
        """A tag without children."""
        expr = E("(List)")
        assert expr.tag == "List"
        assert len(expr) == 0

    def test_unbalanced(self):
        """Unbalanced input raises ValueError."""
        with pytest.raises(ValueError):
            E("(Addition 1")
        with pytest.raises(ValueError):
            E(")")
        with pytest.raises(ValueError):
            E("(Addition 1) 2")

    def test_empty(self):
        """Empty input raises ValueError."""
        with pytest.raises(ValueError):
            E("   ")


class TestBuilder:
    """Tests for the expression builder."""

    def test_op(self):
        """E.op coerces its arguments."""
        expr = E.op("Addition", "x", 1, E.op("Multiplication", 2, "y"))
        assert format_sexpr(expr) == "(Addition x 1 (Multiplication 2 y))"

    def test_alias_in_op(self):
        """E.op expands aliases."""
        assert E.op("+", 1, 2).tag == "Addition"

    def test_vars(self):
        """E.vars creates symbols."""
        x, y = E.vars("x", "y")
        assert x.name == "x" and y.tag == "Symbol"

    def test_list_and_str(self):
        """Lists and strings."""
        assert format_sexpr(E.list(1, 2, E.str("a"))) == '(List 1 2 "a")'


class TestTree:
    """Tests for tree mutation."""

    def test_parent_links(self):
        """Children know their parent and index."""
        expr = E("(Addition x y z)")
        assert expr.children[2].parent is expr
        assert expr.children[2].index == 2

    def test_replace_by(self):
        """A node is replaced within its parent."""
        expr = E("(Addition x y)")
        expr.children[1].replace_by(Expression.number(5))
        assert format_sexpr(expr) == "(Addition x 5)"

    def test_replace_root(self):
        """The root cannot be replaced."""
        with pytest.raises(ValueError):
            E("(Addition x y)").replace_by(E("z"))

    def test_add_and_remove(self):
        """Children are inserted and removed by index."""
        expr = E("(Addition x y)")
        expr.add_child_at(0, Expression.number(1))
        removed = expr.remove_child_at(2)
        assert format_sexpr(expr) == "(Addition 1 x)"
        assert removed.parent is None

    def test_clone_is_deep(self):
        """Clones are detached deep copies."""
        expr = E("(Addition x (Multiplication 2 y))")
        copy = expr.children[1].clone()
        copy.children[0].replace_by(Expression.number(3))
        assert copy.parent is None
        assert format_sexpr(expr) == "(Addition x (Multiplication 2 y))"

    def test_index_after_insertions(self):
        """Indexes stay correct as siblings come and go."""
        expr = E("(Addition a b c)")
        c = expr.children[2]
        expr.add_child_at(0, E("x"))
        expr.add_child_at(0, E("y"))
        assert c.index == 4
        expr.remove_child_at(1)
        assert c.index == 3
        expr.set_child(0, E("z"))
        assert expr.children[0].index == 0
        assert [child.index for child in expr.children] == [0, 1, 2, 3]

    def test_detached_node_has_no_index(self):
        """Removed children have no position."""
        expr = E("(Addition a b)")
        removed = expr.remove_child_at(0)
        with pytest.raises(ValueError):
            removed.index

    def test_deep_nesting(self):
        """Parsing, formatting and cloning do not recurse per level."""
        depth = 5000
        text = "(Negative " * depth + "x" + ")" * depth
        expr = E(text)
        assert format_sexpr(expr) == text
        assert format_sexpr(expr.clone()) == text

    def test_equality_ignores_error(self):
        """The Error annotation does not affect equality."""
        a = E("(Addition x 1)")
        b = E("(Addition x 1)")
        set_in_error(b.children[1], "bad")
        assert b.children[1].get(ERROR_ATTRIBUTE) == "bad"
        assert a == b
        assert a != E("(Addition x 2)")

    def test_numbers_compare_by_kind(self):
        """Integer 2 and Decimal 2.0 are different nodes."""
        assert E("2") != E("2.0")


class TestScopes:
    """Tests for lexical scopes."""

    def test_lookup_nearest(self):
        """The nearest enclosing binding wins."""
        outer = E("(Addition (Multiplication x 2))")
        inner = outer.children[0]
        outer.create_scope()
        outer.put_into_scope("x", ScopeEntry(Expression.number(1)))
        inner.create_scope()
        inner.put_into_scope("x", ScopeEntry(Expression.number(2)))
        entry = inner.children[0].lookup("x")
        assert number_of(entry.value) == Integer(2)

    def test_locked_scope_is_invisible(self):
        """A locked scope does not resolve names."""
        expr = E("(Addition x)")
        expr.create_scope()
        expr.put_into_scope("x", ScopeEntry(Expression.number(1)))
        expr.lock_scope()
        assert expr.children[0].lookup("x") is None
        expr.unlock_scope()
        assert expr.children[0].lookup("x") is not None

    def test_cannot_bind_into_locked_scope(self):
        """Binding into a locked scope is an error."""
        expr = E("(Addition x)")
        expr.create_scope()
        expr.lock_scope()
        with pytest.raises(ValueError):
            expr.put_into_scope("x", ScopeEntry())

    def test_unbound(self):
        """Unbound names give None."""
        assert E("(Addition x)").children[0].lookup("x") is None
