"""Tests for the reduction engine: registry, precedence, groups and tracing."""

import pytest

from numerus import (
    E, Expression, Precedence, ReductionEngine, ReductionError, ValidationError, default_engine,
    format_sexpr,
)
from numerus.errors import ERROR_ATTRIBUTE, DomainError, NonNumericError
from numerus.prelude import MINIMAL, NONE, PRELUDES


def rename(name):
    """A reducer that replaces its node with the symbol `name`."""
    def reducer(node, session):
        node.replace_by(Expression.symbol(name))
        return True
    return reducer


def decline(node, session):
    return False


class TestRegistry:
    """Tests for reducer registration."""

    def setup_method(self):
        self.engine = ReductionEngine()

    def test_add_reducer(self):
        """A registered reducer rewrites its tag."""
        self.engine.add_reducer("F", rename("a"), "f-a")
        assert format_sexpr(self.engine("(F 1)")) == "a"

    def test_unmatched_tag(self):
        """Tags without reducers are left alone."""
        assert format_sexpr(self.engine("(G 1 2)")) == "(G 1 2)"

    def test_duplicate_name(self):
        """Reducer names are unique."""
        self.engine.add_reducer("F", rename("a"), "f-a")
        with pytest.raises(ValueError):
            self.engine.add_reducer("G", rename("b"), "f-a")

    def test_lookup_by_name(self):
        """Reducers can be looked up by name."""
        self.engine.add_reducer("F", rename("a"), "f-a", "Makes an a")
        assert "f-a" in self.engine
        fn, meta = self.engine["f-a"]
        assert meta.tag == "F"
        assert meta.description == "Makes an a"
        with pytest.raises(KeyError):
            self.engine["missing"]

    def test_registration_order(self):
        """Equal precedence keeps registration order."""
        self.engine.add_reducer("F", decline, "f-decline")
        self.engine.add_reducer("F", rename("first"), "f-first")
        self.engine.add_reducer("F", rename("second"), "f-second")
        assert format_sexpr(self.engine("(F)")) == "first"

    def test_precedence(self):
        """HIGH runs before NORMAL, NORMAL before LOW."""
        self.engine.add_reducer("F", rename("low"), "f-low", precedence=Precedence.LOW)
        self.engine.add_reducer("F", rename("normal"), "f-normal")
        assert format_sexpr(self.engine("(F)")) == "normal"
        self.engine.add_reducer("F", rename("high"), "f-high", precedence=Precedence.HIGH)
        assert format_sexpr(self.engine("(F)")) == "high"
        names = [meta.name for _, meta in self.engine.reducers_for("F")]
        assert names == ["f-high", "f-normal", "f-low"]

    def test_metadata_repr(self):
        """Metadata shows precedence and description."""
        engine = default_engine()
        _, meta = engine["division-numeric"]
        assert repr(meta) == '@division-numeric[HIGH] "Division between numbers"'

    def test_list_reducers(self):
        """Reducers are listed by tag."""
        engine = default_engine()
        listing = engine.list_reducers()
        assert any(line.startswith("Addition @addition-fold") for line in listing)
        assert any("[symbolic]" in line for line in listing)

    def test_clear(self):
        """clear() removes everything."""
        engine = default_engine().clear()
        assert len(engine) == 0
        assert format_sexpr(engine("(Addition 1 2)")) == "(Addition 1 2)"


class TestPreludes:
    """Tests for the standard preludes."""

    def test_prelude_names(self):
        """All preludes are registered by name."""
        assert set(PRELUDES) == {"none", "minimal", "arithmetic"}

    def test_none(self):
        """NONE registers nothing."""
        assert len(ReductionEngine().load(NONE)) == 0

    def test_minimal(self):
        """MINIMAL has arithmetic but no number theory."""
        engine = ReductionEngine().load(MINIMAL)
        assert format_sexpr(engine("(Addition 1 2)")) == "3"
        assert format_sexpr(engine("(Factorial 5)")) == "(Factorial 5)"

    def test_default_engine(self):
        """The default engine loads everything."""
        engine = default_engine()
        assert format_sexpr(engine("(Factorial 5)")) == "120"


class TestSpecialReducers:
    """Tests for special reducers."""

    def test_special_sees_unreduced_children(self):
        """Special reducers run before the children are reduced."""
        def quote(node, session):
            node.replace_by(Expression.string(format_sexpr(node.children[0])))
            return True

        engine = default_engine()
        engine.add_reducer("Quote", quote, "quote", special=True)
        assert format_sexpr(engine("(Quote (Addition 1 2))")) == '"(Addition 1 2)"'

    def test_normal_sees_reduced_children(self):
        """Normal reducers run after the children are reduced."""
        def show(node, session):
            node.replace_by(Expression.string(format_sexpr(node.children[0])))
            return True

        engine = default_engine()
        engine.add_reducer("Show", show, "show")
        assert format_sexpr(engine("(Show (Addition 1 2))")) == '"3"'

    def test_result_is_reduced_again(self):
        """Whatever a reducer leaves behind is reduced again."""
        def expand(node, session):
            node.replace_by(E("(Addition 1 2)"))
            return True

        engine = default_engine()
        engine.add_reducer("Three", expand, "three")
        assert format_sexpr(engine("(Multiplication (Three) 2)")) == "6"


class TestSignals:
    """Tests for errors raised by reducers."""

    def setup_method(self):
        self.engine = ReductionEngine()

    def test_domain_error_gives_undefined(self):
        """Numeric signals turn the node into Undefined."""
        def fail(node, session):
            raise DomainError("no value")

        self.engine.add_reducer("F", fail, "f-fail")
        assert format_sexpr(self.engine("(G (F 1))")) == "(G Undefined)"

    def test_non_numeric_declines(self):
        """A non-numeric signal lets the next reducer try."""
        def fail(node, session):
            raise NonNumericError("not a number")

        self.engine.add_reducer("F", fail, "f-fail")
        self.engine.add_reducer("F", rename("ok"), "f-ok")
        assert format_sexpr(self.engine("(F)")) == "ok"

    def test_validation_error_propagates(self):
        """A ValidationError aborts the reduction and annotates the operand."""
        engine = default_engine()
        with pytest.raises(ValidationError) as info:
            engine("(SetPrecision 0)")
        assert info.value.message == "Expression must be a positive integer number"
        assert info.value.node.get(ERROR_ATTRIBUTE) == info.value.message

    def test_max_steps(self):
        """Runaway reductions are stopped."""
        engine = default_engine()
        with pytest.raises(ReductionError):
            engine("(Addition 1 (Multiplication 2 3))", max_steps=1)

    def test_endless_rewrite(self):
        """A reducer that always rewrites hits the step limit."""
        def again(node, session):
            node.replace_by(Expression("F"))
            return True

        self.engine.add_reducer("F", again, "f-again")
        with pytest.raises(ReductionError):
            self.engine("(F)", max_steps=50)


class TestGroups:
    """Tests for reducer groups."""

    def setup_method(self):
        self.engine = default_engine()

    def test_groups(self):
        """The structural reducers are grouped."""
        assert "symbolic" in self.engine.groups()

    def test_disable_group(self):
        """Disabled groups are skipped."""
        self.engine.disable_group("symbolic")
        assert format_sexpr(self.engine("(Negative (Negative x))")) == "(Negative (Negative x))"
        assert self.engine.disabled_groups() == {"symbolic"}
        self.engine.enable_group("symbolic")
        assert format_sexpr(self.engine("(Negative (Negative x))")) == "x"

    def test_no_symbolic_option(self):
        """no_symbolic skips structural rules but keeps numeric evaluation."""
        assert format_sexpr(self.engine("(Negative (Negative x))", no_symbolic=True)) == \
            "(Negative (Negative x))"
        assert format_sexpr(self.engine("(Addition 1 2)", no_symbolic=True)) == "3"

    def test_ungrouped_reducers_always_run(self):
        """Disabling an unknown group changes nothing."""
        self.engine.disable_group("nonexistent")
        assert format_sexpr(self.engine("(Addition x 0)")) == "x"


class TestCombining:
    """Tests for engine copies and unions."""

    def test_copy_is_independent(self):
        """Copies do not share registrations."""
        engine = ReductionEngine()
        copy = engine.copy()
        copy.add_reducer("F", rename("a"), "f-a")
        assert "f-a" not in engine

    def test_union(self):
        """engine1 | engine2 has the reducers of both."""
        a = ReductionEngine().add_reducer("F", rename("a"), "f-a")
        b = ReductionEngine().add_reducer("G", rename("b"), "g-b")
        combined = a | b
        assert "f-a" in combined and "g-b" in combined
        assert "g-b" not in a

    def test_union_keeps_existing_names(self):
        """Names already present win."""
        a = ReductionEngine().add_reducer("F", rename("a"), "f")
        b = ReductionEngine().add_reducer("F", rename("b"), "f")
        a |= b
        assert format_sexpr(a("(F)")) == "a"


class TestTrace:
    """Tests for reduction tracing."""

    def setup_method(self):
        self.engine = default_engine()

    def test_trace_steps(self):
        """Each successful reducer is a step."""
        result, trace = self.engine.reduce("(Addition 1 (Multiplication 2 3))", trace=True)
        assert format_sexpr(result) == "7"
        assert trace.reducers_applied() == ["multiplication-fold", "addition-fold"]
        assert len(trace) == 2
        assert trace

    def test_trace_before_after(self):
        """Steps record the subtree before and after."""
        _, trace = self.engine.reduce("(Addition 1 (Multiplication 2 3))", trace=True)
        step = trace.steps[0]
        assert format_sexpr(step.before) == "(Multiplication 2 3)"
        assert format_sexpr(step.after) == "6"

    def test_compact_format(self):
        """The compact format shows the reducer chain."""
        _, trace = self.engine.reduce("(Addition 1 (Multiplication 2 3))", trace=True)
        assert trace.format("compact") == \
            "(Addition 1 (Multiplication 2 3)) --[multiplication-fold, addition-fold]--> 7"

    def test_reducers_format(self):
        """The reducers format lists names."""
        _, trace = self.engine.reduce("(Addition 1 2)", trace=True)
        assert trace.format("reducers") == "addition-fold"

    def test_empty_trace(self):
        """Nothing to do gives an empty trace."""
        _, trace = self.engine.reduce("x", trace=True)
        assert not trace
        assert trace.format("reducers") == "(no reducers applied)"
        assert trace.summary() == "No reduction performed"

    def test_to_dict(self):
        """Traces serialize to dictionaries."""
        _, trace = self.engine.reduce("(Addition 1 2)", trace=True)
        data = trace.to_dict()
        assert data["initial"] == "(Addition 1 2)"
        assert data["final"] == "3"
        assert data["step_count"] == 1
        assert data["steps"][0]["reducer"] == "addition-fold"
        assert data["steps"][0]["tag"] == "Addition"

    def test_reducer_counts(self):
        """Counts per reducer."""
        _, trace = self.engine.reduce("(Addition (Addition 1 2) (Addition 3 4))", trace=True)
        assert trace.reducer_counts() == {"addition-fold": 3}
        assert trace.summary().startswith("3 steps using 1 unique reducers")

    def test_chain_format(self):
        """The chain format shows every rewrite."""
        _, trace = self.engine.reduce("(Addition 1 2)", trace=True)
        assert trace.format("chain") == "(Addition 1 2)\n  (Addition 1 2)\n    --(addition-fold)--> 3\n3"


class TestReduceEntryPoint:
    """Tests for engine.reduce()."""

    def setup_method(self):
        self.engine = default_engine()

    def test_input_is_not_modified(self):
        """The caller's tree is cloned."""
        expr = E("(Addition 1 2)")
        self.engine(expr)
        assert format_sexpr(expr) == "(Addition 1 2)"

    def test_string_input(self):
        """Strings are parsed."""
        assert format_sexpr(self.engine("(Multiplication 6 7)")) == "42"

    def test_result_is_detached(self):
        """The result has no parent."""
        assert self.engine("(Addition 1 2)").parent is None

    def test_session_options(self):
        """Session options are passed through."""
        assert format_sexpr(self.engine("(Division 1.0 3)", precision=5)) == "0.33333"
        assert format_sexpr(self.engine("(Round 2.5)", rounding="HalfEven")) == "2"

    def test_invalid_options(self):
        """Invalid session options are rejected."""
        with pytest.raises(ValueError):
            self.engine("1", precision=0)
        with pytest.raises(ValueError):
            self.engine("1", rounding="Sideways")
