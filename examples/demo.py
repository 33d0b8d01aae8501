#!/usr/bin/env python3
"""
NUMERUS Feature Demonstration

This script demonstrates the major features of the NUMERUS library.
"""

from numerus import (
    ReductionEngine, E, ARITHMETIC, Expression, Integer,
    default_engine, format_sexpr, multiply, number_of,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def show(engine, examples, **options):
    for expr_str in examples:
        result = engine(E(expr_str), **options)
        print(f"  {expr_str} => {format_sexpr(result)}")


def demo_exact_arithmetic():
    """Demonstrate exact arithmetic on the numeric tower."""
    section("Exact Arithmetic")

    show(default_engine(), [
        "(Addition 1/2 1/3)",
        "(Division 6 4)",
        "(Exponentiation 8 2/3)",
        "(Exponentiation 2 3/2)",
        "(SquareRoot -4)",
        "(Addition 1 x 2)",
    ])


def demo_precision():
    """Demonstrate precision and rounding."""
    section("Precision and Rounding")

    engine = default_engine()
    show(engine, ["(Division 1.0 7)"])
    show(engine, ["(Division 1.0 7)"], precision=5)
    show(engine, [
        "(N Pi 30)",
        "(WithPrecision (Division 1.0 3) 8)",
        "(RoundToInteger 2.5 RoundingMode.HalfEven)",
        "(RoundToDecimalPlaces 2/3 3)",
    ])


def demo_number_theory():
    """Demonstrate the number theory reducers."""
    section("Number Theory")

    show(default_engine(), [
        "(Factors 360)",
        "(Divisors 28)",
        "(GreatestCommonDivisor 12 18 30)",
        "(ModularExponentiation 4 13 497)",
        "(IsPrime 561)",
        "(Factorial 20)",
    ], seed=1)


def demo_transcendental():
    """Demonstrate numeric evaluation of transcendental functions."""
    section("Transcendental Functions")

    show(default_engine(), [
        "(Sine 0)",
        "(Sine 1)",
        "(N (Sine 1))",
        "(BinaryLogarithm 1024)",
        "(NaturalLogarithm -1.0)",
    ])


def demo_iteration():
    """Demonstrate sums, products and piecewise definitions."""
    section("Iteration")

    show(default_engine(), [
        "(Summation (Exponentiation k 2) k 1 10)",
        "(Product k k (List 2 3 5))",
        "(Summation x 3)",
        "(Summation (Piecewise k (IsEven k) 0) k 1 10)",
    ])


def demo_groups():
    """Demonstrate switching off the structural reducers."""
    section("Symbolic Group")

    engine = default_engine()
    examples = ["(Negative (Negative x))", "(Multiplication 2 (Addition x 1))"]

    print("  All reducers:")
    show(engine, examples)

    engine.disable_group("symbolic")
    print("\n  Numeric evaluation only:")
    show(engine, examples)


def demo_tracing():
    """Demonstrate reduction tracing."""
    section("Tracing")

    engine = default_engine()
    result, trace = engine.reduce("(Addition 1 (Multiplication 2 (Division 1 4)))", trace=True)

    print(f"  Result: {format_sexpr(result)}")
    print(f"  Reducers: {trace.format('reducers')}")
    print("\n  Chain:")
    for line in trace.format("chain").splitlines():
        print(f"    {line}")


def double_numeric(node, session):
    """(Double x) -> 2x for a number x."""
    if len(node.children) != 1:
        return False
    number = number_of(node.children[0])
    if number is None:
        return False
    node.replace_by(Expression.number(multiply(number, Integer(2), session.context)))
    return True


def demo_custom_reducers():
    """Demonstrate registering a reducer for a new tag."""
    section("Custom Reducers")

    def prelude(engine):
        ARITHMETIC(engine)
        engine.add_reducer("Double", double_numeric, "double-numeric", "Doubles a number")

    engine = ReductionEngine().load(prelude)
    _, metadata = engine.get_reducer("double-numeric")
    print(f"  {metadata}")
    show(engine, ["(Double 21)", "(Double (Division 1 3))", "(Double x)"])


def main():
    """Run all demonstrations."""
    print("NUMERUS - symbolic arithmetic with an arbitrary precision numeric tower")
    print("Feature Demonstration")

    demo_exact_arithmetic()
    demo_precision()
    demo_number_theory()
    demo_transcendental()
    demo_iteration()
    demo_groups()
    demo_tracing()
    demo_custom_reducers()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
