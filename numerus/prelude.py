"""
Standard preludes for NUMERUS.

A prelude is a register function: it takes a ReductionEngine and adds reducers
to it. Preludes compose by calling each other.

    engine = ReductionEngine().load(ARITHMETIC)

    def my_prelude(engine):
        ARITHMETIC(engine)
        engine.add_reducer("Double", double, "double-numeric")
"""

from typing import Callable, Dict

from . import arithmetic, conversion, iteration, number_theory, precision, transcendental
from .engine import ReductionEngine

PreludeType = Callable[[ReductionEngine], None]


def NONE(engine: ReductionEngine) -> None:
    """No reducers at all."""


def MINIMAL(engine: ReductionEngine) -> None:
    """The field operations, comparisons, precision and rounding."""
    arithmetic.register(engine)
    precision.register(engine)


def ARITHMETIC(engine: ReductionEngine) -> None:
    """Every reducer of the package."""
    MINIMAL(engine)
    number_theory.register(engine)
    transcendental.register(engine)
    iteration.register(engine)
    conversion.register(engine)


PRELUDES: Dict[str, PreludeType] = {
    "none": NONE,
    "minimal": MINIMAL,
    "arithmetic": ARITHMETIC,
}


def default_engine() -> ReductionEngine:
    """A new engine loaded with the ARITHMETIC prelude."""
    return ReductionEngine().load(ARITHMETIC)
