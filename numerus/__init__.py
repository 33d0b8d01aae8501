"""
NUMERUS - symbolic arithmetic over an arbitrary precision numeric tower

Reduces tagged expression trees to normal form, applying algebraic identities
and evaluating numeric subexpressions exactly where possible.

Quick Start:
    from numerus import default_engine, E

    engine = default_engine()

    engine(E("(Addition 1 2/3 x)"))               # => (Addition 5/3 x)
    engine("(Division 1.0 3)", precision=5)       # => 0.33333
    engine("(Summation (^ k 2) k 1 10)")          # => 385
    engine("(N (Sine 1) 30)")                     # => 0.841470984807896506652502321630

Numeric Tower:
    Integer     arbitrary size integers              42
    Rational    exact fractions in lowest terms      2/3
    Decimal     significant-digit decimals           0.125, 1.5e+30
    Complex     pairs of the above                   (Complex 1 2)

Reducers:
    def double_numeric(node, session):
        number = number_of(node.children[0])
        if number is None:
            return False
        node.replace_by(Expression.number(multiply(number, Integer(2), session.context)))
        return True

    engine.add_reducer("Double", double_numeric, "double-numeric", "Doubles a number")

Tracing:
    result, trace = engine.reduce("(Addition 1 (Multiplication 2 3))", trace=True)
    print(trace.format("chain"))
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    ERROR_ATTRIBUTE,
    set_in_error,
    ReductionError,
    ValidationError,
    NumericError,
    DomainError,
    NumericOverflowError,
    NumericUnderflowError,
    NonNumericError,
)

# Numeric tower
from .tower import (
    RoundingMode,
    ROUNDING_MODES,
    NumericContext,
    Number,
    Integer,
    Rational,
    Decimal,
    Complex,
    create_number,
    create_rational,
    create_complex,
    create_decimal,
    parse_number,
    add,
    subtract,
    multiply,
    divide,
    power,
    compare,
    equal,
)

# Expressions
from .expression import (
    Expression,
    Scope,
    ScopeEntry,
    E,
    parse_sexpr,
    format_sexpr,
    number_of,
)

# Engine and session
from .engine import (
    ReductionEngine,
    ReducerMetadata,
    ReductionStep,
    ReductionTrace,
    Precedence,
    SYMBOLIC,
)
from .session import Session

# Preludes
from .prelude import (
    ARITHMETIC,
    MINIMAL,
    NONE,
    PRELUDES,
    default_engine,
)

# Public API
__all__ = [
    # Version
    "__version__",
    # Errors
    "ERROR_ATTRIBUTE",
    "set_in_error",
    "ReductionError",
    "ValidationError",
    "NumericError",
    "DomainError",
    "NumericOverflowError",
    "NumericUnderflowError",
    "NonNumericError",
    # Numeric tower
    "RoundingMode",
    "ROUNDING_MODES",
    "NumericContext",
    "Number",
    "Integer",
    "Rational",
    "Decimal",
    "Complex",
    "create_number",
    "create_rational",
    "create_complex",
    "create_decimal",
    "parse_number",
    "add",
    "subtract",
    "multiply",
    "divide",
    "power",
    "compare",
    "equal",
    # Expressions
    "Expression",
    "Scope",
    "ScopeEntry",
    "E",
    "parse_sexpr",
    "format_sexpr",
    "number_of",
    # Engine and session
    "ReductionEngine",
    "ReducerMetadata",
    "ReductionStep",
    "ReductionTrace",
    "Precedence",
    "SYMBOLIC",
    "Session",
    # Preludes
    "ARITHMETIC",
    "MINIMAL",
    "NONE",
    "PRELUDES",
    "default_engine",
]
