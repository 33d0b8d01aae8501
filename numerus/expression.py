"""
Expression substrate for NUMERUS.

An expression is a tree of tagged nodes:

    Expression("Addition", [Expression.number(1), Expression.symbol("x")])

Every node has a tag, an ordered list of children, a dict of attributes and a
link to its parent. Leaves carry their payload in attributes:

    Number    Value -> canonical number (numerus.tower)
    String    Value -> str
    Symbol    Name  -> str

Nodes are mutable: reducers rewrite a tree in place through replace_by(),
set_child(), add_child_at() and remove_child_at().

S-expression notation:
    E("(Addition 1 (Multiplication 2 x))")
    E("(Summation (Exponentiation k 2) k 1 10)")
    E('(ToNumber "ff" 16)')

Bare names are Symbols, except the nullary tags (True, Null, Pi, ...) and the
rounding mode tags (RoundingMode.HalfEven, ...). The head of a list may also
be one of the short aliases + * - / ^ N.
"""

import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .tower import Complex, Number, RoundingMode, create_number, format_decimal, parse_number


# ============================================================
# Tags
# ============================================================

NUMBER = "Number"
SYMBOL = "Symbol"
STRING = "String"
LIST = "List"

NULL = "Null"
UNDEFINED = "Undefined"
TRUE = "True"
FALSE = "False"
INFINITY = "Infinity"
PI = "Pi"
EULER = "Euler"
IMAGINARY_UNIT = "ImaginaryUnit"

ADDITION = "Addition"
MULTIPLICATION = "Multiplication"
NEGATIVE = "Negative"
DIVISION = "Division"
EXPONENTIATION = "Exponentiation"

VALUE = "Value"
NAME = "Name"

NULLARY_TAGS = frozenset(
    [NULL, UNDEFINED, TRUE, FALSE, INFINITY, PI, EULER, IMAGINARY_UNIT,
     "Random", "GetPrecision", "GetRoundingMode", "GetEuclideanDivisionMode",
     "Comparison.Less", "Comparison.Equals", "Comparison.Greater"]
    + [mode.tag for mode in RoundingMode]
)

ALIASES = {
    "+": ADDITION,
    "*": MULTIPLICATION,
    "-": NEGATIVE,
    "/": DIVISION,
    "^": EXPONENTIATION,
    "N": "Numeric",
}


class ScopeEntry:
    """A binding held in a scope. The value is an Expression or None."""

    def __init__(self, value: Optional['Expression'] = None):
        self.value = value

    def set_value(self, value: Optional['Expression']) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"ScopeEntry({format_sexpr(self.value) if self.value is not None else None})"


class Scope:
    """Named bindings attached to a node. A locked scope is invisible to lookups."""

    def __init__(self):
        self.entries: Dict[str, ScopeEntry] = {}
        self.locked = False

    def copy(self) -> 'Scope':
        scope = Scope()
        scope.locked = self.locked
        for name, entry in self.entries.items():
            value = entry.value.clone() if entry.value is not None else None
            scope.entries[name] = ScopeEntry(value)
        return scope


class Expression:
    """A tagged, mutable expression tree node."""

    def __init__(self, tag: str, children: Optional[List['Expression']] = None,
                 attributes: Optional[Dict[str, Any]] = None):
        self.tag = tag
        self.children: List['Expression'] = []
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.scope: Optional[Scope] = None
        self.parent: Optional['Expression'] = None
        self._position = 0
        for child in children or []:
            self.add_child(child)

    # ============================================================
    # Leaf constructors
    # ============================================================

    @classmethod
    def number(cls, value) -> 'Expression':
        return cls(NUMBER, attributes={VALUE: create_number(value)})

    @classmethod
    def symbol(cls, name: str) -> 'Expression':
        return cls(SYMBOL, attributes={NAME: name})

    @classmethod
    def string(cls, text: str) -> 'Expression':
        return cls(STRING, attributes={VALUE: text})

    @classmethod
    def boolean(cls, value: bool) -> 'Expression':
        return cls(TRUE if value else FALSE)

    @classmethod
    def list(cls, items: List['Expression']) -> 'Expression':
        return cls(LIST, items)

    @classmethod
    def infinity(cls, negative: bool = False) -> 'Expression':
        if negative:
            return cls(NEGATIVE, [cls(INFINITY)])
        return cls(INFINITY)

    # ============================================================
    # Attributes
    # ============================================================

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    @property
    def value(self) -> Any:
        """The Value attribute: a canonical number or a string."""
        return self.attributes.get(VALUE)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get(NAME)

    def is_internal_number(self) -> bool:
        return self.tag == NUMBER

    # ============================================================
    # Tree structure
    # ============================================================

    @property
    def index(self) -> int:
        """
        Position of this node among its parent's children.

        The position recorded when the node was attached is checked first,
        along with its neighbours, so lookups stay constant time unless
        siblings were inserted or removed in bulk.
        """
        if self.parent is None:
            raise ValueError("Expression has no parent")
        siblings = self.parent.children
        hint = self._position
        for i in (hint, hint + 1, hint - 1):
            if 0 <= i < len(siblings) and siblings[i] is self:
                self._position = i
                return i
        for i, child in enumerate(siblings):
            if child is self:
                self._position = i
                return i
        raise ValueError("Expression is not among its parent's children")

    def add_child(self, child: 'Expression') -> 'Expression':
        child.parent = self
        child._position = len(self.children)
        self.children.append(child)
        return self

    def add_child_at(self, index: int, child: 'Expression') -> 'Expression':
        child.parent = self
        child._position = index
        self.children.insert(index, child)
        return self

    def remove_child_at(self, index: int) -> 'Expression':
        child = self.children.pop(index)
        child.parent = None
        return child

    def set_child(self, index: int, child: 'Expression') -> 'Expression':
        old = self.children[index]
        if old is not child and old.parent is self:
            old.parent = None
        child.parent = self
        child._position = index
        self.children[index] = child
        return self

    def replace_by(self, replacement: 'Expression') -> 'Expression':
        """Put replacement in this node's place within its parent."""
        if self.parent is None:
            raise ValueError("Cannot replace an expression that has no parent")
        self.parent.set_child(self.index, replacement)
        return replacement

    def clone(self) -> 'Expression':
        """Deep copy, detached from any parent."""
        copy = self._shallow_copy()
        pending = [(self, copy)]
        while pending:
            source, target = pending.pop()
            for child in source.children:
                child_copy = child._shallow_copy()
                target.add_child(child_copy)
                pending.append((child, child_copy))
        return copy

    def _shallow_copy(self) -> 'Expression':
        copy = Expression(self.tag, attributes=self.attributes)
        if self.scope is not None:
            copy.scope = self.scope.copy()
        return copy

    # ============================================================
    # Scopes
    # ============================================================

    def create_scope(self) -> Scope:
        self.scope = Scope()
        return self.scope

    def put_into_scope(self, name: str, entry: ScopeEntry) -> None:
        if self.scope is None:
            raise ValueError("Expression has no scope")
        if self.scope.locked:
            raise ValueError("Cannot bind into a locked scope")
        self.scope.entries[name] = entry

    def lock_scope(self) -> None:
        if self.scope is not None:
            self.scope.locked = True

    def unlock_scope(self) -> None:
        if self.scope is not None:
            self.scope.locked = False

    def remove_scope(self) -> None:
        self.scope = None

    def lookup(self, name: str) -> Optional[ScopeEntry]:
        """The nearest visible binding of name in this node or its ancestors."""
        node: Optional[Expression] = self
        while node is not None:
            scope = node.scope
            if scope is not None and not scope.locked and name in scope.entries:
                return scope.entries[name]
            node = node.parent
        return None

    # ============================================================
    # Dunder methods
    # ============================================================

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator['Expression']:
        return iter(self.children)

    def __getitem__(self, index: int) -> 'Expression':
        return self.children[index]

    def __eq__(self, other) -> bool:
        """Structural equality; the Error annotation is ignored."""
        if not isinstance(other, Expression):
            return NotImplemented
        if self.tag != other.tag or len(self.children) != len(other.children):
            return False
        if _payload(self) != _payload(other):
            return False
        return all(a == b for a, b in zip(self.children, other.children))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Expression({format_sexpr(self)})"

    def __str__(self) -> str:
        return format_sexpr(self)


def _payload(node: Expression) -> Dict[str, Any]:
    return {k: v for k, v in node.attributes.items() if k in (VALUE, NAME)}


def is_number(node: Expression) -> bool:
    return node.tag == NUMBER


def is_boolean(node: Expression) -> bool:
    return node.tag in (TRUE, FALSE)


def number_of(node: Expression) -> Optional[Number]:
    """The canonical number of an internal Number node, else None."""
    return node.value if node.tag == NUMBER else None


# ============================================================
# S-expression parsing and formatting
# ============================================================

_TOKEN_RE = re.compile(r'\s*(?:(\()|(\))|("(?:[^"\\]|\\.)*")|([^\s()"]+))')


def _tokenize(s: str) -> List[str]:
    tokens = []
    pos = 0
    s = s.rstrip()
    while pos < len(s):
        m = _TOKEN_RE.match(s, pos)
        if not m or m.end() == pos:
            raise ValueError(f"Unexpected character at position {pos}: {s[pos:pos + 10]!r}")
        tokens.append(next(group for group in m.groups() if group is not None))
        pos = m.end()
    return tokens


def _unquote(token: str) -> str:
    return re.sub(r'\\(.)', r'\1', token[1:-1])


def _atom(token: str) -> Expression:
    if token.startswith('"'):
        return Expression.string(_unquote(token))
    number = parse_number(token)
    if number is not None:
        return Expression(NUMBER, attributes={VALUE: number})
    if token in NULLARY_TAGS:
        return Expression(token)
    return Expression.symbol(token)


def _parse(tokens: List[str], pos: int) -> Tuple[Expression, int]:
    # Open nodes, innermost last
    stack: List[Expression] = []
    while True:
        if pos >= len(tokens):
            raise ValueError("Unbalanced parentheses")
        token = tokens[pos]
        pos += 1
        if token == ')':
            if not stack:
                raise ValueError("Unexpected ')'")
            node = stack.pop()
        elif token == '(':
            if pos >= len(tokens):
                raise ValueError("Unbalanced parentheses")
            head = tokens[pos]
            if head in ('(', ')') or head.startswith('"'):
                raise ValueError(f"Expected a tag after '(' but found {head!r}")
            stack.append(Expression(ALIASES.get(head, head)))
            pos += 1
            continue
        else:
            node = _atom(token)

        if not stack:
            return node, pos
        stack[-1].add_child(node)


def parse_sexpr(s: str) -> Expression:
    """
    Parse an S-expression string into an Expression tree.

    Examples:
        "(Addition x 1)"      -> Addition(Symbol x, Number 1)
        "(+ 1/2 0.5)"         -> Addition(Number 1/2, Number 0.5)
        "Pi"                  -> Pi
    """
    tokens = _tokenize(s)
    if not tokens:
        raise ValueError("Empty expression")
    expr, pos = _parse(tokens, 0)
    if pos != len(tokens):
        raise ValueError(f"Unexpected input after expression: {' '.join(tokens[pos:])}")
    return expr


def format_number(number: Number) -> str:
    if isinstance(number, Complex):
        return f"(Complex {format_number(number.real)} {format_number(number.imag)})"
    return str(number)


def format_sexpr(expr: Expression) -> str:
    """
    Format an Expression as an S-expression string.

    Decimals always carry a decimal point so that the output parses back to
    the same kinds of numbers:
        Addition(Number 1, Number 2.50) -> "(Addition 1 2.5)"
    """
    parts = []
    pending: List[Union[Expression, str]] = [expr]
    while pending:
        item = pending.pop()
        if isinstance(item, str):
            parts.append(item)
        elif item.tag == NUMBER:
            parts.append(format_number(item.value))
        elif item.tag == SYMBOL:
            parts.append(item.name)
        elif item.tag == STRING:
            text = item.value.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'"{text}"')
        elif not item.children and item.tag in NULLARY_TAGS:
            parts.append(item.tag)
        else:
            parts.append("(" + item.tag)
            pending.append(")")
            for child in reversed(item.children):
                pending.append(child)
                pending.append(" ")
    return "".join(parts)


# ============================================================
# Expression Builder
# ============================================================

def to_expression(value: Any) -> Expression:
    """Coerce builder arguments: Expressions pass through, strings are parsed,
    Python numbers become Number nodes."""
    if isinstance(value, Expression):
        return value
    if isinstance(value, bool):
        return Expression.boolean(value)
    if isinstance(value, str):
        return parse_sexpr(value)
    return Expression.number(value)


class _ExprBuilder:
    """
    Expression builder for NUMERUS.

    Examples:
        from numerus import E

        # Parse s-expression string
        expr = E("(Addition x (Multiplication 2 y))")

        # Build programmatically with E.op()
        expr = E.op("Addition", "x", E.op("Multiplication", 2, "y"))

        # Create variables
        x, y = E.vars("x", "y")
        expr = E.op("Summation", E.op("Exponentiation", x, 2), x, 1, 10)
    """

    def __call__(self, s: str) -> Expression:
        """Parse an s-expression string."""
        return parse_sexpr(s)

    def op(self, tag: str, *args) -> Expression:
        """
        Build a compound expression with the given tag and arguments.

        Examples:
            E.op("Addition", "x", 1)
            E.op("Division", 1, E.op("Addition", "x", 1))
        """
        return Expression(ALIASES.get(tag, tag), [to_expression(arg) for arg in args])

    def num(self, value: Union[int, float, str, Number]) -> Expression:
        """
        Create a Number node.

        Example:
            E.num(5), E.num("1/3"), E.num(Fraction(1, 3)), E.num("2.50")
        """
        return Expression.number(value)

    def sym(self, name: str) -> Expression:
        return Expression.symbol(name)

    def vars(self, *names: str) -> Tuple[Expression, ...]:
        """
        Create multiple symbols for unpacking.

        Example:
            x, y, z = E.vars("x", "y", "z")
        """
        return tuple(Expression.symbol(name) for name in names)

    def str(self, text: str) -> Expression:
        return Expression.string(text)

    def list(self, *items) -> Expression:
        return Expression.list([to_expression(item) for item in items])

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()
