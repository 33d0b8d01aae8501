"""
Iteration constructs and scoped symbols.

Summation and Product come in three forms:

    (Summation body 3)              body + body + body
    (Summation k k 1 10 [step])     k bound to 1, 2, ..., 10; from and step default to 1
    (Product k k (List 2 3 5))      k bound to each element in turn

The result node carries the scope binding the symbol while each copy of the
body is reduced; Symbol nodes resolve through the nearest visible scope of
their ancestors.

    (Piecewise value1 guard1 value2 guard2 ... [otherwise])

Guards are reduced in order and the first True one selects its value.
"""

from .arithmetic import replace_with_number
from .engine import ReductionEngine
from .errors import ValidationError
from .expression import (
    ADDITION, FALSE, LIST, MULTIPLICATION, NULL, SYMBOL, TRUE, Expression, ScopeEntry, number_of,
)
from .tower import ONE, ZERO, Complex, Integer, add, compare


def _is_summation(node: Expression) -> bool:
    return node.tag == "Summation"


def _new_result(node: Expression) -> Expression:
    return Expression(ADDITION if _is_summation(node) else MULTIPLICATION)


def _collapse(result: Expression, summation: bool) -> None:
    """Empty results become the identity element, single results their child."""
    if not result.children:
        replace_with_number(result, ZERO if summation else ONE)
    elif len(result.children) == 1:
        result.replace_by(result.children[0])


def _real(node: Expression):
    number = number_of(node)
    return None if number is None or isinstance(number, Complex) else number


# ============================================================
# Summation and Product
# ============================================================

def replicate(node, session) -> bool:
    """(Summation body N): N copies of body."""
    if len(node.children) != 2:
        return False
    session.reduce_child(node, 0)
    session.reduce_child(node, 1)
    count = number_of(node.children[1])
    if not isinstance(count, Integer):
        return False

    body = node.children[0]
    result = node.replace_by(_new_result(node))
    for _ in range(count.value):
        result.add_child(body.clone())
    _collapse(result, _is_summation(node))
    return True


def indexed(node, session) -> bool:
    """(Summation body symbol [from] to [step]) over a numeric range."""
    n = len(node.children)
    if not 3 <= n <= 5 or node.children[1].tag != SYMBOL:
        return False
    for i in range(2, n):
        session.reduce_child(node, i)

    start = _real(node.children[2]) if n >= 4 else ONE
    end = _real(node.children[2 if n == 3 else 3])
    step = _real(node.children[4]) if n == 5 else ONE
    if start is None or end is None or step is None or step.is_zero():
        return False
    descending = step.is_negative()

    body = node.children[0]
    result = node.replace_by(_new_result(node))
    result.create_scope()
    entry = ScopeEntry()
    result.put_into_scope(node.children[1].name, entry)

    context = session.context
    value = start
    while True:
        order = compare(value, end)
        if (descending and order < 0) or (not descending and order > 0):
            break
        entry.set_value(Expression.number(value))
        copy = body.clone()
        result.add_child(copy)
        session.reduce_child(result, len(result.children) - 1)
        value = add(value, step, context)

    result.remove_scope()
    _collapse(result, _is_summation(node))
    return True


def over_list(node, session) -> bool:
    """(Summation body symbol list): symbol bound to each element of list."""
    if len(node.children) != 3 or node.children[1].tag != SYMBOL:
        return False
    session.reduce_child(node, 2)
    items = node.children[2]
    if items.tag != LIST:
        return False

    body = node.children[0]
    result = node.replace_by(_new_result(node))
    result.create_scope()
    entry = ScopeEntry()
    result.put_into_scope(node.children[1].name, entry)
    result.lock_scope()

    for i, item in enumerate(items.children):
        entry.set_value(item.clone())
        result.add_child(body.clone())
        result.unlock_scope()
        session.reduce_child(result, i)
        result.lock_scope()

    result.remove_scope()
    _collapse(result, _is_summation(node))
    return True


# ============================================================
# Piecewise
# ============================================================

def piecewise(node, session) -> bool:
    """Select the value of the first True guard, else the otherwise clause."""
    backup = None
    for c in range(len(node.children) // 2):
        position = 2 * c + 1
        if c == 0:
            backup = node.children[position].clone()
        session.reduce_child(node, position)
        guard = node.children[position]

        if guard.tag == TRUE:
            node.replace_by(node.children[position - 1])
            return True
        if guard.tag == FALSE:
            continue
        if c == 0:
            node.set_child(position, backup)
            return False
        raise ValidationError(guard, "Expression must be boolean")

    if len(node.children) % 2:
        node.replace_by(node.children[-1])
    else:
        node.replace_by(Expression(NULL))
    return True


# ============================================================
# Symbols
# ============================================================

def symbol(node, session) -> bool:
    """A Symbol reduces to the value bound in the nearest visible scope."""
    entry = node.lookup(node.name)
    if entry is None or entry.value is None:
        return False
    node.replace_by(entry.value.clone())
    return True


def register(engine: ReductionEngine) -> None:
    """Register the iteration reducers."""
    for tag in ("Summation", "Product"):
        prefix = tag.lower()
        engine.add_reducer(tag, replicate, f"{prefix}-replicate",
                           f"{tag} of N copies of an expression", special=True)
        engine.add_reducer(tag, indexed, f"{prefix}-indexed",
                           f"{tag} over a numeric range", special=True)
        engine.add_reducer(tag, over_list, f"{prefix}-list",
                           f"{tag} over the elements of a list", special=True)
    engine.add_reducer("Piecewise", piecewise, "piecewise",
                       "Value of the first true guard", special=True)
    engine.add_reducer(SYMBOL, symbol, "symbol-lookup", "Value bound in an enclosing scope")
