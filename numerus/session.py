"""
Reduction session for NUMERUS.

A Session is the per-request context passed to every reducer. It holds the
numeric settings (precision, rounding mode, Euclidean division mode, numeric
mode), the random number generator and the optional trace, and it performs the
bottom-up reduction walk.

Scoped overrides restore the previous value on every exit path:

    with session.scoped_precision(50):
        session.reduce(node)

    with session.numeric_mode():
        session.reduce(node)
"""

import logging
import random
from contextlib import contextmanager
from typing import List, Optional, Tuple, Union

from .engine import ReducerFunc, ReducerMetadata, ReductionEngine, ReductionStep, ReductionTrace
from .errors import NonNumericError, NumericError, ReductionError
from .expression import UNDEFINED, Expression, format_sexpr
from .tower import MAX_PRECISION, NumericContext, RoundingMode


DEFAULT_PRECISION = 20
DEFAULT_ROUNDING = RoundingMode.HALF_AWAY_FROM_ZERO
DEFAULT_EUCLIDEAN_MODE = RoundingMode.TOWARDS_ZERO
DEFAULT_MAX_STEPS = 10000000

_ROOT = "Root"


def coerce_mode(mode: Union[RoundingMode, str], allow_euclidean: bool = False) -> RoundingMode:
    """Accept a RoundingMode or any name RoundingMode.from_name() understands."""
    if isinstance(mode, str):
        resolved = RoundingMode.from_name(mode)
        if resolved is None:
            raise ValueError(f"Unknown rounding mode: {mode}")
        mode = resolved
    if mode is RoundingMode.EUCLIDEAN and not allow_euclidean:
        raise ValueError("EuclideanMode is only valid as a division mode")
    return mode


def check_precision(precision: int) -> int:
    if isinstance(precision, bool) or not isinstance(precision, int):
        raise ValueError(f"Precision must be an integer, not {precision!r}")
    if not 1 <= precision <= MAX_PRECISION:
        raise ValueError(f"Precision must be between 1 and {MAX_PRECISION}")
    return precision


class Session:
    """
    Context of one top-level reduction.

    Args:
        engine: The ReductionEngine supplying the reducers
        precision: Significant digits of Decimal results
        rounding: Rounding mode of Decimal results
        euclidean_mode: Quotient rounding of Div, Mod and DivMod
        numeric: Evaluate exact-but-irrational results as Decimals
        no_symbolic: Skip the structural reducers of the "symbolic" group
        seed: Seed of the session random number generator
        max_steps: Maximum number of successful rewrites
        trace: Record a ReductionTrace
    """

    def __init__(self, engine: ReductionEngine, precision: int = DEFAULT_PRECISION,
                 rounding: Union[RoundingMode, str] = DEFAULT_ROUNDING,
                 euclidean_mode: Union[RoundingMode, str] = DEFAULT_EUCLIDEAN_MODE,
                 numeric: bool = False, no_symbolic: bool = False,
                 seed: Optional[int] = None, max_steps: int = DEFAULT_MAX_STEPS,
                 trace: bool = False):
        self.engine = engine
        self.precision = check_precision(precision)
        self.rounding = coerce_mode(rounding)
        self.euclidean_mode = coerce_mode(euclidean_mode, allow_euclidean=True)
        self.numeric = numeric
        self.no_symbolic = no_symbolic
        self.random = random.Random(seed)
        self.max_steps = max_steps
        self.steps = 0
        self.trace: Optional[ReductionTrace] = ReductionTrace() if trace else None
        self._logger = logging.getLogger("Session")

    @property
    def context(self) -> NumericContext:
        """The numeric context for the current precision and rounding mode."""
        return NumericContext(self.precision, self.rounding)

    # ============================================================
    # Settings
    # ============================================================

    def set_precision(self, precision: int) -> None:
        self.precision = check_precision(precision)

    def set_rounding(self, mode: Union[RoundingMode, str]) -> None:
        self.rounding = coerce_mode(mode)

    def set_euclidean_mode(self, mode: Union[RoundingMode, str]) -> None:
        self.euclidean_mode = coerce_mode(mode, allow_euclidean=True)

    @contextmanager
    def scoped_precision(self, precision: int):
        """Temporarily change the precision."""
        previous = self.precision
        self.precision = check_precision(precision)
        self._logger.debug("Precision %s -> %s", previous, precision)
        try:
            yield self
        finally:
            self.precision = previous

    @contextmanager
    def scoped_rounding(self, mode: Union[RoundingMode, str]):
        """Temporarily change the rounding mode."""
        previous = self.rounding
        self.rounding = coerce_mode(mode)
        self._logger.debug("Rounding %s -> %s", previous.label, self.rounding.label)
        try:
            yield self
        finally:
            self.rounding = previous

    @contextmanager
    def numeric_mode(self, enabled: bool = True):
        """Temporarily switch numeric mode on (or off)."""
        previous = self.numeric
        self.numeric = enabled
        try:
            yield self
        finally:
            self.numeric = previous

    # ============================================================
    # Reduction walk
    # ============================================================

    def _active(self, tag: str, special: bool) -> List[Tuple[ReducerFunc, ReducerMetadata]]:
        return [(fn, meta) for fn, meta in self.engine.reducers_for(tag)
                if meta.special == special and self.engine.is_active(meta, self.no_symbolic)]

    def _run(self, fn: ReducerFunc, meta: ReducerMetadata, node: Expression,
             parent: Expression, index: int) -> bool:
        before = node.clone() if self.trace is not None else None
        try:
            handled = fn(node, self)
        except NonNumericError:
            handled = False
        except NumericError as e:
            self._logger.debug("%s: %s signalled %s", meta.tag, meta.name, e)
            parent.children[index].replace_by(Expression(UNDEFINED))
            handled = True
        if not handled:
            return False

        self.steps += 1
        if self.steps > self.max_steps:
            self._logger.warning("Reduction aborted after %s steps in %s", self.max_steps, meta.name)
            raise ReductionError(f"Reduction exceeded {self.max_steps} steps", node)
        after = parent.children[index]
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("%s: %s handled %s", meta.tag, meta.name, format_sexpr(after))
        if self.trace is not None:
            self.trace.add_step(ReductionStep(meta, before, after.clone()))
        return True

    def _apply(self, node: Expression, parent: Expression, index: int, special: bool) -> bool:
        for fn, meta in self._active(node.tag, special):
            if self._run(fn, meta, node, parent, index):
                return True
        return False

    def reduce(self, node: Expression) -> None:
        """Reduce an attached expression in place."""
        parent = node.parent
        if parent is None:
            raise ValueError("Only an attached expression can be reduced in place")
        self.reduce_child(parent, node.index)

    def reduce_child(self, parent: Expression, index: int) -> None:
        """
        Reduce parent.children[index] in place.

        Special reducers for the node's tag run first. If none handles the node,
        the children are reduced left to right, then the normal reducers run in
        precedence order until one returns True. Whatever a successful reducer
        leaves at the node's position is reduced again.

        The walk keeps its own stack of [parent, index, next child] frames, so
        the depth of the tree is not bounded by the interpreter's call stack.
        A next child of None means the node has not been offered to the special
        reducers yet.
        """
        stack = [[parent, index, None]]
        while stack:
            frame = stack[-1]
            owner, position, next_child = frame
            node = owner.children[position]
            if next_child is None:
                if not self._apply(node, owner, position, special=True):
                    frame[2] = 0
            elif next_child < len(node.children):
                frame[2] = next_child + 1
                stack.append([node, next_child, None])
            elif self._apply(node, owner, position, special=False):
                frame[2] = None
            else:
                stack.pop()

    def reduce_and_get(self, node: Expression) -> Expression:
        """Reduce a detached expression and return the result, detached."""
        if node.parent is not None:
            raise ValueError("reduce_and_get() expects a detached expression")
        root = Expression(_ROOT, [node])
        try:
            self.reduce_child(root, 0)
        except RecursionError as e:
            raise ReductionError("Expression is nested too deeply", node) from e
        return root.remove_child_at(0)

    def __repr__(self) -> str:
        return (f"Session(precision={self.precision}, rounding={self.rounding.label}, "
                f"euclidean={self.euclidean_mode.label}, numeric={self.numeric})")
