"""
Reduction engine for NUMERUS.

A reducer is a plain function registered for one tag:

    def addition_fold(node: Expression, session: Session) -> bool:
        ...

It returns True when it rewrote the node (usually through node.replace_by()),
or False when it declines. A reducer that declines may still have normalized
the node in place. Reducers for a tag run in precedence order (HIGH, NORMAL,
LOW), ties broken by registration order, until one returns True.

Special reducers run before the node's children are reduced, and take care of
reducing the children themselves. Summation, Piecewise and WithPrecision are
special: they control when and under which bindings their operands reduce.

Example:
    from numerus import ReductionEngine, E
    from numerus.prelude import ARITHMETIC

    engine = ReductionEngine().load(ARITHMETIC)
    engine(E("(Addition 1 2 x)"))              # (Addition 3 x)
    engine("(Division 1 3)", precision=5)      # 1/3

Tracing:
    result, trace = engine.reduce(expr, trace=True)
    print(trace.format("chain"))
"""

import logging
from enum import IntEnum
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

from .expression import Expression, format_sexpr, parse_sexpr


ReducerFunc = Callable[[Expression, 'Session'], bool]

SYMBOLIC = "symbolic"


class Precedence(IntEnum):
    """Order in which reducers for the same tag are tried."""
    LOW = -1
    NORMAL = 0
    HIGH = 1


class ReducerMetadata:
    """Metadata for a reducer: tag, name, description, precedence and groups."""

    def __init__(self, tag: str, name: str, description: Optional[str] = None,
                 special: bool = False, precedence: Precedence = Precedence.NORMAL,
                 groups: Optional[List[str]] = None):
        self.tag = tag
        self.name = name
        self.description = description
        self.special = special
        self.precedence = Precedence(precedence)
        self.groups = groups or []

    def __repr__(self) -> str:
        base = f"@{self.name}"
        if self.precedence != Precedence.NORMAL:
            base += f"[{self.precedence.name}]"
        if self.special:
            base += " (special)"
        if self.description:
            base += f" \"{self.description}\""
        return base


class ReductionStep:
    """A single step in a reduction trace."""

    def __init__(self, metadata: ReducerMetadata, before: Expression, after: Expression):
        self.metadata = metadata
        self.before = before
        self.after = after

    def __repr__(self) -> str:
        return f"{self.metadata.name}: {format_sexpr(self.before)} → {format_sexpr(self.after)}"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "reducer": self.metadata.name,
            "tag": self.metadata.tag,
            "description": self.metadata.description,
            "before": format_sexpr(self.before),
            "after": format_sexpr(self.after),
        }


class ReductionTrace:
    """
    A trace of all reduction steps applied.

    Provides multiple formatting options:
        - Default repr: verbose multi-line format
        - format("compact"): single line showing the reducer chain
        - format("reducers"): just the reducer names applied
        - format("chain"): each subtree rewrite, one per line
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[ReductionStep] = []
        self.initial: Optional[Expression] = None
        self.final: Optional[Expression] = None

    def add_step(self, step: ReductionStep):
        self.steps.append(step)

    def _format(self, expr: Optional[Expression]) -> str:
        return format_sexpr(expr) if expr is not None else "?"

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace in different styles.

        Args:
            style: One of "verbose", "compact", "reducers", "chain"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            names = self.reducers_applied()
            return f"{self._format(self.initial)} --[{', '.join(names)}]--> {self._format(self.final)}"

        elif style == "reducers":
            names = self.reducers_applied()
            return " -> ".join(names) if names else "(no reducers applied)"

        elif style == "chain":
            if not self.steps:
                return self._format(self.initial)
            parts = [self._format(self.initial)]
            for step in self.steps:
                parts.append(f"  {format_sexpr(step.before)}")
                parts.append(f"    --({step.metadata.name})--> {format_sexpr(step.after)}")
            parts.append(self._format(self.final))
            return "\n".join(parts)

        else:  # verbose (default)
            return repr(self)

    def __repr__(self) -> str:
        lines = [f"Initial: {self._format(self.initial)}"]
        for i, step in enumerate(self.steps, 1):
            if step.metadata.description:
                lines.append(f"  {i}. {step} ({step.metadata.description})")
            else:
                lines.append(f"  {i}. {step}")
        lines.append(f"Final: {self._format(self.final)}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        """Iterate over reduction steps."""
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any reduction was done."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": self._format(self.initial),
            "final": self._format(self.final),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
        }

    def reducer_counts(self) -> Dict[str, int]:
        """Count how many times each reducer was applied."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.metadata.name] = counts.get(step.metadata.name, 0) + 1
        return counts

    def reducers_applied(self) -> List[str]:
        """Get list of reducer names in order of application."""
        return [s.metadata.name for s in self.steps]

    def summary(self) -> str:
        """Get a brief summary of the reduction."""
        if not self.steps:
            return "No reduction performed"
        counts = self.reducer_counts()
        most_used = max(counts.items(), key=lambda x: x[1])
        return (f"{len(self.steps)} steps using {len(counts)} unique reducers. "
                f"Most used: {most_used[0]} ({most_used[1]}x)")


class ReductionEngine:
    """
    A registry of reducers keyed by tag, and the entry point for reduction.

    Reducers are registered one by one with add_reducer(), or in bulk by
    loading a registration function:

        engine = ReductionEngine().load(ARITHMETIC)

    Structural rules live in the "symbolic" group; disabling that group (or
    reducing with no_symbolic=True) leaves only numeric evaluation.
    """

    def __init__(self):
        self._reducers: Dict[str, List[Tuple[ReducerFunc, ReducerMetadata]]] = {}
        self._names: Dict[str, Tuple[ReducerFunc, ReducerMetadata]] = {}
        self._disabled_groups: Set[str] = set()
        self._logger = logging.getLogger("ReductionEngine")

    def _sort_by_precedence(self, tag: str) -> None:
        """Sort a tag's reducers by precedence (descending).

        Uses stable sort, so reducers with equal precedence keep registration order.
        """
        self._reducers[tag].sort(key=lambda entry: -entry[1].precedence)

    def add_reducer(self, tag: str, fn: ReducerFunc, name: str,
                    description: Optional[str] = None, special: bool = False,
                    precedence: Precedence = Precedence.NORMAL,
                    groups: Optional[List[str]] = None) -> 'ReductionEngine':
        """Register a reducer for a tag."""
        if name in self._names:
            raise ValueError(f"A reducer named '{name}' is already registered")
        metadata = ReducerMetadata(tag, name, description, special, precedence, groups)
        entry = (fn, metadata)
        self._reducers.setdefault(tag, []).append(entry)
        self._names[name] = entry
        self._sort_by_precedence(tag)
        self._logger.debug("Registered %s for %s", metadata, tag)
        return self

    def load(self, register: Callable[['ReductionEngine'], None]) -> 'ReductionEngine':
        """
        Load reducers from a registration function.

        Enables fluent construction:
            engine = ReductionEngine().load(arithmetic.register).load(my_rules)
        """
        register(self)
        return self

    def get_reducer(self, name: str) -> Optional[Tuple[ReducerFunc, ReducerMetadata]]:
        """Get a reducer and its metadata by name."""
        return self._names.get(name)

    def reducers_for(self, tag: str) -> List[Tuple[ReducerFunc, ReducerMetadata]]:
        """All reducers for a tag, in the order they are tried."""
        return list(self._reducers.get(tag, []))

    def tags(self) -> List[str]:
        return sorted(self._reducers)

    # ============================================================
    # Group Management
    # ============================================================

    def disable_group(self, group: str) -> 'ReductionEngine':
        """Disable all reducers in a group."""
        self._disabled_groups.add(group)
        self._logger.debug("Disabled group %s", group)
        return self

    def enable_group(self, group: str) -> 'ReductionEngine':
        """Enable all reducers in a group."""
        self._disabled_groups.discard(group)
        self._logger.debug("Enabled group %s", group)
        return self

    def groups(self) -> set:
        """Return all group names used by reducers."""
        all_groups = set()
        for _, meta in self._names.values():
            all_groups.update(meta.groups)
        return all_groups

    def disabled_groups(self) -> set:
        return set(self._disabled_groups)

    def is_active(self, metadata: ReducerMetadata, no_symbolic: bool = False) -> bool:
        """Check if a reducer should be tried given the current group settings.

        Args:
            metadata: The reducer's metadata
            no_symbolic: If True, reducers in the "symbolic" group are skipped too.

        Returns:
            True if the reducer should be tried, False if it should be skipped.
        """
        if not metadata.groups:
            return True
        if no_symbolic and SYMBOLIC in metadata.groups:
            return False
        return not any(g in self._disabled_groups for g in metadata.groups)

    # ============================================================
    # Reduction
    # ============================================================

    def session(self, **options) -> 'Session':
        """Create a Session bound to this engine."""
        from .session import Session
        return Session(self, **options)

    def reduce(self, expr: Union[Expression, str], trace: bool = False, **options):
        """
        Reduce an expression to normal form.

        The input is cloned first; the caller's tree is never modified.

        Args:
            expr: Expression or s-expression string
            trace: If True, return (result, trace) tuple
            **options: Session options (precision, rounding, euclidean_mode,
                numeric, no_symbolic, seed, max_steps)

        Returns:
            Reduced expression, or (expression, trace) if trace=True
        """
        if isinstance(expr, str):
            expr = parse_sexpr(expr)
        session = self.session(trace=trace, **options)
        result = session.reduce_and_get(expr.clone())
        if trace:
            session.trace.initial = expr.clone()
            session.trace.final = result.clone()
            return result, session.trace
        return result

    def clear(self) -> 'ReductionEngine':
        """Remove all reducers."""
        self._reducers = {}
        self._names = {}
        return self

    def list_reducers(self) -> List[str]:
        """List all reducers, grouped by tag, in the order they are tried."""
        result = []
        for tag in self.tags():
            for _, meta in self._reducers[tag]:
                line = f"{tag} {meta}"
                if meta.groups:
                    line += f" [{', '.join(meta.groups)}]"
                result.append(line)
        return result

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"ReductionEngine({len(self._names)} reducers for {len(self._reducers)} tags)"

    def __call__(self, expr: Union[Expression, str], **kwargs):
        """Make engine callable: engine(expr) is shorthand for engine.reduce(expr)."""
        return self.reduce(expr, **kwargs)

    def __iter__(self) -> Iterator[Tuple[ReducerFunc, ReducerMetadata]]:
        """Iterate over (function, metadata) pairs in registration order."""
        return iter(list(self._names.values()))

    def __contains__(self, name: str) -> bool:
        """Check if a named reducer exists: 'addition-fold' in engine."""
        return name in self._names

    def __getitem__(self, name: str) -> Tuple[ReducerFunc, ReducerMetadata]:
        """Get reducer by name: engine['addition-fold']."""
        if name not in self._names:
            raise KeyError(f"No reducer named '{name}'")
        return self._names[name]

    # Combining engines
    def copy(self) -> 'ReductionEngine':
        """Create a copy of this engine."""
        new_engine = ReductionEngine()
        new_engine._reducers = {tag: list(entries) for tag, entries in self._reducers.items()}
        new_engine._names = dict(self._names)
        new_engine._disabled_groups = set(self._disabled_groups)
        return new_engine

    def _merge(self, other: 'ReductionEngine') -> None:
        for fn, meta in other:
            if meta.name in self._names:
                continue
            self.add_reducer(meta.tag, fn, meta.name, meta.description, meta.special,
                             meta.precedence, meta.groups)

    def __or__(self, other: 'ReductionEngine') -> 'ReductionEngine':
        """Union of two engines: engine1 | engine2. Names already present are kept."""
        result = self.copy()
        result._merge(other)
        return result

    def __ior__(self, other: 'ReductionEngine') -> 'ReductionEngine':
        """In-place union: engine1 |= engine2."""
        self._merge(other)
        return self
