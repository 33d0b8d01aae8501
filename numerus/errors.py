"""
Error taxonomy for NUMERUS.

Two families of errors exist:

    ReductionError      aborts the whole top-level reduction request.
                        ValidationError is the usual subclass: an operand is out
                        of domain, and the offending node is annotated through
                        set_in_error() before the error propagates.

    NumericError        signals raised by the numeric tower. Reducers catch them
                        locally: Domain/Overflow/Underflow become an Undefined
                        result node, NonNumericError makes the reducer decline.
"""

from typing import Optional

ERROR_ATTRIBUTE = "Error"


def set_in_error(node, message: str) -> None:
    """Annotate a subexpression with an error message for display."""
    if node is not None:
        node.set(ERROR_ATTRIBUTE, message)


class ReductionError(Exception):
    "Aborts the current top-level reduction."

    def __init__(self, message: str = "", node=None):
        super().__init__(message)
        self.message = message
        self.node = node


class ValidationError(ReductionError):
    "An operand is outside the domain of the operation."

    def __init__(self, node, message: str):
        set_in_error(node, message)
        super().__init__(message, node)


class NumericError(ArithmeticError):
    "Base class for signals raised by the numeric tower."

    def __init__(self, message: str = "", operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class DomainError(NumericError):
    "The operation has no (real) value for the given operands."
    pass


class NumericOverflowError(NumericError):
    "The result is too large to represent."
    pass


class NumericUnderflowError(NumericError):
    "The result is too small to represent."
    pass


class NonNumericError(NumericError):
    "An operand is not a number the operation can act on."
    pass
