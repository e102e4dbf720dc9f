"""
Utilities module for the Logo interpreter
Contains common helper functions to reduce code duplication
"""

from typing import Any, Callable, List, Optional

from error_handling import (
  LogoRuntimeError,
  RUNTIME_ARG_COUNT_MISMATCH,
  RUNTIME_CALL_DEPTH_EXCEEDED,
  RUNTIME_DIVISION_BY_ZERO,
  RUNTIME_OTHER,
  RUNTIME_PROCEDURE_NOT_FOUND,
  RUNTIME_REDECLARED_PROCEDURE,
  RUNTIME_TYPE_MISMATCH,
  RUNTIME_VARIABLE_NOT_FOUND,
)


# ==================== TYPE CHECKING UTILITIES ====================

def is_integer_value(val: Any) -> bool:
  """
  Check if value is a Logo integer

  Args:
    val: Value to check

  Returns:
    True if val is an int (booleans are not Logo integers)
  """
  return isinstance(val, int) and not isinstance(val, bool)


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(name: str, expected: str, actual: Any) -> LogoRuntimeError:
  """
  Generate type mismatch error

  Args:
    name: Name of the variable or operation involved
    expected: Expected type
    actual: Actual value

  Returns:
    LogoRuntimeError with formatted message
  """
  return LogoRuntimeError(
    RUNTIME_TYPE_MISMATCH,
    f"{name} requires {expected}, got {type(actual).__name__}",
    name=name
  )


def arity_error(name: str, expected: int, got: int) -> LogoRuntimeError:
  """
  Generate arity mismatch error

  Args:
    name: Command or procedure name
    expected: Expected number of arguments
    got: Actual number of arguments

  Returns:
    LogoRuntimeError with formatted message
  """
  return LogoRuntimeError(
    RUNTIME_ARG_COUNT_MISMATCH,
    f"{name} requires {expected} arguments, got {got}",
    name=name,
    expected=expected,
    got=got
  )


def redeclared_procedure_error(name: str) -> LogoRuntimeError:
  return LogoRuntimeError(
    RUNTIME_REDECLARED_PROCEDURE, f"Procedure '{name}' is already declared", name=name
  )


def procedure_not_found_error(name: str) -> LogoRuntimeError:
  return LogoRuntimeError(
    RUNTIME_PROCEDURE_NOT_FOUND, f"Procedure '{name}' not found", name=name
  )


def variable_not_found_error(name: str) -> LogoRuntimeError:
  return LogoRuntimeError(
    RUNTIME_VARIABLE_NOT_FOUND, f"Variable '{name}' not found", name=name
  )


def division_by_zero_error(dividend: int) -> LogoRuntimeError:
  return LogoRuntimeError(
    RUNTIME_DIVISION_BY_ZERO, f"Cannot divide {dividend} by zero"
  )


def call_depth_error(limit: Optional[int] = None) -> LogoRuntimeError:
  if limit is None:
    message = "Maximum procedure call depth exceeded"
  else:
    message = f"Maximum procedure call depth of {limit} exceeded"
  return LogoRuntimeError(RUNTIME_CALL_DEPTH_EXCEEDED, message, expected=limit)


def internal_error(message: str) -> LogoRuntimeError:
  """Invariant violations inside the interpreter itself, not user errors"""
  return LogoRuntimeError(RUNTIME_OTHER, message)


# ==================== INTEGER HELPERS ====================

def truncating_div(dividend: int, divisor: int) -> int:
  """
  Integer division rounding toward zero

  Python's // floors, so the quotient is computed on magnitudes and the
  sign applied afterwards.

  Raises:
    LogoRuntimeError if divisor is zero
  """
  if divisor == 0:
    raise division_by_zero_error(dividend)
  quotient = abs(dividend) // abs(divisor)
  return quotient if (dividend < 0) == (divisor < 0) else -quotient


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[int, int], int],
  op_name: str
) -> Callable[[int, int], int]:
  """
  Factory for binary integer arithmetic operations

  Args:
    op: Python operator function (e.g., operator.add)
    op_name: Name for error messages

  Returns:
    Function that performs the arithmetic operation

  Examples:
    logo_add = binary_arithmetic_op(operator.add, "add")
    logo_add(1, 2) -> 3
  """
  def arithmetic(x: int, y: int) -> int:
    for operand in (x, y):
      if not is_integer_value(operand):
        raise type_mismatch_error(op_name, "Number", operand)
    return op(x, y)

  arithmetic.__name__ = f"logo_{op_name}"
  return arithmetic


def validate_arg_count(name: str, args: List[Any], expected: int) -> None:
  """
  Validate the number of supplied arguments

  Raises:
    LogoRuntimeError if the count differs from expected
  """
  if len(args) != expected:
    raise arity_error(name, expected, len(args))
