"""
Utilities module for LISQ
Common helpers shared by the analyzer, the interpreter and the builtins
"""

from typing import Any, Callable, Dict, Optional, Sequence
import operator

from error_handling import LisqRuntimeError, TypeMismatch


# ==================== PAYLOAD UTILITIES ====================

def is_tagged(item: Any, tag: Optional[str] = None) -> bool:
  """True for a parser payload ("TAG", data), optionally with the given tag"""
  if not (isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str)):
    return False
  return tag is None or item[0] == tag


def payload_data(item: Any, tag: str, default: Any = None) -> Any:
  """
  Data half of a parser payload when its tag matches

  Examples:
    payload_data(("IDENTIFIER", "elems"), "IDENTIFIER") -> "elems"
    payload_data(("STRING", "elems"), "IDENTIFIER") -> None
  """
  return item[1] if is_tagged(item, tag) else default


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(func_name: str, param_name: str, expected: str, actual: Any) -> TypeMismatch:
  """
  Generate type mismatch error for a builtin argument

  Args:
    func_name: Function name
    param_name: Parameter name
    expected: Expected type or capability
    actual: Actual value

  Returns:
    TypeMismatch naming the operation
  """
  return TypeMismatch(expected, type(actual).__name__, f"{func_name} ({param_name})")


def arity_error(func_name: str, expected: str, got: int) -> LisqRuntimeError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    expected: Description of the accepted argument count
    got: Actual number of positional arguments

  Returns:
    LisqRuntimeError with formatted message
  """
  return LisqRuntimeError(f"{func_name} requires {expected} positional arguments, got {got}")


def unknown_named_error(func_name: str, names: Sequence[str]) -> LisqRuntimeError:
  return LisqRuntimeError(f"{func_name} does not accept named arguments: {', '.join(sorted(names))}")


# ==================== VALIDATION UTILITIES ====================

def describe_arity(min_args: int, max_args: Optional[int]) -> str:
  """
  Examples:
    describe_arity(1, 1) -> "1"
    describe_arity(1, 2) -> "1 to 2"
    describe_arity(0, None) -> "at least 0"
  """
  if max_args is None:
    return f"at least {min_args}"
  if min_args == max_args:
    return str(min_args)
  return f"{min_args} to {max_args}"


def validate_function_args(
  func_name: str,
  positional: Sequence[Any],
  named: Dict[str, Any],
  min_args: int,
  max_args: Optional[int],
  allowed_named: Sequence[str] = ()
) -> None:
  """
  Validate a call's positional count and named argument names

  Raises:
    LisqRuntimeError if validation fails
  """
  count = len(positional)
  if count < min_args or (max_args is not None and count > max_args):
    raise arity_error(func_name, describe_arity(min_args, max_args), count)

  unknown = [name for name in named if name not in allowed_named]
  if unknown:
    raise unknown_named_error(func_name, unknown)


def require_int(func_name: str, param_name: str, value: Any, minimum: Optional[int] = None) -> int:
  """Check value is an Int (not a Bool), optionally bounded below"""
  if not isinstance(value, int) or isinstance(value, bool):
    raise type_mismatch_error(func_name, param_name, "Int", value)
  if minimum is not None and value < minimum:
    raise LisqRuntimeError(f"{func_name} requires {param_name} >= {minimum}, got {value}")
  return value


# ==================== WHATEVER CODE ====================

WHATEVER_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '%': operator.mod,
}


class WhateverCode:
  """
  One-argument callable built from '*' and an operator, e.g. *-1

  Used as a subscript it is called with the number of elements, so
  @a[*-1] is the last element.
  """

  def __init__(self, op: str, operand: Any):
    if op not in WHATEVER_OPERATORS:
      raise LisqRuntimeError(f"Unsupported whatever operator: {op}")
    self.op = op
    self.operand = operand

  def __call__(self, value: Any) -> Any:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
      raise TypeMismatch("Numeric", type(value).__name__, f"*{self.op}{self.operand}")
    return WHATEVER_OPERATORS[self.op](value, self.operand)

  def __repr__(self) -> str:
    return f"*{self.op}{self.operand}"
