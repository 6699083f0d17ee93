"""
Utilities module for the lamb interpreter
Contains common helper functions shared by the interpreter and the builtin capabilities
"""

from typing import Any, Callable, Dict
from decimal import Decimal
import math
import operator

from error_handling import LambEvaluationError


U64_MAX = 2 ** 64 - 1


# ==================== VALUE UTILITIES ====================

def is_value_dict(val: Any) -> bool:
  """Check whether val is a runtime value dict"""
  return isinstance(val, dict) and 'type' in val


def is_literal(val: Dict, number: float = None) -> bool:
  """
  Check whether val is a numeric literal value

  Args:
    val: Runtime value dict
    number: When given, the literal must also equal this number

  Examples:
    is_literal({"type": "Literal", "value": 0.0}) -> True
    is_literal({"type": "Literal", "value": 0.0}, 1) -> False
    is_literal({"type": "Unit", "value": None}) -> False
  """
  if not is_value_dict(val) or val['type'] != 'Literal':
    return False
  return number is None or val['value'] == number


def describe_value(val: Dict) -> str:
  """Short human readable description of a runtime value"""
  if not is_value_dict(val):
    return repr(val)
  if val['type'] == 'Literal':
    return format_number(val['value'])
  if val['type'] == 'Closure':
    return f"<closure λ{val['param']}>"
  if val['type'] == 'Recursion':
    return "<recursion>"
  return f"<{val['type'].lower()}>"


# ==================== NUMERIC CONVERSION ====================

def to_u64(number: float) -> int:
  """
  Saturating float to unsigned 64-bit conversion

  NaN and negatives become 0, fractions are truncated toward zero,
  values past the range clamp to U64_MAX.
  """
  if math.isnan(number) or number <= 0:
    return 0
  if math.isinf(number) or number >= U64_MAX:
    return U64_MAX
  return int(number)


def format_number(number: float) -> str:
  """
  Decimal text form of a number without exponent or trailing '.0'

  Examples:
    format_number(5.0) -> "5"
    format_number(0.1) -> "0.1"
    format_number(1e21) -> "1000000000000000000000"
  """
  if math.isnan(number):
    return "NaN"
  if math.isinf(number):
    return "inf" if number > 0 else "-inf"

  text = format(Decimal(repr(float(number))), 'f')
  if '.' in text:
    text = text.rstrip('0').rstrip('.')
  return text


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(context: str, expected: str, actual: Dict) -> LambEvaluationError:
  """
  Generate type mismatch error

  Args:
    context: What was being evaluated
    expected: Expected value description
    actual: Actual value dict

  Returns:
    LambEvaluationError with formatted message
  """
  return LambEvaluationError(
    f"{context} expected {expected}, got {describe_value(actual)}"
  )


def unbound_error(name: str) -> LambEvaluationError:
  return LambEvaluationError(f"Unbound binding: {name}")


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(op: Callable[[float, float], float]) -> Callable[[float, float], float]:
  """
  Factory for floating point arithmetic that follows IEEE semantics

  Division by zero yields an infinity or NaN instead of raising.
  """
  def arithmetic(x: float, y: float) -> float:
    try:
      return op(x, y)
    except ZeroDivisionError:
      if x == 0 or math.isnan(x):
        return math.nan
      return math.copysign(math.inf, x) * math.copysign(1.0, y)
    except OverflowError:
      return math.copysign(math.inf, x)

  return arithmetic


def binary_bitwise_op(op: Callable[[int, int], int]) -> Callable[[float, float], float]:
  """
  Factory for bitwise operations over floats

  Both operands go through the saturating u64 conversion, the result
  comes back as a float.

  Examples:
    binary_bitwise_op(operator.and_)(6.0, 3.0) -> 2.0
  """
  def bitwise(x: float, y: float) -> float:
    return float(op(to_u64(x), to_u64(y)))

  return bitwise


BINARY_OPERATORS: Dict[str, Callable[[float, float], float]] = {
    '+': binary_arithmetic_op(operator.add),
    '-': binary_arithmetic_op(operator.sub),
    '*': binary_arithmetic_op(operator.mul),
    '/': binary_arithmetic_op(operator.truediv),
    '&': binary_bitwise_op(operator.and_),
    '|': binary_bitwise_op(operator.or_),
}
