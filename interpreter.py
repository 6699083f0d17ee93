"""
lamb Interpreter
Tree-walking evaluator over the AST produced by parsing.py
Runtime values and environment frames are plain dictionaries, frames are shared by reference
"""

from typing import Any, Dict, List, Optional
import logging

from error_handling import LambEvaluationError
from parsing import (
  Program, Binding, ExpressionStmt, CommentStmt, EndOfInput,
  Identifier, Abstraction, NumberLiteral, Recursion, Application,
  ApplicationIf, BinaryOperation
)
from stdlib import make_value, is_capability_name, invoke_capability
from utilities import BINARY_OPERATORS, describe_value, is_literal, unbound_error


logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_closure(param: str, body: Any, captured_env: Dict) -> Dict:
  """Create a closure value capturing the defining frame by reference"""
  return {
      'type': 'Closure',
      'param': param,
      'body': body,
      'env': captured_env
  }


def make_recursion_marker(inner: Any) -> Dict:
  """Carry an unevaluated expression forward to the recursion loop"""
  return {
      'type': 'Recursion',
      'inner': inner
  }


def make_unit() -> Dict:
  return make_value(None, "Unit")


def make_halt() -> Dict:
  return make_value(None, "Halt")


def is_halt(val: Dict) -> bool:
  return val['type'] == 'Halt'


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def make_runtime_env(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create an environment frame"""
  return {
      'parent': parent,
      'bindings': bindings or {}
  }


def env_bind_value(env: Dict, name: str, value: Dict) -> Dict:
  """Bind name in this frame, overwriting any previous value. Returns the value."""
  env['bindings'][name] = value
  return value


def env_lookup_value(env: Dict, name: str) -> Optional[Dict]:
  """Look up a value in the frame chain, innermost first"""
  frame = env
  while frame is not None:
    if name in frame['bindings']:
      return frame['bindings'][name]
    frame = frame['parent']
  return None


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expr(node: Any, env: Dict) -> Dict:
  """Evaluate an expression node relative to a frame"""
  if isinstance(node, NumberLiteral):
    return make_value(node.value)
  elif isinstance(node, Identifier):
    return eval_identifier(node, env)
  elif isinstance(node, Abstraction):
    return make_closure(node.param, node.body, env)
  elif isinstance(node, BinaryOperation):
    return eval_binary(node, env)
  elif isinstance(node, Recursion):
    return make_recursion_marker(node.inner)
  elif isinstance(node, Application):
    return eval_application(node.func, node.arg, env)
  elif isinstance(node, ApplicationIf):
    return eval_application_if(node, env)
  else:
    raise LambEvaluationError(f"Unexpected expression node: {type(node).__name__}")


def eval_identifier(node: Identifier, env: Dict) -> Dict:
  value = env_lookup_value(env, node.name)
  if value is None:
    raise unbound_error(node.name)
  return value


def eval_binary(node: BinaryOperation, env: Dict) -> Dict:
  """Both operands must reduce to literals, left before right"""
  lhs = eval_expr(node.lhs, env)
  rhs = eval_expr(node.rhs, env)

  if not is_literal(lhs) or not is_literal(rhs):
    raise LambEvaluationError(
        f"Expected numeric literal for binary operations, got {describe_value(lhs)} {node.op} {describe_value(rhs)}")

  return make_value(BINARY_OPERATORS[node.op](lhs['value'], rhs['value']))


def eval_application(func_expr: Any, arg_expr: Any, env: Dict, recursion_context: bool = False) -> Dict:
  """
  Apply func_expr to arg_expr

  A closure body that yields a recursion marker re-applies the same
  func_expr to the marker's expression, inside the frame just created and
  in recursion context. In recursion context an argument of literal 0
  stops the loop with Halt. The loop keeps running until that happens or
  some step yields Halt.
  """
  while True:
    func = eval_expr(func_expr, env)
    arg = eval_expr(arg_expr, env)

    if recursion_context and is_literal(arg, 0):
      logger.debug("recursion received 0, halting")
      return make_halt()

    if func['type'] in ('Literal', 'Unit', 'Halt'):
      return func
    if func['type'] != 'Closure':
      raise LambEvaluationError(
          f"Unexpected evaluation value in function position: {describe_value(func)}")

    logger.debug("applying λ%s to %s", func['param'], describe_value(arg))
    frame = make_runtime_env(func['env'])
    env_bind_value(frame, func['param'], arg)
    result = eval_expr(func['body'], frame)

    pending_next = None
    if result['type'] == 'Recursion':
      pending_next = result['inner']
      result = eval_expr(pending_next, frame)
      if result['type'] not in ('Literal', 'Halt'):
        raise LambEvaluationError(
            f"Recursion(𝑓) only takes a numeric value or halt, got {describe_value(result)}")

    if is_halt(result):
      return result

    if is_capability_name(func['param']):
      result = invoke_capability(func['param'], result)

    if pending_next is None:
      return result

    logger.debug("recursion step with λ%s = %s", func['param'], describe_value(arg))
    arg_expr = pending_next
    env = frame
    recursion_context = True


def eval_application_if(node: ApplicationIf, env: Dict) -> Dict:
  """Literal 1 from the application selects arg2, any other literal halts"""
  outcome = eval_application(node.func, node.arg1, env)
  alternative = eval_expr(node.arg2, env)

  if is_literal(outcome, 1):
    return alternative
  if is_literal(outcome):
    return make_halt()
  raise LambEvaluationError(
      f"Conditional application only takes numeric value, got {describe_value(outcome)}")


# ============================================================================
# STATEMENT EVALUATION
# ============================================================================

def eval_statement(statement: Any, env: Dict) -> Dict:
  """Evaluate one top-level statement against the global frame"""
  if isinstance(statement, Binding):
    return env_bind_value(env, statement.name, eval_expr(statement.value, env))
  elif isinstance(statement, ExpressionStmt):
    return eval_expr(statement.expr, env)
  elif isinstance(statement, (CommentStmt, EndOfInput)):
    return make_unit()
  else:
    raise LambEvaluationError(f"Unexpected statement: {type(statement).__name__}")


class LambInterpreter:
  """Evaluates statements against the global frame it owns"""

  def __init__(self):
    self.global_env = make_runtime_env()

  def evaluate_statement(self, statement: Any) -> Dict:
    logger.debug("evaluating %s", type(statement).__name__)
    try:
      return eval_statement(statement, self.global_env)
    except RecursionError:
      raise LambEvaluationError("maximum recursion depth exceeded") from None

  def evaluate_program(self, program: Program) -> List[Dict]:
    """Evaluate every statement in order, stopping at the first error"""
    return [self.evaluate_statement(statement) for statement in program.statements]

  def lookup(self, name: str) -> Optional[Dict]:
    return env_lookup_value(self.global_env, name)

  def bindings(self) -> Dict[str, Dict]:
    return dict(self.global_env['bindings'])


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter() -> LambInterpreter:
  """Factory function returning an interpreter with a fresh global frame"""
  return LambInterpreter()
