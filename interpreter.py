"""
LISQ Interpreter - Pure Functional Style
Evaluates analyzed statements; the environment is threaded through evaluation.
Containers themselves (Arrays, Hashes, Boxes) are the only mutable state.
"""

from typing import Any, Dict, List, Optional, Tuple

from capabilities import ASSOCIATIVE, POSITIONAL, does, require_role
from containers import Array, Box, Empty, Hash, List as LisqList, Pair, Spread, decont
from contexts import (
    ARGUMENT, ASSIGNMENT, NEUTRAL, WHATEVER, Capture, bind_positional, evaluate_in_context,
    iterate_neutral
)
from error_handling import ImmutableStructureViolation, LisqRuntimeError
from iteration import DEFAULT_BATCH, DEFAULT_DEGREE
from stdlib import call_builtin, lisq_range
from utilities import WhateverCode


PARALLEL_BUILTINS = ("hyper", "race")


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_execution_context(batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE,
                           debug: bool = False) -> Dict:
  """Create an execution context holding the parallel processing defaults"""
  for name, value in (('batch', batch), ('degree', degree)):
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
      raise ValueError(f"{name} must be a positive integer, got {value!r}")
  return {
      'batch': batch,
      'degree': degree,
      'debug': debug
  }


def make_runtime_env(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create an immutable runtime environment dictionary"""
  return {
      'parent': parent,
      'bindings': bindings or {}
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_bind_value(env: Dict, name: str, value: Any) -> Dict:
  """Return new environment with name bound to value"""
  return {
      **env,
      'bindings': {**env['bindings'], name: value}
  }


def env_lookup_value(env: Dict, name: str) -> Any:
  """Look up a value in the environment chain; raises if unbound"""
  if name in env['bindings']:
    return env['bindings'][name]
  elif env['parent']:
    return env_lookup_value(env['parent'], name)
  raise LisqRuntimeError(f"Unbound variable: {name}")


def env_has(env: Dict, name: str) -> bool:
  if name in env['bindings']:
    return True
  return env['parent'] is not None and env_has(env['parent'], name)


def create_builtin_runtime_env() -> Dict:
  """Global runtime environment: constants, with user variables one level down"""
  constants = make_runtime_env(bindings={
      'Empty': Empty,
      'Nil': None,
  })
  return make_runtime_env(parent=constants)


def make_function_ref(name: str):
  """A one-argument callable wrapping a builtin, e.g. for map(@a, elems)"""
  def function_ref(value):
    return call_builtin(name, Capture(LisqList.from_iterable([value]).eager(), {}))
  function_ref.__name__ = name
  return function_ref


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def eval_ast(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Tuple[Any, Dict]:
  """
  Evaluate an AST node and return (result_value, updated_environment).
  Only statements change the environment.
  """
  if context is None:
    context = make_execution_context(debug=debug)

  if debug:
    print(f"Evaluating: {ast_node['type']}")

  node_type = ast_node['type']
  handler = EVALUATORS.get(node_type)
  if handler is None:
    raise LisqRuntimeError(f"Unknown node type: {node_type}")
  return handler(ast_node, env, debug, context)


def eval_value(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Any:
  """Evaluate an expression node, dropping the environment"""
  value, _ = eval_ast(ast_node, env, debug, context)
  return value


def eval_children(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> List[Any]:
  return [eval_value(child, env, debug, context) for child in ast_node['children']]


def eval_literal(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return ast_node['value'], env


def eval_whatever(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return WHATEVER, env


def eval_whatever_code(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return WhateverCode(ast_node['value']['op'], ast_node['value']['operand']), env


def eval_variable(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return env_lookup_value(env, ast_node['value']), env


def eval_function_ref(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return make_function_ref(ast_node['value']), env


def eval_list(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """(a, b, c): Slips and spreads splice in, everything else nests"""
  return LisqList(*eval_children(ast_node, env, debug, context)), env


def eval_array(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """[a, b, c]: a fresh Array holding the elements

  A single element is iterated, so [1..3] holds three elements.
  """
  values = eval_children(ast_node, env, debug, context)
  elements = values[0] if len(values) == 1 else LisqList(*values)
  return evaluate_in_context(elements, ASSIGNMENT, Array(), debug), env


def eval_item(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return Box(eval_value(ast_node['children'][0], env, debug, context)), env


def eval_spread(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return Spread(eval_value(ast_node['children'][0], env, debug, context)), env


def eval_pair(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  value = eval_value(ast_node['children'][0], env, debug, context)
  return Pair(ast_node['value']['key'], value, bare=ast_node['value']['bare']), env


def eval_range(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  bounds = [decont(value) for value in eval_children(ast_node, env, debug, context)]
  end = None if ast_node['value']['infinite'] else bounds[1]
  return lisq_range(bounds[0], end, ast_node['value']['exclude_end']), env


def eval_capture(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """\\(args): the argument list itself, as a value"""
  values = eval_children(ast_node, env, debug, context)
  return evaluate_in_context(values, ast_node['context'], debug=debug), env


def _with_parallel_defaults(name: str, capture: Capture, context: Dict) -> Capture:
  if name not in PARALLEL_BUILTINS:
    return capture
  named = {'batch': context['batch'], 'degree': context['degree']}
  named.update(capture.named)
  return Capture(capture.positional, named)


def eval_call(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """f(args): arguments are split into a Capture, then the builtin is called"""
  name = ast_node['value']
  values = eval_children(ast_node, env, debug, context)
  capture = evaluate_in_context(values, ast_node['context'], debug=debug)
  capture = _with_parallel_defaults(name, capture, context)
  return call_builtin(name, capture), env


def eval_method_call(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """x.f(args) is f(x, args) with x decontainerized and never spliced"""
  name = ast_node['value']
  invocant = decont(eval_value(ast_node['children'][0], env, debug, context))
  values = [eval_value(child, env, debug, context) for child in ast_node['children'][1:]]
  args = evaluate_in_context(values, ARGUMENT, debug=debug)
  positional = LisqList.from_iterable([invocant] + list(args.positional)).eager()
  capture = _with_parallel_defaults(name, Capture(positional, args.named), context)
  return call_builtin(name, capture), env


def eval_subscript(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  target_node, index_node = ast_node['children']
  target = decont(eval_value(target_node, env, debug, context))
  index = eval_value(index_node, env, debug, context)
  return evaluate_in_context(index, ast_node['context'], target, debug), env


# ============================================================================
# STATEMENTS
# ============================================================================

def eval_expression(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  return eval_value(ast_node['children'][0], env, debug, context), env


def eval_positional_assign(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """@a = list: assignment into the existing Array, or a new one

  A name bound with := to an immutable positional value cannot be assigned.
  """
  name = ast_node['value']
  target = env_lookup_value(env, name) if env_has(env, name) else None
  if does(target, POSITIONAL) and not isinstance(target, Array):
    raise ImmutableStructureViolation(None, type(target).__name__, f"assign to {name}, bound to")
  if not isinstance(target, Array):
    target = None
  value = eval_value(ast_node['children'][0], env, debug, context)
  array = evaluate_in_context(value, ast_node['context'], target, debug)
  return array, env_bind_value(env, name, array)


def eval_scalar_assign(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """$x = value: store into the variable's Box"""
  name = ast_node['value']
  value = decont(eval_value(ast_node['children'][0], env, debug, context))
  box = env_lookup_value(env, name) if env_has(env, name) else None
  if isinstance(box, Box):
    box.value = value
    return box, env
  box = Box(value)
  return box, env_bind_value(env, name, box)


def eval_associative_assign(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """%h = pairs: a Hash built from the pairs produced by the right-hand side"""
  name = ast_node['value']
  value = eval_value(ast_node['children'][0], env, debug, context)
  pairs = [decont(element) for element in iterate_neutral(decont(value))]
  hash_value = Hash(*pairs)
  return hash_value, env_bind_value(env, name, hash_value)


def eval_positional_bind(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """@a := value: no copy, value must be Positional"""
  value = bind_positional(decont(eval_value(ast_node['children'][0], env, debug, context)))
  return value, env_bind_value(env, ast_node['value'], value)


def eval_associative_bind(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  value = decont(eval_value(ast_node['children'][0], env, debug, context))
  require_role(value, ASSOCIATIVE, "associative binding")
  return value, env_bind_value(env, ast_node['value'], value)


def eval_plain_bind(ast_node: Dict, env: Dict, debug: bool, context: Dict) -> Tuple[Any, Dict]:
  """$x := value and name = value bind the value itself"""
  value = eval_value(ast_node['children'][0], env, debug, context)
  return value, env_bind_value(env, ast_node['value'], value)


EVALUATORS = {
    "LITERAL": eval_literal,
    "CONSTANT": eval_variable,
    "WHATEVER": eval_whatever,
    "WHATEVER_CODE": eval_whatever_code,
    "VARIABLE": eval_variable,
    "FUNCTION_REF": eval_function_ref,
    "LIST": eval_list,
    "ARRAY": eval_array,
    "ITEM": eval_item,
    "SPREAD": eval_spread,
    "PAIR": eval_pair,
    "RANGE": eval_range,
    "CAPTURE": eval_capture,
    "CALL": eval_call,
    "METHOD_CALL": eval_method_call,
    "SUBSCRIPT": eval_subscript,
    "EXPRESSION": eval_expression,
    "POSITIONAL_ASSIGN": eval_positional_assign,
    "SCALAR_ASSIGN": eval_scalar_assign,
    "ASSOCIATIVE_ASSIGN": eval_associative_assign,
    "POSITIONAL_BIND": eval_positional_bind,
    "ASSOCIATIVE_BIND": eval_associative_bind,
    "SCALAR_BIND": eval_plain_bind,
    "SIGILLESS_BIND": eval_plain_bind,
}


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(ast_nodes: List[Dict], debug: bool = False, env: Optional[Dict] = None,
                 context: Optional[Dict] = None) -> Tuple[Dict, List[Tuple[str, Any]]]:
  """
  Evaluate a program (list of AST nodes) and return final environment and results.
  Returns (final_env, list of (statement_type, value) pairs)
  """
  if env is None:
    env = create_builtin_runtime_env()
  if context is None:
    context = make_execution_context(debug=debug)
  results = []

  for ast_node in ast_nodes:
    value, env = eval_ast(ast_node, env, debug, context)
    if debug:
      print(f"Context of {ast_node['type']}: {ast_node.get('context') or NEUTRAL}")
    results.append((ast_node['type'], value))

  return env, results


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

HOST_ERRORS = (KeyError, IndexError, ValueError, OverflowError, TypeError, ZeroDivisionError)


def create_interpreter(debug: bool = False, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE):
  """Factory function returning an interpreter

  Variables persist between interpret() calls until reset(). When a statement
  fails, the bindings made by the statements before it are kept.
  """
  context = make_execution_context(batch, degree, debug)
  state = {'env': create_builtin_runtime_env()}

  def interpret(ast_nodes):
    # Bindings are kept per statement: a failure leaves earlier ones in place
    values = []
    for ast_node in ast_nodes:
      try:
        env, results = eval_program([ast_node], debug, state['env'], context)
      except LisqRuntimeError:
        raise
      except HOST_ERRORS as e:
        raise LisqRuntimeError(f"{type(e).__name__}: {e}") from e
      state['env'] = env
      values.extend(value for _, value in results)
    return values

  def reset():
    state['env'] = create_builtin_runtime_env()

  def variables():
    return dict(state['env']['bindings'])

  return type('Interpreter', (), {
      'interpret': lambda self, ast_nodes: interpret(ast_nodes),
      'reset': lambda self: reset(),
      'variables': lambda self: variables(),
      'context': context,
  })()


def create_debug_interpreter(batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE):
  """Factory function returning a debug interpreter"""
  return create_interpreter(True, batch, degree)
