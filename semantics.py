"""
LISQ Semantics Analysis - Pure Functional Style
Turns parser payloads into AST dictionaries, checks names, and tags every
list expression with the context its syntactic position puts it in
"""

from typing import Any, Dict, List, Optional, Tuple

from contexts import ARGUMENT, NEUTRAL, classify
from error_handling import LisqSemanticsError
from parsing import CSTNode, SourceSpan
from stdlib import list_builtin_functions
from utilities import is_tagged, payload_data


CONSTANTS = ("Empty", "Nil")


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_ast_node(node_type: str, value: Any, children: Optional[List[Dict]] = None,
                  span: Optional[SourceSpan] = None, context: str = NEUTRAL) -> Dict:
  """Create an immutable AST node dictionary"""
  return {
      'type': node_type,
      'value': value,
      'children': children or [],
      'span': span,
      'context': context
  }


def make_environment(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create an immutable environment dictionary"""
  return {
      'parent': parent,
      'bindings': bindings or {}
  }


# ============================================================================
# ENVIRONMENT OPERATIONS (Pure Functions)
# ============================================================================

def env_bind(env: Dict, name: str, kind: str) -> Dict:
  """Return new environment with name declared as kind"""
  return {
      **env,
      'bindings': {**env['bindings'], name: kind}
  }


def env_lookup(env: Dict, name: str) -> Optional[str]:
  """Look up a name in the environment chain"""
  if name in env['bindings']:
    return env['bindings'][name]
  elif env['parent']:
    return env_lookup(env['parent'], name)
  return None


def create_builtin_env() -> Dict:
  """Create the global environment with builtin functions and constants"""
  env = make_environment()
  for name in list_builtin_functions():
    env = env_bind(env, name, 'builtin')
  for name in CONSTANTS:
    env = env_bind(env, name, 'constant')
  # User variables live one level down so they can shadow nothing builtin
  return make_environment(parent=env)


def variable_key(target: Tuple) -> str:
  """Environment key of a variable or identifier payload: '@a', '$x', 'name'"""
  if is_tagged(target, "VARIABLE"):
    return target[1]['sigil'] + target[1]['name']
  return payload_data(target, "IDENTIFIER")


# ============================================================================
# EXPRESSION ANALYSIS
# ============================================================================

def analyze_expression(expr: Any, env: Dict, span: Optional[SourceSpan] = None,
                       debug: bool = False) -> Dict:
  """Analyze a payload tuple and return an AST node"""
  if not is_tagged(expr):
    raise LisqSemanticsError(f"Unable to analyze expression: {expr!r}", str(span or ""))

  expr_type, expr_data = expr[0], expr[1]

  def sub(node):
    return analyze_expression(node, env, span, debug)

  handlers = {
      "NUMBER": lambda: make_ast_node("LITERAL", expr_data, [], span),
      "STRING": lambda: make_ast_node("LITERAL", expr_data, [], span),
      "BOOL": lambda: make_ast_node("LITERAL", expr_data, [], span),
      "WHATEVER": lambda: make_ast_node("WHATEVER", None, [], span),
      "WHATEVER_CODE": lambda: make_ast_node("WHATEVER_CODE", dict(expr_data), [], span),
      "VARIABLE": lambda: analyze_variable(expr, env, span),
      "IDENTIFIER": lambda: analyze_identifier(expr_data, env, span),
      "LIST": lambda: make_ast_node("LIST", None, [sub(item) for item in expr_data], span),
      "ARRAY_LITERAL": lambda: make_ast_node("ARRAY", None, [sub(item) for item in expr_data], span),
      "BOX": lambda: make_ast_node("ITEM", None, [sub(expr_data)], span),
      "SPREAD": lambda: make_ast_node("SPREAD", None, [sub(expr_data)], span),
      "PARENS": lambda: analyze_parens(expr_data, env, span, debug),
      "PAIR": lambda: analyze_pair(expr_data, env, span, debug, bare=not expr_data['quoted']),
      "RANGE": lambda: analyze_range(expr_data, env, span, debug),
      "CAPTURE_LITERAL": lambda: make_ast_node("CAPTURE", None, [sub(arg) for arg in expr_data], span,
                                               classify('call_arguments')),
      "CALL": lambda: analyze_call(expr_data, env, span, debug),
      "METHOD_CALL": lambda: analyze_method_call(expr_data, env, span, debug),
      "SUBSCRIPT": lambda: make_ast_node("SUBSCRIPT", None,
                                         [sub(expr_data['target']), sub(expr_data['index'])],
                                         span, classify('subscript')),
  }

  if expr_type not in handlers:
    raise LisqSemanticsError(f"Unknown expression type: {expr_type}", str(span or ""))
  node = handlers[expr_type]()
  if debug:
    print(f"Analyzed {expr_type} -> {node['type']} [{node['context']}]")
  return node


def analyze_variable(expr: Tuple, env: Dict, span: Optional[SourceSpan]) -> Dict:
  key = variable_key(expr)
  if env_lookup(env, key) is None:
    raise LisqSemanticsError(f"Variable '{key}' is not declared", str(span or ""))
  return make_ast_node("VARIABLE", key, [], span)


def analyze_identifier(name: str, env: Dict, span: Optional[SourceSpan]) -> Dict:
  """A sigilless variable, a constant, or a reference to a builtin"""
  kind = env_lookup(env, name)
  if kind is None:
    raise LisqSemanticsError(f"Undeclared name '{name}'", str(span or ""))
  if kind == 'builtin':
    return make_ast_node("FUNCTION_REF", name, [], span)
  if kind == 'constant':
    return make_ast_node("CONSTANT", name, [], span)
  return make_ast_node("VARIABLE", name, [], span)


def analyze_parens(inner: Tuple, env: Dict, span: Optional[SourceSpan], debug: bool) -> Dict:
  """Parentheses only matter around a pair, which they stop being bare"""
  if is_tagged(inner, "PAIR"):
    return analyze_pair(inner[1], env, span, debug, bare=False)
  return analyze_expression(inner, env, span, debug)


def analyze_pair(pair_data: Dict, env: Dict, span: Optional[SourceSpan], debug: bool,
                 bare: bool) -> Dict:
  value = analyze_expression(pair_data['value'], env, span, debug)
  return make_ast_node("PAIR", {'key': pair_data['key'], 'bare': bare}, [value], span)


def analyze_range(range_data: Dict, env: Dict, span: Optional[SourceSpan], debug: bool) -> Dict:
  children = [analyze_expression(range_data['start'], env, span, debug)]
  if range_data['end'] is not None:
    children.append(analyze_expression(range_data['end'], env, span, debug))
  return make_ast_node("RANGE", {'exclude_end': range_data['exclude_end'],
                                 'infinite': range_data['end'] is None}, children, span)


def _check_function(name: str, env: Dict, span: Optional[SourceSpan]) -> None:
  if env_lookup(env, name) != 'builtin':
    raise LisqSemanticsError(f"Unknown function '{name}'", str(span or ""))


def analyze_call(call_data: Dict, env: Dict, span: Optional[SourceSpan], debug: bool) -> Dict:
  name = call_data['function']
  _check_function(name, env, span)
  args = [analyze_expression(arg, env, span, debug) for arg in call_data['args']]
  return make_ast_node("CALL", name, args, span, classify('call_arguments'))


def analyze_method_call(method_data: Dict, env: Dict, span: Optional[SourceSpan], debug: bool) -> Dict:
  """x.name(args) is name(x, args); the invocant is always positional"""
  name = method_data['name']
  _check_function(name, env, span)
  invocant = analyze_expression(method_data['invocant'], env, span, debug)
  args = [analyze_expression(arg, env, span, debug) for arg in method_data['args']]
  return make_ast_node("METHOD_CALL", name, [invocant] + args, span, ARGUMENT)


# ============================================================================
# STATEMENT ANALYSIS
# ============================================================================

ASSIGNMENT_NODES = {
    '@': 'POSITIONAL_ASSIGN',
    '$': 'SCALAR_ASSIGN',
    '%': 'ASSOCIATIVE_ASSIGN',
    '': 'SIGILLESS_BIND',
}

BINDING_NODES = {
    '@': 'POSITIONAL_BIND',
    '$': 'SCALAR_BIND',
    '%': 'ASSOCIATIVE_BIND',
    '': 'SIGILLESS_BIND',
}


def analyze_statement(cst_node: CSTNode, env: Dict, debug: bool = False) -> Tuple[Dict, Dict]:
  """Analyze one statement; returns the AST node and the extended environment"""
  span = cst_node.span

  if cst_node.type == "EXPRESSION":
    expr = analyze_expression(cst_node.value, env, span, debug)
    return make_ast_node("EXPRESSION", None, [expr], span), env

  if cst_node.type not in ("ASSIGNMENT", "BINDING"):
    raise LisqSemanticsError(f"Unknown statement type: {cst_node.type}", str(span or ""))

  target = cst_node.value['target']
  key = variable_key(target)
  sigil = target[1]['sigil'] if is_tagged(target, "VARIABLE") else ''
  if env_lookup(env, key) in ('builtin', 'constant'):
    raise LisqSemanticsError(f"Cannot rebind builtin name '{key}'", str(span or ""))

  # The right-hand side may refer to the variable being assigned only if it exists already
  expr = analyze_expression(cst_node.value['value'], env, span, debug)
  table = ASSIGNMENT_NODES if cst_node.type == "ASSIGNMENT" else BINDING_NODES
  node_type = table[sigil]
  context = classify('positional_assignment') if node_type == 'POSITIONAL_ASSIGN' else NEUTRAL
  node = make_ast_node(node_type, key, [expr], span, context)
  return node, env_bind(env, key, sigil or 'sigilless')


def analyze_program(cst_nodes: List[CSTNode], debug: bool = False,
                    env: Optional[Dict] = None) -> Tuple[List[Dict], Dict]:
  """
  Analyze a program (list of CST nodes) and return AST nodes and final environment.
  The environment is threaded through the statements in order.
  """
  if env is None:
    env = create_builtin_env()
  ast_nodes = []

  for cst_node in cst_nodes:
    ast_node, env = analyze_statement(cst_node, env, debug)
    ast_nodes.append(ast_node)

  return ast_nodes, env


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer object

  The analyzer keeps the environment between calls so a REPL can declare a
  variable on one line and use it on the next.
  """
  state = {'env': create_builtin_env()}

  def analyze(cst_nodes):
    ast_nodes, state['env'] = analyze_program(cst_nodes, debug, state['env'])
    return ast_nodes

  def reset():
    state['env'] = create_builtin_env()

  return type('Analyzer', (), {
      'analyze': lambda self, cst_nodes: analyze(cst_nodes),
      'preview': lambda self, cst_nodes: analyze_program(cst_nodes, debug, state['env'])[0],
      'reset': lambda self: reset(),
      'declared': lambda self: dict(state['env']['bindings']),
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)


def pretty_print_ast(node: Dict, indent: int = 0) -> str:
  """Render an AST node tree, one node per line"""
  prefix = "  " * indent
  label = node['type']
  if node['value'] is not None:
    label += f" {node['value']!r}"
  if node['context'] != NEUTRAL:
    label += f" <{node['context']}>"
  lines = [prefix + label]
  for child in node['children']:
    lines.append(pretty_print_ast(child, indent + 1))
  return "\n".join(lines)
