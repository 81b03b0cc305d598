"""
LISQ Standard Library
Built-in functions callable as f(args) or as methods, x.f(args)
"""

from typing import Any, Callable, Dict, List as PyList, Optional

from capabilities import ASSOCIATIVE, ITERABLE, does, require_role
from concurrency import HyperSeq
from containers import Array, Box, Hash, List, Pair, Range, Seq, Slip, decont, slip
from contexts import Capture, WHATEVER
from error_handling import LisqRuntimeError, TypeMismatch
from flattening import flatten
from iteration import DEFAULT_BATCH, DEFAULT_DEGREE
from utilities import WhateverCode, require_int, validate_function_args


# ============================================================================
# GIST
# ============================================================================

def _gist_elements(values, seen) -> str:
  return ' '.join(lisq_gist(value, seen) for value in values)


def lisq_gist(value: Any, seen: Optional[set] = None) -> str:
  """Human-readable rendering of a value

  Lazy sequences that have not been produced render as (...). An Array or
  Hash met again while it is being rendered renders as [...] or {...}.
  """
  if seen is None:
    seen = set()

  if value is None:
    return "Nil"
  elif isinstance(value, bool):
    return "True" if value else "False"
  elif isinstance(value, (int, float, str)):
    return str(value)
  elif value is WHATEVER:
    return "*"
  elif isinstance(value, WhateverCode):
    return repr(value)
  elif isinstance(value, Box):
    inner = value.value
    if isinstance(inner, Array):
      return "$" + lisq_gist(inner, seen)
    if isinstance(inner, (List, Range, Seq)):
      return "$" + lisq_gist(inner.list(), seen)
    return lisq_gist(inner, seen)
  elif isinstance(value, Pair):
    return f"{lisq_gist(value.key, seen)} => {lisq_gist(value.value, seen)}"
  elif isinstance(value, Capture):
    parts = [lisq_gist(v, seen) for v in value.positional]
    parts.extend(f":{key}({lisq_gist(v, seen)})" for key, v in value.named.items())
    return "\\(" + ', '.join(parts) + ")"
  elif isinstance(value, Hash):
    if id(value) in seen:
      return "{...}"
    seen.add(id(value))
    try:
      return "{" + ', '.join(lisq_gist(pair, seen) for pair in value) + "}"
    finally:
      seen.discard(id(value))
  elif isinstance(value, Range):
    if value.end is None:
      return f"{value.start}..*"
    return f"{value.start}..{'^' if value.exclude_end else ''}{value.end}"
  elif isinstance(value, Array):
    if value.is_lazy or id(value) in seen:
      return "[...]"
    seen.add(id(value))
    try:
      return "[" + _gist_elements(value, seen) + "]"
    finally:
      seen.discard(id(value))
  elif isinstance(value, Slip):
    if value.is_lazy:
      return "slip(...)"
    return "slip(" + _gist_elements(value, seen) + ")"
  elif isinstance(value, List):
    if value.is_lazy:
      return "(...)"
    return "(" + _gist_elements(value, seen) + ")"
  elif isinstance(value, Seq):
    if value.is_lazy and not value.is_cached:
      return "(...)"
    return lisq_gist(value.cache(), seen)
  elif isinstance(value, HyperSeq):
    return repr(value)
  elif callable(value):
    return f"&{getattr(value, '__name__', type(value).__name__)}"
  else:
    return f"<{type(value).__name__}>"


def lisq_say(*values: Any) -> None:
  """Print the gist of each value on one line"""
  print(''.join(lisq_gist(value) for value in values))
  return None


# ============================================================================
# SEQUENCE FUNCTIONS
# ============================================================================

def lisq_flat(value: Any, depth: Optional[int] = None) -> Seq:
  """Flatten value; Boxes are left intact"""
  if depth is not None:
    require_int("flat", "depth", depth, 0)
  if does(value, ITERABLE):
    return value.flat(depth)
  return Seq(flatten(value, depth))


def lisq_lazy(value: Any) -> Seq:
  if does(value, ITERABLE):
    return value.lazy()
  return Seq([value], lazy=True)


def lisq_slip(*values: Any) -> Slip:
  return slip(*values)


def lisq_list(value: Any) -> List:
  """Positional view of value"""
  if isinstance(value, List):
    return value
  if isinstance(value, (Range, Seq, HyperSeq)):
    return value.list()
  if does(value, ITERABLE):
    return List.from_iterable(value.iterator())
  return List(value)


def lisq_cache(value: Any) -> List:
  if isinstance(value, Seq):
    return value.cache()
  return lisq_list(value)


def lisq_eager(value: Any) -> List:
  if isinstance(value, Range) and value.is_lazy:
    raise LisqRuntimeError(f"Cannot eagerly evaluate the infinite range {lisq_gist(value)}")
  return lisq_list(value).eager()


def lisq_elems(value: Any) -> Any:
  if does(value, ITERABLE):
    return value.elems()
  return 1


def lisq_item(value: Any) -> Box:
  """Itemize value so it is not flattened"""
  if isinstance(value, Box):
    return value
  return Box(value)


def lisq_head(value: Any, count: int = 1) -> Seq:
  require_int("head", "count", count, 0)
  return lisq_list(value).head(count)


def lisq_reverse(value: Any) -> List:
  if isinstance(value, Range) and value.is_lazy:
    raise LisqRuntimeError(f"Cannot reverse the infinite range {lisq_gist(value)}")
  return lisq_list(value).reverse()


def lisq_capture(*positional: Any, **named: Any) -> Capture:
  return Capture(List.from_iterable(list(positional)).eager(), named)


def lisq_range(start: int, end: Any = None, exclude_end: bool = False) -> Range:
  require_int("range", "start", start)
  if end is WHATEVER:
    end = None
  if end is not None:
    require_int("range", "end", end)
  return Range(start, end, exclude_end=bool(exclude_end))


def lisq_map(value: Any, fn: Callable[[Any], Any]) -> Any:
  if not callable(fn):
    raise LisqRuntimeError(f"map requires a callable, got {lisq_gist(fn)}")
  return _iterable(value).map(fn)


def lisq_grep(value: Any, predicate: Callable[[Any], Any]) -> Any:
  if not callable(predicate):
    raise LisqRuntimeError(f"grep requires a callable, got {lisq_gist(predicate)}")
  return _iterable(value).grep(predicate)


def _iterable(value: Any) -> Any:
  if does(value, ITERABLE):
    return value
  return List(value)


# ============================================================================
# PARALLEL PROCESSING
# ============================================================================

def lisq_hyper(value: Any, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE) -> HyperSeq:
  """Order-preserving batch-parallel view of value"""
  require_int("hyper", "batch", batch, 1)
  require_int("hyper", "degree", degree, 1)
  return _iterable(value).hyper(batch, degree)


def lisq_race(value: Any, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE) -> HyperSeq:
  """Batch-parallel view of value yielding in completion order"""
  require_int("race", "batch", batch, 1)
  require_int("race", "degree", degree, 1)
  return _iterable(value).race(batch, degree)


def lisq_serial(value: Any) -> Any:
  if isinstance(value, HyperSeq):
    return value.serial()
  return value


# ============================================================================
# ASSOCIATIVE FUNCTIONS
# ============================================================================

def lisq_keys(value: Any) -> List:
  require_role(value, ASSOCIATIVE, "keys")
  return value.keys()


def lisq_values(value: Any) -> List:
  require_role(value, ASSOCIATIVE, "values")
  return value.values()


def lisq_hash(*pairs: Any, **named: Any) -> Hash:
  """Bare pair arguments arrive as named arguments; both end up as entries"""
  return Hash(*[decont(pair) for pair in pairs], **named)


# ============================================================================
# ARRAY MUTATORS
# ============================================================================

def _array(value: Any, operation: str) -> Array:
  if not isinstance(value, Array):
    raise TypeMismatch("Array", type(value).__name__, operation)
  return value


def lisq_push(array: Any, *values: Any) -> Array:
  return _array(array, "push").push(*values)


def lisq_append(array: Any, *values: Any) -> Array:
  return _array(array, "append").append(*values)


def lisq_pop(array: Any) -> Any:
  return _array(array, "pop").pop()


def lisq_shift(array: Any) -> Any:
  return _array(array, "shift").shift()


def lisq_unshift(array: Any, *values: Any) -> Array:
  return _array(array, "unshift").unshift(*values)


# ============================================================================
# BUILT-IN FUNCTION REGISTRY
# ============================================================================

def make_builtin_function(name: str, func: Callable, min_args: int, max_args: Optional[int],
                          named: PyList[str] = None, signature: str = "") -> Dict:
  """Create a built-in function value"""
  return {
      'type': 'builtin_function',
      'name': name,
      'func': func,
      'min_args': min_args,
      'max_args': max_args,
      'named': list(named or []),
      'signature': signature
  }


# Built-in function registry
# Note: hyper and race take their batch/degree defaults from the execution context
BUILTIN_FUNCTIONS: Dict[str, Dict] = {
    # Output
    "say": make_builtin_function("say", lisq_say, 0, None, signature="*values -> Nil"),
    "gist": make_builtin_function("gist", lisq_gist, 1, 1, signature="value -> Str"),

    # Flattening and laziness
    "flat": make_builtin_function("flat", lisq_flat, 1, 2, signature="value, depth? -> Seq"),
    "lazy": make_builtin_function("lazy", lisq_lazy, 1, 1, signature="value -> Seq"),
    "slip": make_builtin_function("slip", lisq_slip, 0, None, signature="*values -> Slip"),
    "item": make_builtin_function("item", lisq_item, 1, 1, signature="value -> Box"),

    # Sequences
    "list": make_builtin_function("list", lisq_list, 1, 1, signature="value -> List"),
    "cache": make_builtin_function("cache", lisq_cache, 1, 1, signature="value -> List"),
    "eager": make_builtin_function("eager", lisq_eager, 1, 1, signature="value -> List"),
    "elems": make_builtin_function("elems", lisq_elems, 1, 1, signature="value -> Int"),
    "head": make_builtin_function("head", lisq_head, 1, 2, signature="value, count? -> Seq"),
    "reverse": make_builtin_function("reverse", lisq_reverse, 1, 1, signature="value -> List"),
    "range": make_builtin_function("range", lisq_range, 1, 2, ["exclude_end"],
                                   "start, end? -> Range"),
    "map": make_builtin_function("map", lisq_map, 2, 2, signature="value, fn -> Seq"),
    "grep": make_builtin_function("grep", lisq_grep, 2, 2, signature="value, fn -> Seq"),

    # Arguments
    "capture": make_builtin_function("capture", lisq_capture, 0, None, ["*"],
                                     "*positional, **named -> Capture"),

    # Parallel processing
    "hyper": make_builtin_function("hyper", lisq_hyper, 1, 1, ["batch", "degree"],
                                   "value, :batch, :degree -> HyperSeq"),
    "race": make_builtin_function("race", lisq_race, 1, 1, ["batch", "degree"],
                                  "value, :batch, :degree -> HyperSeq"),
    "serial": make_builtin_function("serial", lisq_serial, 1, 1, signature="value -> Seq"),

    # Array mutators
    "push": make_builtin_function("push", lisq_push, 1, None, signature="Array, *values -> Array"),
    "append": make_builtin_function("append", lisq_append, 1, None, signature="Array, *values -> Array"),
    "pop": make_builtin_function("pop", lisq_pop, 1, 1, signature="Array -> value"),
    "shift": make_builtin_function("shift", lisq_shift, 1, 1, signature="Array -> value"),
    "unshift": make_builtin_function("unshift", lisq_unshift, 1, None, signature="Array, *values -> Array"),

    # Associative
    "hash": make_builtin_function("hash", lisq_hash, 0, None, ["*"],
                                  "*pairs -> Hash"),
    "keys": make_builtin_function("keys", lisq_keys, 1, 1, signature="Hash -> List"),
    "values": make_builtin_function("values", lisq_values, 1, 1, signature="Hash -> List"),
}


def get_builtin_function(name: str) -> Dict:
  """Get a built-in function by name"""
  if name in BUILTIN_FUNCTIONS:
    return BUILTIN_FUNCTIONS[name]
  else:
    raise LisqRuntimeError(f"Unknown built-in function: {name}")


def list_builtin_functions() -> PyList[str]:
  """List all available built-in functions"""
  return list(BUILTIN_FUNCTIONS.keys())


def call_builtin(name: str, capture: Capture) -> Any:
  """Validate capture against the builtin's signature and call it"""
  builtin = get_builtin_function(name)
  positional = list(capture.positional)
  allowed = builtin['named']
  if "*" in allowed:
    allowed = list(capture.named)
  validate_function_args(name, positional, capture.named,
                         builtin['min_args'], builtin['max_args'], allowed)
  return builtin['func'](*positional, **capture.named)
