"""
LISQ context classifier

Where a list expression appears decides how it is materialized:

  ASSIGNMENT  right-hand side of an assignment into a positional variable;
              non-lazy sources are drained before the assignment returns
  ARGUMENT    call arguments; bare pairs and associative spreads become named
              arguments, everything else is positional
  SLICE       subscript; no pair diversion and nested index lists produce
              results of the same nested shape
  NEUTRAL     plain iteration in production order

The context is picked once per list expression from its syntactic position
(see classify), never from its contents.
"""

import itertools
import math
from typing import Any, Dict, Iterator as PyIterator, Optional

from capabilities import ASSOCIATIVE, ITERABLE, POSITIONAL, does, require_role
from containers import Array, Box, List, Pair, Range, Seq, Slip, Spread, decont
from error_handling import TypeMismatch
from iteration import Iterator


ASSIGNMENT = 'ASSIGNMENT'
ARGUMENT = 'ARGUMENT'
SLICE = 'SLICE'
NEUTRAL = 'NEUTRAL'

POSITION_CONTEXTS = {
    'positional_assignment': ASSIGNMENT,
    'call_arguments': ARGUMENT,
    'subscript': SLICE,
}


class _Whatever:
  """The bare * term; as a subscript it selects every index"""

  def __repr__(self) -> str:
    return "*"


WHATEVER = _Whatever()


def classify(position: Optional[str]) -> str:
  """Map a syntactic position to its evaluation context"""
  return POSITION_CONTEXTS.get(position, NEUTRAL)


# ============================================================================
# ASSIGNMENT CONTEXT
# ============================================================================

def _inline_slips(source: Any) -> PyIterator[Any]:
  for value in source:
    if isinstance(value, Slip):
      yield from value
    else:
      yield value


def _detach(element: Any, target: Array) -> Any:
  """A copy of target stands in for target itself inside its own new contents"""
  if element is target:
    return Array.from_iterable(list(target)).eager()
  return element


def assign_positional(value: Any, target: Optional[Array] = None) -> Array:
  """Assign value into a positional container

  A lazy source stays lazy inside the Array; anything else is produced in
  full before this returns. A Box or a non-iterable is a single element.
  """
  if target is None:
    target = Array()
  if isinstance(value, Box) or not does(value, ITERABLE):
    return target.store_from(Iterator([value]))
  if value.is_lazy:
    return target.store_from(Iterator(_inline_slips(value)), lazy=True)
  # Drain before touching target, the source may read from it
  values = [_detach(element, target) for element in _inline_slips(value)]
  return target.store_from(Iterator(values))


def bind_positional(value: Any) -> Any:
  """Bind value where the Positional capability is required"""
  require_role(value, POSITIONAL, "positional binding")
  return value


# ============================================================================
# ARGUMENT CONTEXT
# ============================================================================

class Capture:
  """Call arguments split into a positional List and a named mapping"""

  def __init__(self, positional: Optional[List] = None, named: Optional[Dict[str, Any]] = None):
    self.positional = positional if positional is not None else List()
    self.named = dict(named or {})

  def __getitem__(self, index: Any) -> Any:
    if isinstance(index, int) and not isinstance(index, bool):
      return self.positional[index]
    return self.named[index]

  def list(self) -> List:
    return self.positional

  def hash(self) -> Dict[str, Any]:
    return dict(self.named)

  def __eq__(self, other: Any) -> bool:
    if not isinstance(other, Capture):
      return NotImplemented
    return self.positional == other.positional and self.named == other.named

  __hash__ = None

  def __repr__(self) -> str:
    return f"Capture({self.positional!r}, {self.named!r})"


def _tag_arguments(elements):
  """First pass: tag every argument as positional or named"""
  for element in elements:
    if isinstance(element, Pair) and element.bare:
      yield ('named', element.key, element.value)
    elif isinstance(element, Slip):
      for value in element:
        yield ('positional', None, value)
    elif isinstance(element, Spread):
      inner = decont(element.value)
      if does(inner, ASSOCIATIVE):
        for pair in inner:
          yield ('named', pair.key, pair.value)
      elif does(inner, ITERABLE):
        for value in inner:
          yield ('positional', None, value)
      else:
        yield ('positional', None, inner)
    else:
      yield ('positional', None, element)


def make_capture(*elements: Any) -> Capture:
  """Interpret elements as call arguments

  Examples:
    make_capture(1, 2, Pair('key', 3)) -> Capture(List(1, 2), {'key': 3})
    make_capture(List(1, 2, Pair('key', 3))) -> Capture(List(List(1, 2, Pair('key', 3))), {})
  """
  positional = []
  named: Dict[str, Any] = {}
  for bucket, key, value in _tag_arguments(elements):
    if bucket == 'named':
      named[key] = value
    else:
      positional.append(value)
  return Capture(List.from_iterable(positional).eager(), named)


# ============================================================================
# SLICE CONTEXT
# ============================================================================

def _slice_to_index(target: Any, index: slice) -> Any:
  elems = target.elems()
  if elems == math.inf:
    start = index.start or 0
    step = index.step or 1
    if index.stop is None:
      return Range(start) if step == 1 else Seq(itertools.count(start, step), lazy=True)
    return range(start, index.stop, step)
  return range(*index.indices(elems))


def _leaf_index(target: Any, index: Any) -> Any:
  if callable(index) and not isinstance(index, type):
    return slice_index(target, index(target.elems()))
  if does(target, POSITIONAL):
    if isinstance(index, int) and not isinstance(index, bool):
      return target.at_pos(index)
    raise TypeMismatch("Int", type(index).__name__, "positional subscript")
  if does(target, ASSOCIATIVE):
    if getattr(type(index), '__hash__', None) is None:
      raise TypeMismatch("hashable key", type(index).__name__, "associative subscript")
    return target.at_key(index)
  raise TypeMismatch("Positional or Associative", type(target).__name__, "subscript")


def _index_exists(target: Any, index: Any) -> bool:
  if isinstance(index, int) and not isinstance(index, bool) and does(target, POSITIONAL):
    return target.exists_pos(index)
  if does(target, ASSOCIATIVE):
    return target.exists_key(index)
  return True


def _lazy_slice(target: Any, index: Any) -> PyIterator[Any]:
  for sub_index in index:
    if not _index_exists(target, sub_index):
      return
    yield slice_index(target, sub_index)


def slice_index(target: Any, index: Any) -> Any:
  """Subscript target with index

  Nested index lists are not flattened: each sub-list yields a sub-List of
  results at its position. A lazy index list gives a lazy result that stops
  at the first index the target does not have.

  Examples:
    slice_index(List('a', 'b', 'c'), List(List(1, 2), List(0, 1)))
      -> List(List('b', 'c'), List('a', 'b'))
  """
  if isinstance(target, Seq):
    target = target.cache()
  if isinstance(index, Box):
    return _leaf_index(target, decont(index))
  if index is WHATEVER:
    index = target.keys() if does(target, ASSOCIATIVE) else slice(None)
  if isinstance(index, slice):
    index = _slice_to_index(target, index)

  if isinstance(index, (list, tuple, range)) or does(index, ITERABLE):
    if getattr(index, 'is_lazy', False):
      return List.from_iterable(_lazy_slice(target, index), lazy=True)
    return List.from_iterable([slice_index(target, sub_index) for sub_index in index]).eager()
  return _leaf_index(target, index)


# ============================================================================
# NEUTRAL CONTEXT
# ============================================================================

def iterate_neutral(value: Any) -> PyIterator[Any]:
  """Visit elements in production order, no eager or splitting rules"""
  if isinstance(value, Box) or not does(value, ITERABLE):
    yield value
    return
  yield from value


# ============================================================================
# DISPATCH
# ============================================================================

def evaluate_in_context(value: Any, context: str, target: Any = None, debug: bool = False) -> Any:
  """Materialize value according to the context it was classified into"""
  if debug:
    print(f"Context: {context} <- {type(value).__name__}")

  if context == ASSIGNMENT:
    return assign_positional(value, target)
  elif context == ARGUMENT:
    if isinstance(value, (list, tuple)):
      return make_capture(*value)
    return make_capture(value)
  elif context == SLICE:
    return slice_index(target, value)
  elif context == NEUTRAL:
    return Seq(iterate_neutral(value))
  raise ValueError(f"Unknown context: {context}")
