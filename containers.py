"""
LISQ containers - Box, Pair, List, Array, Slip, Range, Seq and Hash

Lists are immutable once a slot is produced; they may be backed lazily by an
Iterator and reify slots on demand. Arrays keep each slot in its own Box so
elements can be reassigned. A Seq is single pass: every iterator view reads
through one shared cursor unless the Seq has been cached into a List.
"""

import itertools
import math
from typing import Any, Dict, List as PyList, Optional

from capabilities import ASSOCIATIVE, ITERABLE, POSITIONAL, compose, does
from error_handling import ImmutableStructureViolation, PositionalIndexError, TypeMismatch
from iteration import Iterable, IterationEnd, Iterator


# ============================================================================
# SCALAR CONTAINERS
# ============================================================================

class Box:
  """Single-value container; opts its contents out of flattening and slipping"""
  __slots__ = ('value',)

  def __init__(self, value: Any = None):
    self.value = value

  def __eq__(self, other: Any) -> bool:
    return isinstance(other, Box) and self.value == other.value

  __hash__ = None

  def __repr__(self) -> str:
    return f"Box({self.value!r})"


def decont(value: Any) -> Any:
  """Strip Box containers"""
  while isinstance(value, Box):
    value = value.value
  return value


class Pair:
  """Key/value pair

  `bare` is fixed at construction: True for an unquoted, unparenthesized
  literal, which is the only kind of pair an argument list diverts into its
  named part.
  """

  def __init__(self, key: Any, value: Any, bare: bool = True):
    self.key = key
    self.value = value
    self.bare = bare

  def __eq__(self, other: Any) -> bool:
    return isinstance(other, Pair) and self.key == other.key and self.value == other.value

  __hash__ = None

  def __repr__(self) -> str:
    return f"Pair({self.key!r}, {self.value!r})"


class Spread:
  """Prefix spread marker applied to a positional or associative value"""

  def __init__(self, value: Any):
    self.value = value

  def __repr__(self) -> str:
    return f"Spread({self.value!r})"


def _splice(elements):
  """List-literal construction: inline Slips and spreads, nest everything else"""
  for element in elements:
    if isinstance(element, Slip):
      yield from element
    elif isinstance(element, Spread):
      inner = decont(element.value)
      if does(inner, ITERABLE):
        yield from inner
      else:
        yield inner
    else:
      yield element


def _needs_splice(elements) -> bool:
  return any(isinstance(element, (Slip, Spread)) for element in elements)


def _splices_lazily(element: Any) -> bool:
  if isinstance(element, Slip):
    return element.is_lazy
  if isinstance(element, Spread):
    inner = decont(element.value)
    return does(inner, ITERABLE) and inner.is_lazy
  return False


# ============================================================================
# LIST
# ============================================================================

@compose(POSITIONAL)
class List(Iterable):
  """Immutable ordered sequence of values"""

  def __init__(self, *elements: Any):
    self._todo: Optional[Iterator] = None
    self._lazy = False
    if _needs_splice(elements):
      self._reified: PyList[Any] = []
      self._todo = Iterator(_splice(elements))
      self._lazy = any(_splices_lazily(element) for element in elements)
    else:
      self._reified = [self._store(element) for element in elements]

  @classmethod
  def from_iterable(cls, source: Any, lazy: Optional[bool] = None) -> 'List':
    """Build a List lazily backed by source; nothing is produced yet"""
    lst = cls.__new__(cls)
    lst._reified = []
    if isinstance(source, Iterator):
      lst._todo = source
    elif isinstance(source, Iterable):
      lst._todo = source.iterator()
    else:
      lst._todo = Iterator(source)
    if lazy is None:
      lazy = isinstance(source, Iterable) and source.is_lazy
    lst._lazy = lazy
    return lst

  # Slot hooks; Array overrides them to keep one Box per slot
  def _store(self, value: Any) -> Any:
    return value

  def _load(self, slot: Any) -> Any:
    return slot

  def _reify_until(self, count: int) -> None:
    while len(self._reified) < count and self._todo is not None:
      value = self._todo.pull_one()
      if value is IterationEnd:
        self._todo = None
        break
      self._reified.append(self._store(value))

  def _reify_all(self) -> None:
    while self._todo is not None:
      self._reify_until(len(self._reified) + 1)

  @property
  def reified(self) -> int:
    """Number of slots produced so far"""
    return len(self._reified)

  @property
  def is_lazy(self) -> bool:
    return self._lazy and self._todo is not None

  def _walk(self, raw: bool = False):
    index = 0
    while True:
      self._reify_until(index + 1)
      if index >= len(self._reified):
        return
      slot = self._reified[index]
      yield slot if raw else self._load(slot)
      index += 1

  def iterator(self) -> Iterator:
    return Iterator(self._walk())

  def elems(self) -> int:
    self._reify_all()
    return len(self._reified)

  def __len__(self) -> int:
    return self.elems()

  def __bool__(self) -> bool:
    self._reify_until(1)
    return bool(self._reified)

  def exists_pos(self, index: int) -> bool:
    if index < 0:
      self._reify_all()
      return len(self._reified) + index >= 0
    self._reify_until(index + 1)
    return index < len(self._reified)

  def at_pos(self, index: int) -> Any:
    """Element at index; negative indices count from the end"""
    if index < 0:
      self._reify_all()
      resolved = len(self._reified) + index
      if resolved < 0:
        raise PositionalIndexError(index, len(self._reified))
      return self._load(self._reified[resolved])
    self._reify_until(index + 1)
    if index >= len(self._reified):
      raise PositionalIndexError(index, len(self._reified))
    return self._load(self._reified[index])

  def __getitem__(self, index: Any) -> Any:
    if isinstance(index, int) and not isinstance(index, bool):
      return self.at_pos(index)
    from contexts import slice_index
    return slice_index(self, index)

  def __setitem__(self, index: Any, value: Any) -> None:
    raise ImmutableStructureViolation(index, type(self).__name__, "assign to")

  def __delitem__(self, index: Any) -> None:
    raise ImmutableStructureViolation(index, type(self).__name__, "delete")

  def __eq__(self, other: Any) -> bool:
    if isinstance(other, (List, Range, list, tuple)):
      if isinstance(other, Range) and other.is_lazy:
        return False
      return list(self) == list(other)
    return NotImplemented

  __hash__ = None

  def __repr__(self) -> str:
    shown = ', '.join(repr(self._load(slot)) for slot in self._reified)
    if self._todo is not None:
      shown = f"{shown}, ..." if shown else "..."
    return f"{type(self).__name__}({shown})"

  def list(self) -> 'List':
    return self

  def cache(self) -> 'List':
    return self

  def eager(self) -> 'List':
    """Produce every remaining slot now"""
    self._reify_all()
    return self

  def reverse(self) -> 'List':
    self._reify_all()
    return List.from_iterable([self._load(slot) for slot in reversed(self._reified)])

  def head(self, count: int = 1) -> 'Seq':
    return Seq(itertools.islice(self, count))


class Slip(List):
  """A List whose elements splice into an enclosing list"""


Empty = Slip()


def slip(*args: Any) -> Slip:
  """Make a Slip; a single iterable argument provides the elements"""
  if len(args) == 1 and not isinstance(args[0], Box) and does(args[0], ITERABLE):
    return Slip.from_iterable(args[0])
  return Slip(*args)


# ============================================================================
# ARRAY
# ============================================================================

class Array(List):
  """Mutable List; every slot is its own Box"""

  def _store(self, value: Any) -> Box:
    return Box(decont(value))

  def _load(self, slot: Box) -> Any:
    return slot.value

  def slots(self) -> Iterator:
    """Cursor over the slot Boxes themselves"""
    return Iterator(self._walk(raw=True))

  def slot(self, index: int) -> Box:
    """The Box holding element index"""
    self.at_pos(index)
    if index < 0:
      index += len(self._reified)
    return self._reified[index]

  def __setitem__(self, index: Any, value: Any) -> None:
    if not isinstance(index, int) or isinstance(index, bool):
      raise TypeMismatch("Int", type(index).__name__, "Array element assignment")
    if index < 0:
      self.slot(index).value = decont(value)
      return
    self._reify_until(index + 1)
    while len(self._reified) <= index:
      self._reified.append(Box())
    self._reified[index].value = decont(value)

  def __delitem__(self, index: Any) -> None:
    self.at_pos(index)
    if index < 0:
      index += len(self._reified)
    del self._reified[index]

  def store_from(self, source: Iterator, lazy: bool = False) -> 'Array':
    """Replace the contents with values pulled from source

    Everything is pulled before returning unless lazy is set.
    """
    self._reified = []
    self._todo = source
    self._lazy = lazy
    if not lazy:
      self._reify_all()
    return self

  def push(self, *values: Any) -> 'Array':
    self._reify_all()
    self._reified.extend(self._store(value) for value in values)
    return self

  def append(self, *values: Any) -> 'Array':
    """Like push, but iterable arguments contribute their elements"""
    self._reify_all()
    for value in values:
      if not isinstance(value, Box) and does(value, ITERABLE):
        self._reified.extend(self._store(v) for v in value)
      else:
        self._reified.append(self._store(value))
    return self

  def pop(self) -> Any:
    self._reify_all()
    if not self._reified:
      raise PositionalIndexError(-1, 0)
    return self._load(self._reified.pop())

  def shift(self) -> Any:
    self._reify_until(1)
    if not self._reified:
      raise PositionalIndexError(0, 0)
    return self._load(self._reified.pop(0))

  def unshift(self, *values: Any) -> 'Array':
    self._reified[0:0] = [self._store(value) for value in values]
    return self


# ============================================================================
# RANGE
# ============================================================================

@compose(POSITIONAL)
class Range(Iterable):
  """Integer range; infinite (and lazy) when end is None"""

  def __init__(self, start: int, end: Optional[float] = None, exclude_end: bool = False):
    self.start = start
    self.end = None if end is None or end == math.inf else end
    self.exclude_end = exclude_end

  @property
  def is_lazy(self) -> bool:
    return self.end is None

  @property
  def _stop(self) -> int:
    return self.end if self.exclude_end else self.end + 1

  def iterator(self) -> Iterator:
    if self.end is None:
      return Iterator(itertools.count(self.start))
    return Iterator(range(self.start, self._stop))

  def elems(self) -> float:
    if self.end is None:
      return math.inf
    return max(0, self._stop - self.start)

  def __len__(self) -> int:
    if self.end is None:
      raise OverflowError("cannot take the length of an infinite Range")
    return self.elems()

  def __bool__(self) -> bool:
    return self.elems() > 0

  def exists_pos(self, index: int) -> bool:
    if self.end is None:
      return index >= 0
    return -self.elems() <= index < self.elems()

  def at_pos(self, index: int) -> int:
    if not self.exists_pos(index):
      raise PositionalIndexError(index, None if self.end is None else self.elems())
    if index < 0:
      index += self.elems()
    return self.start + index

  def __getitem__(self, index: Any) -> Any:
    if isinstance(index, int) and not isinstance(index, bool):
      return self.at_pos(index)
    from contexts import slice_index
    return slice_index(self, index)

  def __setitem__(self, index: Any, value: Any) -> None:
    raise ImmutableStructureViolation(index, "Range", "assign to")

  def __delitem__(self, index: Any) -> None:
    raise ImmutableStructureViolation(index, "Range", "delete")

  def __eq__(self, other: Any) -> bool:
    if isinstance(other, Range):
      return (self.start, self.end, self.exclude_end) == (other.start, other.end, other.exclude_end)
    if isinstance(other, (List, list, tuple)) and self.end is not None:
      return list(self) == list(other)
    return NotImplemented

  __hash__ = None

  def __repr__(self) -> str:
    if self.end is None:
      return f"Range({self.start}, *)"
    return f"Range({self.start}, {self.end}{', exclude_end=True' if self.exclude_end else ''})"

  def list(self) -> List:
    return List.from_iterable(self)


# ============================================================================
# SEQ
# ============================================================================

class Seq(Iterable):
  """Single-pass lazy sequence

  All iterator views share one cursor, so exhausting one exhausts them all.
  cache() interposes a List that retains what it pulls.
  """

  def __init__(self, source: Any = (), lazy: bool = False):
    if isinstance(source, Iterator):
      self._cursor = source
    elif isinstance(source, Iterable):
      self._cursor = source.iterator()
    else:
      self._cursor = Iterator(source)
    self._lazy = lazy
    self._cache: Optional[List] = None

  @property
  def is_lazy(self) -> bool:
    return self._lazy

  @property
  def is_cached(self) -> bool:
    return self._cache is not None

  def iterator(self) -> Iterator:
    if self._cache is not None:
      return self._cache.iterator()
    return self._cursor

  def cache(self) -> List:
    """List view retaining produced elements; further production stays lazy"""
    if self._cache is None:
      self._cache = List.from_iterable(self._cursor, lazy=self._lazy)
    return self._cache

  def list(self) -> List:
    return self.cache()

  def eager(self) -> List:
    return self.cache().eager()

  def elems(self) -> int:
    return self.cache().elems()

  # No __len__: list() must not cache a Seq
  def __bool__(self) -> bool:
    return bool(self.cache())

  def __getitem__(self, index: Any) -> Any:
    """Consuming access relative to the cursor unless the Seq is cached

    Subscripts other than a single integer cache the Seq first.
    """
    if self._cache is not None:
      return self._cache[index]
    if not isinstance(index, int) or isinstance(index, bool):
      return self.cache()[index]
    if index < 0:
      raise PositionalIndexError(index)
    for _ in range(index):
      if not self._cursor.skip_one():
        raise PositionalIndexError(index)
    value = self._cursor.pull_one()
    if value is IterationEnd:
      raise PositionalIndexError(index)
    return value

  def __repr__(self) -> str:
    if self._cache is not None:
      return f"Seq(cached={self._cache!r})"
    return "Seq(...)"


# ============================================================================
# HASH
# ============================================================================

@compose(ASSOCIATIVE)
class Hash(Iterable):
  """Mutable mapping; iterates as Pairs"""

  def __init__(self, *pairs: Any, **named: Any):
    self._storage: Dict[Any, Any] = {}
    for item in pairs:
      item = decont(item)
      if isinstance(item, Pair):
        self._storage[item.key] = item.value
      elif isinstance(item, Hash):
        self._storage.update(item._storage)
      elif isinstance(item, dict):
        self._storage.update(item)
      else:
        raise TypeMismatch("Pair", type(item).__name__, "Hash construction")
    self._storage.update(named)

  def iterator(self) -> Iterator:
    return Iterator(Pair(key, value, bare=False) for key, value in list(self._storage.items()))

  def exists_key(self, key: Any) -> bool:
    return key in self._storage

  def at_key(self, key: Any) -> Any:
    return self._storage[key]

  def __getitem__(self, key: Any) -> Any:
    if (isinstance(key, (Iterable, list, tuple, slice, Box)) or callable(key)
        or getattr(type(key), '__hash__', None) is None):
      from contexts import slice_index
      return slice_index(self, key)
    return self._storage[key]

  def __setitem__(self, key: Any, value: Any) -> None:
    self._storage[key] = value

  def __delitem__(self, key: Any) -> None:
    del self._storage[key]

  def __contains__(self, key: Any) -> bool:
    return key in self._storage

  def __len__(self) -> int:
    return len(self._storage)

  def elems(self) -> int:
    return len(self._storage)

  def keys(self) -> List:
    return List.from_iterable(list(self._storage.keys()))

  def values(self) -> List:
    return List.from_iterable(list(self._storage.values()))

  def items(self):
    return self._storage.items()

  def __eq__(self, other: Any) -> bool:
    if isinstance(other, Hash):
      return self._storage == other._storage
    if isinstance(other, dict):
      return self._storage == other
    return NotImplemented

  __hash__ = None

  def __repr__(self) -> str:
    return f"Hash({self._storage!r})"
