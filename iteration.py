"""
LISQ iteration protocol
Iterator is a pull-based cursor terminated by the IterationEnd sentinel;
Iterable exposes iterator() and the derived lazy operations
"""

from typing import Any, Callable, List, Optional

from capabilities import ITERABLE, compose


DEFAULT_BATCH = 64
DEFAULT_DEGREE = 4


class _IterationEnd:
  """Sentinel returned by pull_one once a cursor is exhausted"""
  _instance = None

  def __new__(cls):
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __bool__(self) -> bool:
    return False

  def __repr__(self) -> str:
    return "IterationEnd"


IterationEnd = _IterationEnd()


# ============================================================================
# ITERATOR
# ============================================================================

class Iterator:
  """Stateful cursor over a possibly infinite source"""

  def __init__(self, source: Any):
    self._source = iter(source)

  def pull_one(self) -> Any:
    """Produce the next value, or IterationEnd when the source ran dry"""
    return next(self._source, IterationEnd)

  def push_exactly(self, target: List[Any], count: int) -> Any:
    """Append up to count values to target

    Returns:
      Number of values pushed, or IterationEnd if the source ended first
    """
    for _ in range(count):
      value = self.pull_one()
      if value is IterationEnd:
        return IterationEnd
      target.append(value)
    return count

  def push_all(self, target: List[Any]) -> None:
    while True:
      value = self.pull_one()
      if value is IterationEnd:
        return
      target.append(value)

  def skip_one(self) -> bool:
    return self.pull_one() is not IterationEnd

  def sink_all(self) -> None:
    while self.pull_one() is not IterationEnd:
      pass

  def __iter__(self):
    return self

  def __next__(self) -> Any:
    value = self.pull_one()
    if value is IterationEnd:
      raise StopIteration
    return value


# ============================================================================
# ITERABLE
# ============================================================================

@compose(ITERABLE)
class Iterable:
  """Anything that can hand out an Iterator"""

  def iterator(self) -> Iterator:
    raise NotImplementedError(f"{type(self).__name__} must implement iterator()")

  @property
  def is_lazy(self) -> bool:
    return False

  def __iter__(self):
    cursor = self.iterator()
    while True:
      value = cursor.pull_one()
      if value is IterationEnd:
        return
      yield value

  def flat(self, depth: Optional[int] = None):
    """Lazily flatten nested iterables, stopping at Box boundaries"""
    from containers import Seq
    from flattening import flatten
    return Seq(flatten(self, depth), lazy=self.is_lazy)

  def lazy(self):
    """Wrap the invocant so assignment does not force it"""
    from containers import Seq
    return Seq(self.iterator(), lazy=True)

  def map(self, fn: Callable[[Any], Any]):
    from containers import Seq
    return Seq((fn(value) for value in self), lazy=self.is_lazy)

  def grep(self, predicate: Callable[[Any], bool]):
    from containers import Seq
    return Seq((value for value in self if predicate(value)), lazy=self.is_lazy)

  def hyper(self, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE):
    """Batched parallel processing that preserves input order"""
    from concurrency import HyperSeq
    return HyperSeq(self, batch, degree, ordered=True)

  def race(self, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE):
    """Batched parallel processing in completion order"""
    from concurrency import HyperSeq
    return HyperSeq(self, batch, degree, ordered=False)
