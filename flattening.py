"""
LISQ flattening evaluator
Expands nested iterables into one lazy stream without crossing Box boundaries
"""

from typing import Any, Iterator as PyIterator, List, Optional, Tuple

from capabilities import ITERABLE, does
from containers import Array, Box, Slip
from iteration import IterationEnd, Iterator


def _cursor_for(value: Any) -> Iterator:
  """Cursor over value's elements

  An Array spills its elements, but each one lives in its own slot Box;
  iterable elements come out still in that Box so nothing below is descended.
  """
  if isinstance(value, Array):
    return Iterator(slot if does(slot.value, ITERABLE) else slot.value
                    for slot in value.slots())
  return value.iterator()


def flatten(source: Any, depth: Optional[int] = None, debug: bool = False) -> PyIterator[Any]:
  """Yield the leaves of source depth-first

  Args:
    source: Iterable to flatten
    depth: Maximum number of nested levels to descend into (None = no limit)
    debug: Print a trace line per descent

  Only as much of source is produced as the consumer pulls, so infinite
  sources are fine.

  Examples:
    flatten(List(1, List(2, List(3)), 4)) -> 1, 2, 3, 4
    flatten(List(1, Box(List(2, 3)), 4)) -> 1, Box(List(2, 3)), 4
  """
  if not does(source, ITERABLE):
    yield source
    return

  # (cursor, nesting level); a Slip's cursor shares its parent's level
  stack: List[Tuple[Iterator, int]] = [(_cursor_for(source), 1)]
  while stack:
    cursor, level = stack[-1]
    value = cursor.pull_one()
    if value is IterationEnd:
      stack.pop()
      continue

    if isinstance(value, Box) or not does(value, ITERABLE):
      yield value
    elif isinstance(value, Slip):
      stack.append((value.iterator(), level))
    elif depth is not None and level > depth:
      yield value
    else:
      if debug:
        print(f"flatten: descending into {type(value).__name__} at level {level}")
      stack.append((_cursor_for(value), level + 1))
