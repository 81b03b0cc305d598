"""
Tests for flattening: depth-first leaves, Box boundaries, depth limits, laziness
"""

import itertools

from containers import Array, Box, Hash, List, Pair, Range, Seq, Slip
from flattening import flatten


class TestFlatten:
  """flatten() and the .flat method"""

  def test_leaves_in_depth_first_order(self):
    nested = List(1, List(2, List(3)), 4)
    assert list(flatten(nested)) == [1, 2, 3, 4]

  def test_box_blocks_descent(self):
    boxed = Box(List(2, 3))
    result = list(List(1, boxed, 4).flat())
    assert result == [1, boxed, 4]
    assert len(result) == 3

  def test_idempotent(self):
    nested = List(1, List(2, List(3, 4)), Box(List(5)), 6)
    once = List.from_iterable(nested.flat())
    twice = List.from_iterable(once.flat())
    assert list(twice) == list(once)

  def test_depth_limit(self):
    nested = List(1, List(2, List(3)))
    assert list(nested.flat(1)) == [1, 2, List(3)]
    assert list(nested.flat(0)) == [1, List(2, List(3))]

  def test_slip_is_inlined_at_any_depth(self):
    assert list(Seq(iter([1, Slip(2, 3), 4])).flat(0)) == [1, 2, 3, 4]
    assert list(Seq(iter([List(1), Slip(List(2), 3)])).flat(0)) == [List(1), List(2), 3]
    assert list(Seq(iter([Slip(List(2, List(3)))])).flat(1)) == [2, List(3)]

  def test_non_iterable_source(self):
    assert list(flatten(5)) == [5]

  def test_hash_flattens_to_pairs(self):
    assert list(flatten(Hash(Pair('a', 1)))) == [Pair('a', 1)]

  def test_array_elements_stay_itemized(self):
    array = Array(1, List(2, 3))
    result = list(array.flat())
    assert result[0] == 1
    assert isinstance(result[1], Box)
    assert result[1].value == List(2, 3)

  def test_nested_array_spills_its_elements(self):
    assert list(List(Array(1, 2), 3).flat()) == [1, 2, 3]


class TestLazyFlatten:
  """Only as much of the source is produced as the consumer pulls"""

  def test_infinite_range(self):
    assert list(itertools.islice(Range(1).flat(), 5)) == [1, 2, 3, 4, 5]

  def test_infinite_range_nested(self):
    nested = List(List(Range(1)))
    assert list(itertools.islice(flatten(nested), 3)) == [1, 2, 3]

  def test_flat_of_lazy_source_is_lazy(self):
    assert Range(1).flat().is_lazy
    assert not List(1, 2).flat().is_lazy

  def test_source_pulled_on_demand(self):
    produced = []

    def source():
      for i in itertools.count():
        produced.append(i)
        yield List(i)

    flat = Seq(flatten(Seq(source(), lazy=True)), lazy=True)
    cursor = flat.iterator()
    assert cursor.pull_one() == 0
    assert cursor.pull_one() == 1
    assert produced == [0, 1]
