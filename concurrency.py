"""
LISQ parallel batch processing (hyper / race)
Input is pulled in fixed-size batches and handed to a bounded pool of pykka
actors; hyper reassembles in input order, race in completion order
"""

from collections import deque
from typing import Any, Callable, List as PyList, Optional, Tuple
import queue

import pykka

from containers import List, Seq
from iteration import DEFAULT_BATCH, DEFAULT_DEGREE, Iterable, IterationEnd, Iterator


Operation = Tuple[str, Callable[[Any], Any]]


def apply_operations(batch: PyList[Any], operations: Tuple[Operation, ...]) -> PyList[Any]:
  """Run the stacked map/grep operations over one batch"""
  for kind, fn in operations:
    if kind == 'map':
      batch = [fn(value) for value in batch]
    elif kind == 'grep':
      batch = [value for value in batch if fn(value)]
    else:
      raise ValueError(f"Unknown batch operation: {kind}")
  return batch


def read_batches(cursor: Iterator, size: int):
  """Pull batches of size values from cursor until it runs dry"""
  while True:
    batch: PyList[Any] = []
    if cursor.push_exactly(batch, size) is IterationEnd:
      if batch:
        yield batch
      return
    yield batch


# ============================================================================
# WORKERS (Using Pykka)
# ============================================================================

class BatchWorker(pykka.ThreadingActor):
  """Actor applying the operation chain to the batches it receives

  With a results queue the outcome is posted there (race); otherwise it is
  the reply to ask (hyper).
  """

  # An abandoned hyper/race iterator must not keep the process alive
  use_daemon_thread = True

  def __init__(self, worker_id: int, operations: Tuple[Operation, ...],
               results: Optional[queue.Queue] = None):
    super().__init__()
    self.worker_id = worker_id
    self.operations = operations
    self.results = results

  def on_receive(self, message):
    if self.results is None:
      return apply_operations(message['batch'], self.operations)
    try:
      processed = apply_operations(message['batch'], self.operations)
    except Exception as e:
      self.results.put((message['sequence'], None, e))
      return None
    self.results.put((message['sequence'], processed, None))
    return None


class WorkerPool:
  """Fixed set of batch workers addressed round-robin"""

  def __init__(self, degree: int, operations: Tuple[Operation, ...],
               results: Optional[queue.Queue] = None):
    self.workers: PyList[pykka.ActorRef] = [
        BatchWorker.start(worker_id, operations, results) for worker_id in range(degree)
    ]

  def worker_for(self, sequence: int) -> pykka.ActorRef:
    return self.workers[sequence % len(self.workers)]

  def terminate_all(self) -> None:
    for actor_ref in self.workers:
      try:
        actor_ref.stop()
      except pykka.ActorDeadError:
        pass
    self.workers = []


def run_ordered(cursor: Iterator, operations: Tuple[Operation, ...], batch: int, degree: int):
  """Yield processed values in input order; at most degree batches in flight"""
  pool = WorkerPool(degree, operations)
  pending = deque()
  try:
    for sequence, values in enumerate(read_batches(cursor, batch)):
      message = {'sequence': sequence, 'batch': values}
      pending.append(pool.worker_for(sequence).ask(message, block=False))
      if len(pending) >= degree:
        yield from pending.popleft().get()
    while pending:
      yield from pending.popleft().get()
  finally:
    pool.terminate_all()


def run_unordered(cursor: Iterator, operations: Tuple[Operation, ...], batch: int, degree: int):
  """Yield processed batches as workers finish them"""
  results = queue.Queue()
  pool = WorkerPool(degree, operations, results)
  batches = read_batches(cursor, batch)
  sequence = 0
  in_flight = 0
  exhausted = False
  try:
    while True:
      while not exhausted and in_flight < degree:
        values = next(batches, None)
        if values is None:
          exhausted = True
          break
        pool.worker_for(sequence).tell({'sequence': sequence, 'batch': values})
        sequence += 1
        in_flight += 1
      if in_flight == 0:
        return
      _, processed, error = results.get()
      in_flight -= 1
      if error is not None:
        raise error
      yield from processed
  finally:
    pool.terminate_all()


# ============================================================================
# HYPERSEQ
# ============================================================================

class HyperSeq(Iterable):
  """Iterable whose map/grep run batch-parallel"""

  def __init__(self, source: Iterable, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE,
               ordered: bool = True, operations: Tuple[Operation, ...] = ()):
    if not isinstance(batch, int) or batch < 1:
      raise ValueError(f"batch must be a positive integer, got {batch!r}")
    if not isinstance(degree, int) or degree < 1:
      raise ValueError(f"degree must be a positive integer, got {degree!r}")
    self.source = source
    self.batch = batch
    self.degree = degree
    self.ordered = ordered
    self.operations = operations

  def _with(self, **changes) -> 'HyperSeq':
    config = {
        'batch': self.batch,
        'degree': self.degree,
        'ordered': self.ordered,
        'operations': self.operations,
    }
    config.update(changes)
    return HyperSeq(self.source, **config)

  def map(self, fn: Callable[[Any], Any]) -> 'HyperSeq':
    return self._with(operations=self.operations + (('map', fn),))

  def grep(self, predicate: Callable[[Any], bool]) -> 'HyperSeq':
    return self._with(operations=self.operations + (('grep', predicate),))

  def hyper(self, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE) -> 'HyperSeq':
    return self._with(batch=batch, degree=degree, ordered=True)

  def race(self, batch: int = DEFAULT_BATCH, degree: int = DEFAULT_DEGREE) -> 'HyperSeq':
    return self._with(batch=batch, degree=degree, ordered=False)

  def iterator(self) -> Iterator:
    run = run_ordered if self.ordered else run_unordered
    return Iterator(run(self.source.iterator(), self.operations, self.batch, self.degree))

  def serial(self) -> Seq:
    """Back to sequential, lazy processing of the results"""
    return Seq(self.iterator())

  def list(self) -> List:
    return List.from_iterable(self.iterator()).eager()

  def __repr__(self) -> str:
    kind = "hyper" if self.ordered else "race"
    return f"HyperSeq({kind}, batch={self.batch}, degree={self.degree})"
