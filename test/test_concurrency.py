"""
Tests for batch-parallel processing (hyper / race)
"""

import itertools
import threading

import pykka
import pytest

from concurrency import HyperSeq, apply_operations, read_batches
from containers import List, Range, Seq
from iteration import Iterator
from parsing import create_parser
from semantics import create_analyzer
from interpreter import create_interpreter
from stdlib import lisq_gist


@pytest.fixture(autouse=True)
def stop_actors():
    yield
    pykka.ActorRegistry.stop_all()


class TestBatching:
    """Batch reading and the operation chain"""

    def test_read_batches(self):
        batches = list(read_batches(Iterator(range(7)), 3))
        assert batches == [[0, 1, 2], [3, 4, 5], [6]]

    def test_read_batches_exact_multiple(self):
        assert list(read_batches(Iterator(range(4)), 2)) == [[0, 1], [2, 3]]

    def test_apply_operations_in_order(self):
        operations = (('map', lambda x: x * 3), ('grep', lambda x: x % 2 == 0))
        assert apply_operations([1, 2, 3, 4], operations) == [6, 12]


class TestHyper:
    """Order-preserving parallel map/grep"""

    def test_preserves_order(self):
        result = Range(1, 100).hyper(batch=7, degree=3).map(lambda x: x * 2).list()
        assert list(result) == [x * 2 for x in range(1, 101)]

    def test_grep(self):
        result = Range(1, 20).hyper(batch=3, degree=2).grep(lambda x: x % 2 == 0).list()
        assert list(result) == list(range(2, 21, 2))

    def test_stacked_operations(self):
        hyper = Range(1, 10).hyper(batch=2, degree=2).map(lambda x: x + 1).grep(lambda x: x > 5)
        assert list(hyper.list()) == [6, 7, 8, 9, 10, 11]

    def test_error_propagates(self):
        def boom(x):
            if x == 50:
                raise ValueError("bad element")
            return x

        with pytest.raises(ValueError, match="bad element"):
            Range(1, 100).hyper(batch=10, degree=2).map(boom).list()

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            Range(1, 3).hyper(batch=0)
        with pytest.raises(ValueError):
            Range(1, 3).hyper(degree=0)
        with pytest.raises(ValueError):
            HyperSeq(List(1), batch=2, degree=-1)

    def test_infinite_source(self):
        hyper = Range(1).hyper(batch=4, degree=2).map(lambda x: x * 10)
        assert list(itertools.islice(hyper, 5)) == [10, 20, 30, 40, 50]

    def test_reads_at_most_degree_batches_ahead(self):
        pulled = []

        def source():
            for i in itertools.count():
                pulled.append(i)
                yield i

        hyper = Seq(source(), lazy=True).hyper(batch=1, degree=2).map(lambda x: x)
        cursor = hyper.iterator()
        assert cursor.pull_one() == 0
        assert len(pulled) == 2

    def test_serial_returns_sequential_seq(self):
        seq = Range(1, 10).hyper(batch=2, degree=2).serial()
        assert isinstance(seq, Seq)
        assert list(seq) == list(range(1, 11))

    def test_work_runs_off_calling_thread(self):
        seen = set()
        lock = threading.Lock()

        def record(x):
            with lock:
                seen.add(threading.get_ident())
            return x

        Range(1, 40).hyper(batch=5, degree=4).map(record).list()
        assert threading.get_ident() not in seen


class TestRace:
    """Completion-order parallel map/grep"""

    def test_same_multiset(self):
        result = Range(1, 100).race(batch=5, degree=4).map(lambda x: x + 1).list()
        assert sorted(result) == list(range(2, 102))

    def test_error_propagates(self):
        def boom(x):
            if x == 7:
                raise KeyError(x)
            return x

        with pytest.raises(KeyError):
            Range(1, 30).race(batch=3, degree=3).map(boom).list()

    def test_switch_to_hyper(self):
        hyper = Range(1, 10).race(batch=2, degree=2).map(lambda x: x * 2).hyper(batch=3, degree=2)
        assert hyper.ordered
        assert list(hyper.list()) == [x * 2 for x in range(1, 11)]


class TestParallelNotation:
    """hyper/race from LISQ source"""

    @pytest.fixture
    def setup(self):
        """Setup parser, analyzer, and interpreter"""
        parser = create_parser()
        analyzer = create_analyzer()
        interpreter = create_interpreter(batch=3, degree=2)
        return parser, analyzer, interpreter

    def test_hyper_map_with_whatever_code(self, setup):
        parser, analyzer, interpreter = setup

        code = '(1..20).hyper.map(**2).list'
        result = interpreter.interpret(analyzer.analyze(parser.parse_string(code)))

        assert lisq_gist(result[-1]) == "(" + " ".join(str(x * x) for x in range(1, 21)) + ")"

    def test_execution_context_defaults(self, setup):
        parser, analyzer, interpreter = setup

        result = interpreter.interpret(analyzer.analyze(parser.parse_string('(1..5).hyper')))

        assert result[-1].batch == 3
        assert result[-1].degree == 2

    def test_named_arguments_override_defaults(self, setup):
        parser, analyzer, interpreter = setup

        code = 'hyper((1..5), :batch(2), :degree(3))'
        result = interpreter.interpret(analyzer.analyze(parser.parse_string(code)))

        assert result[-1].batch == 2
        assert result[-1].degree == 3

    def test_race_grep(self, setup):
        parser, analyzer, interpreter = setup

        code = '(1..20).race(:batch(3)).grep(*%2).list.elems'
        result = interpreter.interpret(analyzer.analyze(parser.parse_string(code)))

        assert result[-1] == 10
