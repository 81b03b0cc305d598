"""
Test configuration for LISQ tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import LisqGrammar, create_parser
from semantics import create_analyzer
from interpreter import create_interpreter


@pytest.fixture
def grammar():
    return LisqGrammar()


@pytest.fixture
def run():
    """Run source through parser, analyzer and interpreter, keeping variables
    between calls; returns the value of each statement"""
    parser = create_parser()
    analyzer = create_analyzer()
    interpreter = create_interpreter(batch=4, degree=2)

    def execute(code):
        return interpreter.interpret(analyzer.analyze(parser.parse_string(code)))

    return execute
