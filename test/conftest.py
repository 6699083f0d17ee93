"""
Test configuration for lamb tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


EXAMPLES_DIR = project_root / "examples"


@pytest.fixture
def parser():
  """Provide a fresh source parser"""
  return create_parser()


@pytest.fixture
def run(parser):
  """Evaluate source text in a fresh interpreter and return the list of results"""
  def run_source(text, interpreter=None):
    interpreter = interpreter or create_interpreter()
    return interpreter.evaluate_program(parser.parse_string(text))
  return run_source


@pytest.fixture
def examples_dir():
  return EXAMPLES_DIR
