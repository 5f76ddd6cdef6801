"""
Test configuration for PyMancer tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_interpreter
from parsing import create_parser


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def interpreter():
  """Provide an interpreter with the default context"""
  return create_interpreter()


@pytest.fixture
def run(interpreter):
  """Run a program given as a list of lines"""
  def _run(*lines):
    return interpreter.execute("\n".join(lines))
  return _run
