"""
Test configuration for the Logo interpreter tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pykka

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def interpreter():
  """Provide an interpreter with empty state for each test"""
  return create_interpreter()


@pytest.fixture
def run(interpreter):
  """Run a fragment and return its instructions rendered as strings"""
  def _run(source):
    return [str(instruction) for instruction in interpreter.run_program(source)]
  return _run


@pytest.fixture
def stop_actors():
  """Stop every actor a test started"""
  yield
  pykka.ActorRegistry.stop_all()
