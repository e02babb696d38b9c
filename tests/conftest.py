import pytest

from vocabulary import Vocabulary
from wordle_solver import WordleSolver

ANSWERS = ["crane", "crate", "trace"]
ALLOWED = ["crane", "crate", "trace", "slate", "adieu"]


@pytest.fixture
def vocabulary():
    return Vocabulary(ANSWERS, ALLOWED)


@pytest.fixture
def solver(vocabulary):
    return WordleSolver(vocabulary)
