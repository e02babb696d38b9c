import asyncio
import math

import pytest

from vocabulary import Vocabulary
from wordle_solver import (
    Feedback,
    InvalidFeedbackError,
    InvalidGuessError,
    InvalidPatternError,
    Pattern,
    SessionFinishedError,
    SessionState,
    WordleSolver,
)


def test_all_exact_commit_solves(solver):
    solver.submit_guess("CRANE")
    for position in range(5):
        solver.set_feedback(0, position, Feedback.EXACT)
    state = solver.commit()
    assert state is SessionState.SOLVED
    assert solver.remaining_count() == 1
    assert solver.solution == "crane"
    assert solver.round == 1
    assert solver.progress_percent == 100.0


def test_contradiction_when_nothing_fits():
    solver = WordleSolver(Vocabulary(["crane", "crate"]))
    state = solver.guess("crane", [0, 0, 0, 0, 0])
    assert state is SessionState.CONTRADICTION
    assert solver.remaining_count() == 0
    assert solver.solution is None
    assert solver.uncertainty_bits == 0.0


def test_exhausted_after_max_rounds(vocabulary):
    solver = WordleSolver(vocabulary, max_rounds=1)
    assert solver.guess("adieu", "YKKYK") is SessionState.EXHAUSTED
    assert solver.remaining_count() == 3


def test_solved_beats_exhausted(vocabulary):
    solver = WordleSolver(vocabulary, max_rounds=1)
    assert solver.guess("crate", "GGGGG") is SessionState.SOLVED


def test_round_advances_and_pending_row_clears(solver):
    solver.submit_guess("adieu")
    solver.set_feedback(0, 0, "Y")
    solver.set_feedback(0, 3, 1)
    assert solver.commit() is SessionState.AWAITING_GUESS
    assert solver.round == 1
    assert solver.pending_word is None
    assert solver.pending_pattern == [Feedback.MISS] * 5
    assert solver.history == [("adieu", Pattern("YKKYK"))]


def test_invalid_guesses_leave_state_untouched(solver):
    for word in ["cran", "cranes", "zzzzz", "12345"]:
        with pytest.raises(InvalidGuessError):
            solver.submit_guess(word)
    assert solver.pending_word is None
    assert solver.round == 0
    assert solver.remaining_count() == 3


def test_commit_requires_a_word(solver):
    with pytest.raises(InvalidGuessError):
        solver.commit()
    assert solver.round == 0


def test_guess_with_bad_pattern_changes_nothing(solver):
    with pytest.raises(InvalidPatternError):
        solver.guess("crane", "GGGG")
    assert solver.pending_word is None
    assert solver.remaining_count() == 3


def test_feedback_only_for_active_round(solver):
    solver.submit_guess("crane")
    with pytest.raises(InvalidFeedbackError):
        solver.set_feedback(1, 0, Feedback.EXACT)
    with pytest.raises(InvalidFeedbackError):
        solver.set_feedback(0, 5, Feedback.EXACT)
    with pytest.raises(InvalidFeedbackError):
        solver.set_feedback(0, 0, "purple")
    assert solver.pending_pattern == [Feedback.MISS] * 5


def test_terminal_state_until_reset(solver):
    solver.guess("crane", "GGGGG")
    with pytest.raises(SessionFinishedError):
        solver.submit_guess("crate")
    with pytest.raises(SessionFinishedError):
        solver.commit()

    solver.reset()
    assert solver.state is SessionState.AWAITING_GUESS
    assert solver.round == 0
    assert solver.history == []
    assert solver.remaining_count() == 3


def test_remaining_words_and_limit(solver):
    assert solver.remaining_words() == ["crane", "crate", "trace"]
    assert solver.remaining_words(limit=2) == ["crane", "crate"]
    with pytest.raises(ValueError):
        solver.remaining_words(limit=-1)


def test_distribution_covers_remaining(solver):
    dist = solver.distribution("CRATE")
    assert sum(dist.values()) == solver.remaining_count()
    assert len(dist) == 3


def test_uncertainty_and_progress(solver):
    assert solver.uncertainty_bits == pytest.approx(math.log2(3))
    assert solver.progress_percent == 0.0
    solver.guess("crane", "YGGKG")
    assert solver.remaining_words() == ["trace"]


def test_request_ranking_tracks_progress(solver):
    ranked = asyncio.run(solver.request_ranking(top_k=2))
    assert [s.word for s in ranked] == ["crane", "crate"]
    assert solver.ranking_progress == (5, 5)


def test_request_ranking_restarts_when_candidates_change(solver):
    async def commit_mid_ranking():
        solver.guess("slate", "KKGKG")

    async def both():
        return await asyncio.gather(solver.request_ranking(top_k=3), commit_mid_ranking())

    ranked, _ = asyncio.run(both())
    assert solver.remaining_words() == ["crane"]
    assert ranked is not None
    assert [s.word for s in ranked] == ["crane", "crate", "trace"]
    assert all(s.entropy == 0.0 for s in ranked)
    assert [s.is_candidate for s in ranked] == [True, False, False]
    assert solver.ranking_progress == (5, 5)


def test_request_ranking_returns_none_when_superseded(solver):
    async def both():
        return await asyncio.gather(solver.request_ranking(top_k=2), solver.request_ranking(top_k=2))

    older, newer = asyncio.run(both())
    assert older is None
    assert [s.word for s in newer] == ["crane", "crate"]
