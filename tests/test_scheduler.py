import asyncio
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor

import pytest

from wordle_solver import (
    CandidateStore,
    RankingScheduler,
    StaleRankingDiscarded,
    compute_feedback,
    rank_guesses,
)

ANSWERS = ["crane", "crate", "trace", "slate", "stale", "least", "speed", "abide"]
ALLOWED = ANSWERS + ["adieu", "eerie", "stout"]


def test_sliced_ranking_matches_one_shot():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=3)
    ranked = asyncio.run(scheduler.rank(ALLOWED, store, top_k=5))
    assert ranked == rank_guesses(ALLOWED, ANSWERS, top_k=5, max_workers=1)


def test_progress_reported_at_cadence_and_on_completion():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=2, progress_every=4)
    calls = []
    asyncio.run(scheduler.rank(ALLOWED, store, progress=lambda done, total: calls.append((done, total))))
    assert calls == [(4, 11), (8, 11), (11, 11)]


def test_empty_vocabulary_reports_completion():
    store = CandidateStore(ANSWERS)
    calls = []
    ranked = asyncio.run(RankingScheduler().rank([], store, progress=lambda *a: calls.append(a)))
    assert ranked == []
    assert calls == [(0, 0)]


def test_store_change_mid_ranking_discards_result():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=1, progress_every=1)

    def mutate(done, total):
        if done == 1:
            store.filter("crane", compute_feedback("crane", "slate"))

    with pytest.raises(StaleRankingDiscarded):
        asyncio.run(scheduler.rank(ALLOWED, store, progress=mutate))


def test_newer_request_supersedes_older_one():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=1)

    async def both():
        return await asyncio.gather(
            scheduler.rank(ALLOWED, store, top_k=3),
            scheduler.rank(ALLOWED, store, top_k=3),
            return_exceptions=True,
        )

    older, newer = asyncio.run(both())
    assert isinstance(older, StaleRankingDiscarded)
    assert [s.word for s in newer] == [s.word for s in rank_guesses(ALLOWED, ANSWERS, top_k=3, max_workers=1)]


def test_invalidate_cancels_in_flight_ranking():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=1, progress_every=1)

    with pytest.raises(StaleRankingDiscarded):
        asyncio.run(scheduler.rank(ALLOWED, store, progress=lambda *a: scheduler.invalidate()))


def test_rejects_bad_arguments():
    with pytest.raises(ValueError):
        RankingScheduler(chunk_size=0)
    with pytest.raises(ValueError):
        asyncio.run(RankingScheduler().rank(ALLOWED, CandidateStore(ANSWERS), top_k=0))


def test_executor_backed_ranking_matches_serial():
    store = CandidateStore(ANSWERS)
    with ProcessPoolExecutor(max_workers=2) as executor:
        scheduler = RankingScheduler(chunk_size=3, executor=executor)
        ranked = asyncio.run(scheduler.rank(ALLOWED, store))
    assert ranked == rank_guesses(ALLOWED, ANSWERS, max_workers=1)


def test_superseded_executor_ranking_reports_no_progress():
    store = CandidateStore(ANSWERS)
    older_calls, newer_calls = [], []

    async def both(scheduler):
        return await asyncio.gather(
            scheduler.rank(ALLOWED, store, progress=lambda *a: older_calls.append(a)),
            scheduler.rank(ALLOWED, store, progress=lambda *a: newer_calls.append(a)),
            return_exceptions=True,
        )

    with ThreadPoolExecutor(max_workers=2) as executor:
        scheduler = RankingScheduler(chunk_size=1, progress_every=1, executor=executor)
        older, newer = asyncio.run(both(scheduler))

    assert isinstance(older, StaleRankingDiscarded)
    assert older.superseded
    assert older_calls == []
    assert newer == rank_guesses(ALLOWED, ANSWERS, max_workers=1)
    assert newer_calls[-1] == (11, 11)


def test_store_change_is_not_reported_as_superseded():
    store = CandidateStore(ANSWERS)
    scheduler = RankingScheduler(chunk_size=1, progress_every=1)

    def mutate(done, total):
        store.filter("crane", compute_feedback("crane", "slate"))

    with pytest.raises(StaleRankingDiscarded) as excinfo:
        asyncio.run(scheduler.rank(ALLOWED, store, progress=mutate))
    assert not excinfo.value.superseded
