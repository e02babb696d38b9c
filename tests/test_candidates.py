from wordle_solver import CandidateStore, Pattern, compute_feedback

WORDS = ["crane", "crate", "trace", "slate", "stale", "least"]


def test_filter_keeps_consistent_words_in_order():
    store = CandidateStore(WORDS)
    store.filter("crate", compute_feedback("crate", "slate"))
    assert store.snapshot() == ("slate",)


def test_filter_is_monotone_and_keeps_true_answer():
    store = CandidateStore(WORDS)
    answer = "stale"
    sizes = [store.size()]
    for guess in ["crane", "least", "slate"]:
        store.filter(guess, compute_feedback(guess, answer))
        sizes.append(store.size())
        assert answer in store
    assert sizes == sorted(sizes, reverse=True)


def test_filter_is_idempotent():
    store = CandidateStore(WORDS)
    pattern = compute_feedback("crane", "crate")
    store.filter("crane", pattern)
    first = store.snapshot()
    generation = store.generation
    store.filter("crane", pattern)
    assert store.snapshot() == first
    assert store.generation == generation


def test_empty_result_is_not_an_error():
    store = CandidateStore(["crane", "crate"])
    store.filter("crane", Pattern([0, 0, 0, 0, 0]))
    assert store.size() == 0
    assert len(store) == 0


def test_reset_restores_answer_space():
    store = CandidateStore(WORDS)
    store.filter("crane", compute_feedback("crane", "least"))
    assert store.size() < len(WORDS)
    generation = store.generation
    store.reset()
    assert store.snapshot() == tuple(WORDS)
    assert store.generation == generation + 1


def test_generation_only_moves_on_change():
    store = CandidateStore(WORDS)
    store.reset()
    assert store.generation == 0
    store.filter("crane", compute_feedback("crane", "trace"))
    assert store.generation == 1
