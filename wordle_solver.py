# wordle_solver.py
"""
Elimination and ranking engine for the Wordle assistant.

Feedback patterns, candidate filtering, entropy scoring and a cooperative
ranking scheduler, plus the per-session state machine that ties them together.
"""

import asyncio
import logging
import math
import os
import re
import time
from collections import defaultdict
from concurrent.futures import ProcessPoolExecutor
from enum import Enum, IntEnum
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

WORD_LENGTH = 5
MAX_ROUNDS = 6

# Below this many guesses a process pool costs more than it saves
PARALLEL_THRESHOLD = 500

_WORD_RE = re.compile(r"^[a-z]{%d}$" % WORD_LENGTH)


# -----------------------------
# Errors
# -----------------------------

class WordleError(Exception):
    """Base class for every error raised by the engine."""


class InvalidTokenError(WordleError, ValueError):
    """A string that is not exactly WORD_LENGTH letters A-Z."""


class InvalidPatternError(WordleError, ValueError):
    """A feedback pattern that cannot be parsed."""


class InvalidGuessError(WordleError, ValueError):
    """Wrong length, or a word outside the allowed-guess vocabulary."""


class InvalidFeedbackError(WordleError, ValueError):
    """Feedback addressed to a round or tile that is not editable."""


class SessionFinishedError(WordleError):
    """The session is solved, contradicted or exhausted; reset to play again."""


class StaleRankingDiscarded(WordleError):
    """
    An in-flight ranking was invalidated before it could publish.

    `superseded` is True when a newer request replaced it, False when the
    candidate store changed underneath it.
    """

    def __init__(self, message, superseded=True):
        super().__init__(message)
        self.superseded = superseded


# -----------------------------
# Tokens and Patterns
# -----------------------------

class Token(str):
    """
    A normalized five-letter word.

    Input is case-insensitive; the stored form is lower case. Equality and
    ordering are plain string equality and ordering.
    """

    __slots__ = ()

    def __new__(cls, word):
        if isinstance(word, Token):
            return word
        if not isinstance(word, str):
            raise InvalidTokenError(f"Expected a word, got {type(word).__name__}")
        w = word.strip().lower()
        if not _WORD_RE.match(w):
            raise InvalidTokenError(f"'{word}' is not a {WORD_LENGTH}-letter word")
        return super().__new__(cls, w)

    def display(self):
        return self.upper()


class Feedback(IntEnum):
    """Per-tile feedback. Values match the usual 0=gray, 1=yellow, 2=green."""

    MISS = 0
    MISPLACED = 1
    EXACT = 2

    @property
    def square(self):
        return _SQUARES[self]

    @property
    def letter(self):
        return "KYG"[self]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidPatternError(f"Feedback value out of range: {value}") from None
        if isinstance(value, str):
            key = value.strip().replace("\ufe0f", "")
            if key.upper() in cls.__members__:
                return cls[key.upper()]
            if key.upper() in _CHAR_TO_FEEDBACK:
                return _CHAR_TO_FEEDBACK[key.upper()]
        raise InvalidPatternError(f"Unrecognized feedback symbol: {value!r}")


_SQUARES = {Feedback.MISS: "⬜", Feedback.MISPLACED: "🟨", Feedback.EXACT: "🟩"}

_CHAR_TO_FEEDBACK = {
    "0": Feedback.MISS,
    "1": Feedback.MISPLACED,
    "2": Feedback.EXACT,
    "K": Feedback.MISS,
    "B": Feedback.MISS,
    "X": Feedback.MISS,
    ".": Feedback.MISS,
    "-": Feedback.MISS,
    "Y": Feedback.MISPLACED,
    "G": Feedback.EXACT,
    "⬜": Feedback.MISS,
    "⬛": Feedback.MISS,
    "🟨": Feedback.MISPLACED,
    "🟩": Feedback.EXACT,
}


class Pattern(tuple):
    """
    Feedback for one guess against one answer: WORD_LENGTH Feedback values.

    Compares and hashes like the tuple of its integer values, so
    ``Pattern([2, 2, 2, 0, 2]) == (2, 2, 2, 0, 2)``.
    """

    __slots__ = ()

    def __new__(cls, symbols):
        if isinstance(symbols, Pattern):
            return symbols
        values = tuple(Feedback.parse(s) for s in symbols)
        if len(values) != WORD_LENGTH:
            raise InvalidPatternError(
                f"Pattern must have {WORD_LENGTH} tiles, got {len(values)}"
            )
        return super().__new__(cls, values)

    @classmethod
    def parse(cls, value):
        """
        Build a Pattern from any of the accepted spellings.

        Accepts a sequence of ints or Feedback values, a digit string
        ("01200"), a letter string ("KYGKK") or emoji squares.
        """
        if isinstance(value, str):
            return cls(value.strip().replace("\ufe0f", ""))
        try:
            return cls(value)
        except TypeError:
            raise InvalidPatternError(f"Cannot read a pattern from {value!r}") from None

    @property
    def code(self):
        """Base-3 integer, first tile most significant (0..242)."""
        code = 0
        for digit in self:
            code = code * 3 + digit
        return code

    @property
    def letters(self):
        return "".join(f.letter for f in self)

    def __str__(self):
        return "".join(f.square for f in self)

    def __repr__(self):
        return f"Pattern('{self.letters}')"


# -----------------------------
# Feedback Engine
# -----------------------------

def _feedback_digits(guess, answer):
    """Two-pass feedback as a plain tuple of ints; hot path for scoring."""
    pattern = [0] * WORD_LENGTH
    answer_chars = list(answer)

    # Greens first, consuming the matched answer letter
    for i, ch in enumerate(guess):
        if answer[i] == ch:
            pattern[i] = 2
            answer_chars[i] = None

    # Yellows only while unconsumed copies remain
    for i, ch in enumerate(guess):
        if pattern[i] == 0 and ch in answer_chars:
            pattern[i] = 1
            answer_chars[answer_chars.index(ch)] = None

    return tuple(pattern)


def compute_feedback(guess, answer):
    """
    Feedback pattern that `guess` would receive if `answer` were the solution.

    Repeated letters are handled the standard way: a guess letter is only
    marked misplaced while an unmatched copy of it is left in the answer.
    """
    return Pattern(_feedback_digits(Token(guess), Token(answer)))


def matches_pattern(guess, candidate, pattern):
    return _feedback_digits(Token(guess), Token(candidate)) == Pattern.parse(pattern)


def filter_candidates(candidates, guess, pattern):
    """Filter candidates based on feedback pattern."""
    guess = Token(guess)
    target = Pattern.parse(pattern)
    return [w for w in map(Token, candidates) if _feedback_digits(guess, w) == target]


# -----------------------------
# Candidate Store
# -----------------------------

class CandidateStore:
    """
    Answers still consistent with every committed feedback row.

    `generation` changes whenever the contents change, so readers holding a
    snapshot can tell when it has gone stale.
    """

    def __init__(self, answers):
        self._universe = tuple(Token(w) for w in answers)
        self._candidates = list(self._universe)
        self.generation = 0

    def filter(self, guess, pattern):
        before = len(self._candidates)
        self._candidates = filter_candidates(self._candidates, guess, pattern)
        if len(self._candidates) != before:
            self.generation += 1

    def reset(self):
        if len(self._candidates) != len(self._universe):
            self.generation += 1
        self._candidates = list(self._universe)

    def size(self):
        return len(self._candidates)

    def snapshot(self) -> Tuple[Token, ...]:
        return tuple(self._candidates)

    @property
    def universe_size(self):
        return len(self._universe)

    def __len__(self):
        return len(self._candidates)

    def __contains__(self, word):
        try:
            return Token(word) in self._candidates
        except InvalidTokenError:
            return False


# -----------------------------
# Entropy and Scoring
# -----------------------------

def _entropy_from_counts(counts, total):
    # Summed in sorted order so equal partitions give bit-identical scores
    h = 0.0
    for count in sorted(counts):
        p = count / total
        h -= p * math.log2(p)
    return h


def _partition(guess, candidates):
    partitions = defaultdict(int)
    for target in candidates:
        partitions[_feedback_digits(guess, target)] += 1
    return partitions


def _entropy(guess, candidates):
    # Inputs must already be Tokens; used on the ranking hot path
    total = len(candidates)
    if total <= 1:
        return 0.0
    return _entropy_from_counts(_partition(guess, candidates).values(), total)


def pattern_distribution(guess, candidates) -> Dict[Pattern, int]:
    """Count of candidates per feedback pattern, ordered by pattern code."""
    partitions = _partition(Token(guess), [Token(w) for w in candidates])
    buckets = {Pattern(key): count for key, count in partitions.items()}
    return dict(sorted(buckets.items(), key=lambda item: item[0].code))


def entropy(guess, candidates) -> float:
    """
    Expected information gain (bits) of `guess` against a uniform prior over
    `candidates`. Zero when there is nothing left to distinguish.
    """
    return _entropy(Token(guess), [Token(w) for w in candidates])


class ScoredGuess(NamedTuple):
    word: Token
    entropy: float
    index: int
    is_candidate: bool


# -----------------------------
# Parallel Processing Helper (must be module-level for pickling)
# -----------------------------

def _score_slice(args):
    """Score a contiguous run of guesses; returns (entropy, vocabulary index, word)."""
    start, guesses, candidates = args
    return [(_entropy(w, candidates), start + i, w) for i, w in enumerate(guesses)]


def _publish(scored, candidates, top_k):
    scored.sort(key=lambda t: (-t[0], t[1]))
    if top_k is not None:
        scored = scored[:top_k]
    candidate_set = frozenset(candidates)
    return [ScoredGuess(w, h, idx, w in candidate_set) for h, idx, w in scored]


def _check_top_k(top_k):
    if top_k is not None and top_k < 1:
        raise ValueError(f"top_k must be at least 1, got {top_k}")


def rank_guesses(allowed, candidates, top_k=None, max_workers=None) -> List[ScoredGuess]:
    """
    Score every allowed guess against `candidates`, best first.

    Ties keep vocabulary order. Pools of PARALLEL_THRESHOLD guesses or more are
    split into contiguous partitions across a process pool; the merged result
    is re-sorted, so the output does not depend on the worker count.

    Args:
        allowed: Guess vocabulary, in its canonical order
        candidates: Current possible answers
        top_k: Number of results to return (None = all)
        max_workers: Number of parallel processes (None = CPU count, 1 = serial)
    """
    _check_top_k(top_k)
    guesses = tuple(map(Token, allowed))
    candidates = tuple(map(Token, candidates))

    if max_workers is None:
        max_workers = os.cpu_count() or 1

    if max_workers <= 1 or len(guesses) < PARALLEL_THRESHOLD:
        scored = _score_slice((0, guesses, candidates))
    else:
        step = math.ceil(len(guesses) / max_workers)
        args = [(i, guesses[i:i + step], candidates) for i in range(0, len(guesses), step)]
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            scored = [item for part in executor.map(_score_slice, args) for item in part]

    return _publish(scored, candidates, top_k)


# -----------------------------
# Ranking Scheduler
# -----------------------------

ProgressCallback = Callable[[int, int], None]


class RankingScheduler:
    """
    Cooperative ranking over the full guess vocabulary.

    Work runs in slices of `chunk_size` guesses with a yield to the event loop
    after each one. A new request, or any change to the candidate store, makes
    the running request raise StaleRankingDiscarded at its next slice boundary.
    """

    def __init__(self, chunk_size=100, progress_every=1000, executor=None):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size
        self.progress_every = max(1, progress_every)
        self.executor = executor
        self.generation = 0

    def invalidate(self):
        self.generation += 1

    def _ensure_current(self, generation, store, store_generation):
        if generation != self.generation:
            logger.debug(f"Discarding ranking generation {generation}: superseded")
            raise StaleRankingDiscarded(f"Ranking generation {generation} superseded")
        if store.generation != store_generation:
            logger.debug(f"Discarding ranking generation {generation}: candidates changed")
            raise StaleRankingDiscarded(
                f"Candidates changed during ranking generation {generation}", superseded=False
            )

    async def rank(self, allowed: Sequence[Token], store: CandidateStore, top_k=None,
                   progress: Optional[ProgressCallback] = None) -> List[ScoredGuess]:
        _check_top_k(top_k)
        self.generation += 1
        generation = self.generation
        store_generation = store.generation

        guesses = tuple(map(Token, allowed))
        candidates = store.snapshot()
        total = len(guesses)
        loop = asyncio.get_running_loop()
        started = time.perf_counter()

        scored = []
        reported = 0
        for begin in range(0, total, self.chunk_size):
            args = (begin, guesses[begin:begin + self.chunk_size], candidates)
            if self.executor is None:
                scored.extend(_score_slice(args))
            else:
                scored.extend(await loop.run_in_executor(self.executor, _score_slice, args))
                self._ensure_current(generation, store, store_generation)

            processed = len(scored)
            if progress is not None and (
                processed == total
                or processed // self.progress_every > reported // self.progress_every
            ):
                progress(processed, total)
                reported = processed

            await asyncio.sleep(0)
            self._ensure_current(generation, store, store_generation)

        if total == 0 and progress is not None:
            progress(0, 0)

        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            f"Ranked {total} guesses against {len(candidates)} candidates in {elapsed:.2f}ms"
        )
        return _publish(scored, candidates, top_k)


# -----------------------------
# Stateful Solver Class
# -----------------------------

class SessionState(Enum):
    AWAITING_GUESS = "awaiting_guess"
    SOLVED = "solved"
    CONTRADICTION = "contradiction"
    EXHAUSTED = "exhausted"


class WordleSolver:
    """
    One puzzle in progress: candidate store, round counter and pending row.

    A round is played by submitting a word, setting its feedback tiles (all
    MISS until changed) and committing.
    """

    def __init__(self, vocabulary, max_rounds=MAX_ROUNDS, scheduler=None):
        """
        Args:
            vocabulary: Object exposing `answers`, `allowed` and `allowed_set`
            max_rounds: Committed guesses before the session is exhausted
            scheduler: RankingScheduler to use (a fresh one by default)
        """
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.vocabulary = vocabulary
        self.max_rounds = max_rounds
        self.store = CandidateStore(vocabulary.answers)
        self.scheduler = scheduler or RankingScheduler()
        self.ranking_progress = (0, 0)
        self._clear()

    def _clear(self):
        self.state = SessionState.AWAITING_GUESS
        self.round = 0
        self.history: List[Tuple[Token, Pattern]] = []
        self.pending_word: Optional[Token] = None
        self.pending_pattern = [Feedback.MISS] * WORD_LENGTH

    @property
    def is_finished(self):
        return self.state is not SessionState.AWAITING_GUESS

    def _require_active(self):
        if self.is_finished:
            raise SessionFinishedError(
                f"Session is {self.state.value}; reset to start again"
            )

    def submit_guess(self, word):
        """Set the word for the active round. Nothing changes if it is rejected."""
        self._require_active()
        try:
            token = Token(word)
        except InvalidTokenError as e:
            raise InvalidGuessError(str(e)) from e
        if token not in self.vocabulary.allowed_set:
            raise InvalidGuessError(f"'{token.display()}' is not in the word list")
        self.pending_word = token
        return token

    def set_feedback(self, round_index, position, symbol):
        self._require_active()
        if round_index != self.round:
            raise InvalidFeedbackError(
                f"Only round {self.round} is editable, not round {round_index}"
            )
        if not 0 <= position < WORD_LENGTH:
            raise InvalidFeedbackError(f"Tile position out of range: {position}")
        try:
            value = Feedback.parse(symbol)
        except InvalidPatternError as e:
            raise InvalidFeedbackError(str(e)) from e
        self.pending_pattern[position] = value

    def set_pattern(self, pattern):
        self._require_active()
        self.pending_pattern = list(Pattern.parse(pattern))

    def commit(self) -> SessionState:
        """Filter by the pending row and advance the round."""
        self._require_active()
        if self.pending_word is None:
            raise InvalidGuessError(f"No guess submitted for round {self.round}")

        word = self.pending_word
        pattern = Pattern(self.pending_pattern)
        before = self.store.size()
        self.store.filter(word, pattern)
        after = self.store.size()

        self.history.append((word, pattern))
        self.round += 1
        self.pending_word = None
        self.pending_pattern = [Feedback.MISS] * WORD_LENGTH

        logger.info(f"Guess '{word.display()}' → Pattern: {pattern}")
        logger.info(f"Filtered from {before} to {after} candidates")
        if 0 < after <= 10:
            logger.info(f"Remaining words: {', '.join(self.store.snapshot())}")

        if after == 0:
            self.state = SessionState.CONTRADICTION
            logger.warning("No candidates remain! Check your pattern.")
        elif after == 1:
            self.state = SessionState.SOLVED
            logger.info(f"Answer found: '{self.solution}'")
        elif self.round >= self.max_rounds:
            self.state = SessionState.EXHAUSTED
            logger.info(f"Out of rounds with {after} candidates left")
        return self.state

    def guess(self, word, pattern):
        """
        Submit `word`, apply `pattern` and commit in one step.

        Returns:
            The resulting SessionState
        """
        pattern = Pattern.parse(pattern)
        self.submit_guess(word)
        self.pending_pattern = list(pattern)
        return self.commit()

    def reset(self):
        """Reset solver to initial state."""
        self.store.reset()
        self.ranking_progress = (0, 0)
        self._clear()
        logger.info("Solver reset!")

    # Queries

    def remaining_count(self):
        return self.store.size()

    def remaining_words(self, limit=None) -> List[Token]:
        words = self.store.snapshot()
        if limit is None:
            return list(words)
        if limit < 0:
            raise ValueError("limit must not be negative")
        return list(words[:limit])

    def distribution(self, guess):
        return pattern_distribution(Token(guess), self.store.snapshot())

    async def request_ranking(self, top_k=None, progress: Optional[ProgressCallback] = None):
        """
        Rank the allowed guesses against the current candidates.

        Restarts from scratch if a commit or reset lands mid-way. Returns None
        when a newer request on this session replaced this one.
        """
        def report(processed, total):
            self.ranking_progress = (processed, total)
            if progress is not None:
                progress(processed, total)

        while True:
            try:
                return await self.scheduler.rank(self.vocabulary.allowed, self.store, top_k, report)
            except StaleRankingDiscarded as e:
                if e.superseded:
                    return None
                logger.info("Candidates changed during ranking; restarting")

    @property
    def solution(self):
        if self.store.size() == 1:
            return self.store.snapshot()[0]
        return None

    @property
    def uncertainty_bits(self):
        n = self.store.size()
        return math.log2(n) if n > 0 else 0.0

    @property
    def progress_percent(self):
        """Share of the answer space eliminated so far (100 once solved)."""
        total = self.store.universe_size
        current = self.store.size()
        if current == 1:
            return 100.0
        if total <= 1:
            return 0.0
        percentage = (total - current) / (total - 1) * 100
        return max(0.0, min(100.0, percentage))
