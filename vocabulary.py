# vocabulary.py
"""
Answer and guess word lists, fixed for the lifetime of the process.

Words come either from two newline-separated files or, when none are
configured, from the most common English words.

Dependencies:
    - wordfreq: pip install wordfreq
    - requests: pip install requests
    - beautifulsoup4: pip install beautifulsoup4
"""

import logging
from pathlib import Path

import requests
from bs4 import BeautifulSoup
from wordfreq import top_n_list

from wordle_solver import InvalidTokenError, Token

logger = logging.getLogger(__name__)

PAST_ANSWERS_URL = "https://www.rockpapershotgun.com/wordle-past-answers"


class Vocabulary:
    """
    The answer space and the allowed-guess space.

    Both are deduplicated tuples in first-seen order. Answers missing from the
    allowed list are appended to it, so every answer is always a legal guess.
    """

    def __init__(self, answers, allowed=None):
        self.answers = _unique_tokens(answers)
        allowed = _unique_tokens(answers if allowed is None else allowed)
        known = set(allowed)
        missing = tuple(w for w in self.answers if w not in known)
        if missing:
            logger.warning(f"{len(missing)} answers missing from the guess list; adding them")
        self.allowed = allowed + missing
        self.allowed_set = frozenset(self.allowed)

    def __repr__(self):
        return f"Vocabulary(answers={len(self.answers)}, allowed={len(self.allowed)})"


def _unique_tokens(words):
    seen = set()
    out = []
    for w in words:
        token = Token(w)
        if token not in seen:
            seen.add(token)
            out.append(token)
    return tuple(out)


# -----------------------------
# Word Sources
# -----------------------------

def load_word_list(path):
    """Load a newline-separated word list, skipping blanks and non-5-letter lines."""
    words = []
    skipped = 0
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                words.append(Token(line))
            except InvalidTokenError:
                skipped += 1
    if skipped:
        logger.debug(f"Skipped {skipped} unusable lines in {path}")
    logger.info(f"Read {len(words)} words from {path}")
    return words


def build_dictionary(n_top=100000):
    """
    Build dictionary of 5-letter words from most common English words.

    Args:
        n_top: Number of top words to consider
    """
    words = [w.lower() for w in top_n_list("en", n_top) if len(w) == 5 and w.isascii() and w.isalpha()]
    return sorted(set(words))


def fetch_past_answers(url=PAST_ANSWERS_URL, timeout=5):
    """
    Scrape previously used Wordle answers.

    Returns an empty set if the page cannot be fetched, so callers simply keep
    the full dictionary.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Could not fetch past answers ({e}). Using full dictionary.")
        return set()

    soup = BeautifulSoup(response.text, "html.parser")
    selector = "ul.inline li"
    return {li.get_text(strip=True).lower() for li in soup.select(selector)}


def load_vocabulary(settings):
    """Build the process-wide Vocabulary described by `settings`."""
    if settings.answers_file:
        answers = load_word_list(Path(settings.answers_file))
        allowed = load_word_list(Path(settings.allowed_file)) if settings.allowed_file else None
    else:
        allowed = build_dictionary(settings.n_top)
        answers = allowed
        if settings.filter_past_answers:
            past_answers = fetch_past_answers()
            answers = [w for w in allowed if w not in past_answers]

    vocabulary = Vocabulary(answers, allowed)
    logger.info(
        f"Loaded {len(vocabulary.answers)} answers and {len(vocabulary.allowed)} allowed guesses"
    )
    return vocabulary
