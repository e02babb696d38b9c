# settings.py
"""
Runtime configuration, read from WORDLE_* environment variables.

Example:
    WORDLE_ANSWERS_FILE=answers.txt WORDLE_ALLOWED_FILE=allowed.txt uvicorn main:app
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "WORDLE_"


class Settings(BaseModel):
    answers_file: Optional[str] = Field(default=None, description="Newline-separated answer words")
    allowed_file: Optional[str] = Field(default=None, description="Newline-separated guess words")
    n_top: int = Field(default=100000, ge=1, description="Number of top words to consider when no files are given")
    filter_past_answers: bool = Field(default=False, description="Drop known past Wordle answers from the answer space")

    max_rounds: int = Field(default=6, ge=1)
    chunk_size: int = Field(default=100, ge=1, description="Guesses scored per ranking slice")
    progress_every: int = Field(default=1000, ge=1, description="Progress is reported each time this many guesses are done")
    default_top_k: int = Field(default=20, ge=1)
    max_workers: Optional[int] = Field(default=None, ge=1, description="Process pool size for ranking slices (None = score on the event loop)")

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None):
        """Build settings from the environment; unset or empty variables keep their defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()
        return cls(**values)
