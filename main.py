# main.py
"""
FastAPI application for the Wordle assistant.

Run with: uvicorn main:app --reload
"""

import logging
import uuid
from concurrent.futures import ProcessPoolExecutor
from contextlib import asynccontextmanager
from typing import List, Optional, Union

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from settings import Settings
from vocabulary import load_vocabulary
from wordle_solver import (
    InvalidFeedbackError,
    InvalidGuessError,
    InvalidPatternError,
    InvalidTokenError,
    RankingScheduler,
    SessionFinishedError,
    SessionState,
    WordleSolver,
    entropy,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ENDPOINTS = {
    "POST /init": "Initialize a new solver session",
    "POST /session/{session_id}/submit": "Set the word for the current round",
    "PUT /session/{session_id}/feedback": "Set one feedback tile of the current round",
    "POST /session/{session_id}/commit": "Filter candidates by the current round",
    "POST /guess": "Submit a word and its pattern in one step",
    "POST /reset": "Reset an existing session",
    "GET /session/{session_id}": "Get session information",
    "GET /session/{session_id}/words": "List remaining candidates",
    "POST /session/{session_id}/rank": "Rank guesses by expected information",
    "GET /session/{session_id}/rank/progress": "Progress of the latest ranking",
    "GET /session/{session_id}/distribution/{guess}": "Outcome histogram for a guess",
    "DELETE /session/{session_id}": "Delete a session",
}


# -----------------------------
# Request/Response Models
# -----------------------------

class InitRequest(BaseModel):
    max_rounds: Optional[int] = Field(default=None, ge=1, description="Rounds before the session is exhausted")


class InitResponse(BaseModel):
    session_id: str
    state: str
    total_candidates: int
    allowed_guesses: int
    max_rounds: int


class SubmitRequest(BaseModel):
    word: str = Field(description="5-letter word that was guessed")


class FeedbackRequest(BaseModel):
    round: int = Field(description="Round the tile belongs to (must be the current round)")
    position: int = Field(description="Tile index, 0-4")
    symbol: Union[int, str] = Field(description="0/1/2, K/Y/G, miss/misplaced/exact or an emoji square")


class GuessRequest(BaseModel):
    session_id: str
    word: str = Field(description="5-letter word that was guessed")
    pattern: Union[str, List[int]] = Field(
        description="Feedback pattern: 0=gray, 1=yellow, 2=green, e.g. [0,1,2,0,1] or 'KYGKY'"
    )


class ResetRequest(BaseModel):
    session_id: str


class RankRequest(BaseModel):
    top_k: Optional[int] = Field(default=None, ge=1, description="Number of suggestions to return")


class HistoryEntry(BaseModel):
    word: str
    pattern: str
    feedback: List[int]


class GuessResponse(BaseModel):
    state: str
    round: int
    candidates_remaining: int
    is_solved: bool
    solution: Optional[str] = None
    message: Optional[str] = None


class SessionInfo(BaseModel):
    session_id: str
    state: str
    round: int
    max_rounds: int
    candidates_remaining: int
    guesses_made: int
    uncertainty_bits: float
    progress_percent: float
    solution: Optional[str] = None
    pending_word: Optional[str] = None
    pending_pattern: List[int]
    history: List[HistoryEntry]


class WordsResponse(BaseModel):
    count: int
    words: List[str]


class ScoredGuessModel(BaseModel):
    word: str
    entropy_bits: float
    is_candidate: bool


class RankResponse(BaseModel):
    session_id: str
    candidates_remaining: int
    superseded: bool = False
    suggestions: List[ScoredGuessModel]


class ProgressResponse(BaseModel):
    processed: int
    total: int


class Bucket(BaseModel):
    pattern: str
    code: int
    count: int
    probability: float


class DistributionResponse(BaseModel):
    guess: str
    entropy_bits: float
    total: int
    buckets: List[Bucket]


# -----------------------------
# Helpers
# -----------------------------

def _get_solver(request: Request, session_id: str) -> WordleSolver:
    solver = request.app.state.sessions.get(session_id)
    if solver is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return solver


def _bad_request(e):
    return HTTPException(status_code=400, detail=str(e))


def _guess_response(solver):
    message = None
    if solver.state is SessionState.CONTRADICTION:
        message = "No candidates remain - check your pattern"
    elif solver.state is SessionState.SOLVED:
        message = f"Solved! Answer is '{solver.solution.display()}'"
    elif solver.state is SessionState.EXHAUSTED:
        message = f"Out of guesses with {solver.remaining_count()} candidates left"

    return GuessResponse(
        state=solver.state.value,
        round=solver.round,
        candidates_remaining=solver.remaining_count(),
        is_solved=solver.state is SessionState.SOLVED,
        solution=solver.solution.display() if solver.solution else None,
        message=message,
    )


# -----------------------------
# API Endpoints
# -----------------------------

@router.get("/")
async def root():
    return {
        "name": "Wordle Assistant API",
        "version": "1.0.0",
        "endpoints": ENDPOINTS,
    }


@router.post("/init", response_model=InitResponse)
async def initialize_solver(request: Request, body: Optional[InitRequest] = None):
    """
    Initialize a new solver session over the full answer space.

    Returns a session_id used by every other endpoint.
    """
    settings = request.app.state.settings
    max_rounds = body.max_rounds if body and body.max_rounds else settings.max_rounds

    scheduler = RankingScheduler(
        chunk_size=settings.chunk_size,
        progress_every=settings.progress_every,
        executor=request.app.state.executor,
    )
    solver = WordleSolver(request.app.state.vocabulary, max_rounds=max_rounds, scheduler=scheduler)

    session_id = str(uuid.uuid4())
    request.app.state.sessions[session_id] = solver
    logger.info(f"Created session {session_id} with {solver.remaining_count()} candidates")

    return InitResponse(
        session_id=session_id,
        state=solver.state.value,
        total_candidates=solver.remaining_count(),
        allowed_guesses=len(solver.vocabulary.allowed),
        max_rounds=solver.max_rounds,
    )


@router.post("/session/{session_id}/submit")
async def submit_word(request: Request, session_id: str, body: SubmitRequest):
    """Set the word for the current round. Feedback tiles stay as they are."""
    solver = _get_solver(request, session_id)
    try:
        token = solver.submit_guess(body.word)
    except InvalidGuessError as e:
        raise _bad_request(e)
    except SessionFinishedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"round": solver.round, "word": token.display()}


@router.put("/session/{session_id}/feedback")
async def set_feedback(request: Request, session_id: str, body: FeedbackRequest):
    """Set one tile of the current round; tiles default to gray."""
    solver = _get_solver(request, session_id)
    try:
        solver.set_feedback(body.round, body.position, body.symbol)
    except InvalidFeedbackError as e:
        raise _bad_request(e)
    except SessionFinishedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"round": solver.round, "pending_pattern": [int(f) for f in solver.pending_pattern]}


@router.post("/session/{session_id}/commit", response_model=GuessResponse)
async def commit_round(request: Request, session_id: str):
    """Filter the candidates with the current round's word and tiles."""
    solver = _get_solver(request, session_id)
    try:
        solver.commit()
    except InvalidGuessError as e:
        raise _bad_request(e)
    except SessionFinishedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _guess_response(solver)


@router.post("/guess", response_model=GuessResponse)
async def submit_guess(request: Request, body: GuessRequest):
    """
    Submit a guess with its feedback and commit it.

    Pattern format: 5 integers or a 5-character string
    - 0 / K = gray (letter not in word)
    - 1 / Y = yellow (letter in word, wrong position)
    - 2 / G = green (letter in correct position)
    """
    solver = _get_solver(request, body.session_id)
    try:
        solver.guess(body.word, body.pattern)
    except (InvalidGuessError, InvalidPatternError) as e:
        raise _bad_request(e)
    except SessionFinishedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _guess_response(solver)


@router.post("/reset")
async def reset_session(request: Request, body: ResetRequest):
    """Reset an existing solver session to initial state."""
    solver = _get_solver(request, body.session_id)
    solver.reset()
    return {"message": "Session reset successfully", "candidates_remaining": solver.remaining_count()}


@router.get("/session/{session_id}", response_model=SessionInfo)
async def get_session_info(request: Request, session_id: str):
    """Get information about an existing session."""
    solver = _get_solver(request, session_id)
    return SessionInfo(
        session_id=session_id,
        state=solver.state.value,
        round=solver.round,
        max_rounds=solver.max_rounds,
        candidates_remaining=solver.remaining_count(),
        guesses_made=len(solver.history),
        uncertainty_bits=round(solver.uncertainty_bits, 4),
        progress_percent=round(solver.progress_percent, 1),
        solution=solver.solution.display() if solver.solution else None,
        pending_word=solver.pending_word.display() if solver.pending_word else None,
        pending_pattern=[int(f) for f in solver.pending_pattern],
        history=[
            HistoryEntry(word=word.display(), pattern=str(pattern), feedback=[int(f) for f in pattern])
            for word, pattern in solver.history
        ],
    )


@router.get("/session/{session_id}/words", response_model=WordsResponse)
async def list_remaining_words(request: Request, session_id: str, limit: Optional[int] = None):
    solver = _get_solver(request, session_id)
    try:
        words = solver.remaining_words(limit)
    except ValueError as e:
        raise _bad_request(e)
    return WordsResponse(count=solver.remaining_count(), words=[w.display() for w in words])


@router.post("/session/{session_id}/rank", response_model=RankResponse)
async def rank_guesses(request: Request, session_id: str, body: Optional[RankRequest] = None):
    """
    Rank every allowed guess by expected information against the remaining
    candidates. A commit or reset while this runs restarts the ranking; a
    newer rank request on the same session ends this one with `superseded`
    set and no suggestions.
    """
    solver = _get_solver(request, session_id)
    top_k = body.top_k if body and body.top_k else request.app.state.settings.default_top_k
    ranked = await solver.request_ranking(top_k)

    return RankResponse(
        session_id=session_id,
        candidates_remaining=solver.remaining_count(),
        superseded=ranked is None,
        suggestions=[
            ScoredGuessModel(word=s.word.display(), entropy_bits=round(s.entropy, 4), is_candidate=s.is_candidate)
            for s in ranked or []
        ],
    )


@router.get("/session/{session_id}/rank/progress", response_model=ProgressResponse)
async def ranking_progress(request: Request, session_id: str):
    solver = _get_solver(request, session_id)
    processed, total = solver.ranking_progress
    return ProgressResponse(processed=processed, total=total)


@router.get("/session/{session_id}/distribution/{guess}", response_model=DistributionResponse)
async def guess_distribution(request: Request, session_id: str, guess: str):
    """Outcome histogram of `guess` over the remaining candidates, ordered by pattern code."""
    solver = _get_solver(request, session_id)
    try:
        dist = solver.distribution(guess)
    except InvalidTokenError as e:
        raise _bad_request(e)

    total = solver.remaining_count()
    candidates = solver.remaining_words()
    return DistributionResponse(
        guess=guess.strip().upper(),
        entropy_bits=round(entropy(guess, candidates), 4),
        total=total,
        buckets=[
            Bucket(pattern=str(p), code=p.code, count=c, probability=c / total)
            for p, c in dist.items()
        ],
    )


@router.delete("/session/{session_id}")
async def delete_session(request: Request, session_id: str):
    """Delete a solver session."""
    solver = _get_solver(request, session_id)
    solver.scheduler.invalidate()
    del request.app.state.sessions[session_id]
    return {"message": "Session deleted successfully"}


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "active_sessions": len(request.app.state.sessions),
    }


# -----------------------------
# Application Factory
# -----------------------------

def create_app(vocabulary=None, settings=None):
    """
    Build the API.

    Args:
        vocabulary: Preloaded Vocabulary; loaded from `settings` at startup if omitted
        settings: Settings to use (environment by default)
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app):
        logging.basicConfig(level=settings.log_level)
        if app.state.vocabulary is None:
            app.state.vocabulary = load_vocabulary(settings)
        if settings.max_workers and app.state.executor is None:
            app.state.executor = ProcessPoolExecutor(max_workers=settings.max_workers)
        try:
            yield
        finally:
            if app.state.executor is not None:
                app.state.executor.shutdown(cancel_futures=True)
                app.state.executor = None

    app = FastAPI(
        title="Wordle Assistant API",
        description="Narrows Wordle candidates from feedback and ranks guesses by expected information",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.vocabulary = vocabulary
    app.state.executor = None
    app.state.sessions = {}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
