"""
FastAPI Backend for the TuneMood Genre Service

Exposes genre classification, cache maintenance, listening history,
mood-genre correlations and genre distributions to the rest of the
product over HTTP.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .logging_middleware import LoggingMiddleware
from ..models.config import SystemConfig
from ..models.genre_models import ensure_utc
from ..services.genre_normalizer import related_genres
from ..services.genre_service import GenreService
from ..utils.logging_config import get_logger, setup_logging

VERSION = "0.1.0"

logger = get_logger(__name__)

# Global service instance
genre_service: Optional[GenreService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    global genre_service

    config = SystemConfig.from_env()
    setup_logging(log_dir=config.log_dir, log_level=config.log_level)

    logger.info("Initializing TuneMood genre service")
    genre_service = GenreService.from_config(config)
    await genre_service.init()

    yield

    logger.info("Shutting down TuneMood genre service")
    await genre_service.shutdown()
    genre_service = None


app = FastAPI(
    title="TuneMood Genre API",
    description="Genre classification and mood-genre correlation",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])


def get_genre_service() -> GenreService:
    if genre_service is None:
        raise HTTPException(status_code=503, detail="Genre service not available")
    return genre_service


# Request/Response Models
class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: float
    version: str
    components: Dict[str, str]


class GenreResponse(BaseModel):
    """Classification of an artist or track."""
    artist: str
    track: Optional[str] = None
    genre: str = Field(..., description="Primary genre")
    main_genres: List[str]
    sub_genres: List[str]
    related_genres: List[str] = Field(default_factory=list, description="Taxonomy sub-genres of the primary genre")


class ListeningEventRequest(BaseModel):
    """A play to record."""
    user_id: str = Field(..., min_length=1)
    track_id: str = Field(..., min_length=1)
    artist: str = Field(..., min_length=1)
    track: str = Field(..., min_length=1)
    played_at: Optional[datetime] = Field(None, description="Defaults to now")


class ListeningEventResponse(BaseModel):
    user_id: str
    track_id: str
    track_name: str
    artist_name: str
    genre: Optional[str] = None
    sub_genres: List[str]
    played_at: datetime


class CorrelationResponse(BaseModel):
    genre: str
    mood: str
    strength: float
    count: int


class CorrelationListResponse(BaseModel):
    user_id: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    correlations: List[CorrelationResponse]


class GenreDistributionResponse(BaseModel):
    genre: str
    count: int
    moods: Dict[str, int] = Field(..., description="Co-occurring journal moods and their counts")


class GenreDistributionListResponse(BaseModel):
    user_id: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    genres: List[GenreDistributionResponse]


def _require_artist(artist: str) -> str:
    if not artist.strip():
        raise HTTPException(status_code=400, detail="artist must not be empty")
    return artist


def _utc_window(
    start: Optional[datetime],
    end: Optional[datetime]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    # Naive bounds are UTC, so mixed bounds compare cleanly
    start = ensure_utc(start) if start else None
    end = ensure_utc(end) if end else None
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    return start, end


# API Endpoints
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    components = {"genre_service": "active" if genre_service else "inactive"}
    if genre_service:
        for client in ("lastfm_client", "genius_client", "deepseek_client"):
            configured = getattr(genre_service.collector, client) is not None
            components[client] = "configured" if configured else "disabled"
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        version=VERSION,
        components=components
    )


@app.get("/genres", response_model=GenreResponse)
async def classify_genre(
    artist: str = Query(..., min_length=1),
    track: Optional[str] = Query(None),
    service: GenreService = Depends(get_genre_service)
):
    """Classify an artist, or a track when ``track`` is given."""
    _require_artist(artist)
    result = await service.classify_genre(artist, track)
    return GenreResponse(
        artist=artist,
        track=track,
        genre=result.genre,
        main_genres=result.main_genres,
        sub_genres=result.sub_genres,
        related_genres=related_genres(result.genre)
    )


@app.delete("/genres")
async def invalidate_genre(
    artist: str = Query(..., min_length=1),
    track: Optional[str] = Query(None),
    service: GenreService = Depends(get_genre_service)
):
    """Drop the cached classification so the next lookup recomputes it."""
    _require_artist(artist)
    await service.invalidate_genre(artist, track)
    return {"invalidated": True, "artist": artist, "track": track}


@app.post("/maintenance/cleanup-genre-cache")
async def cleanup_genre_cache(service: GenreService = Depends(get_genre_service)):
    """Remove expired classifications from both cache tiers."""
    deleted = await service.cleanup_expired_genres()
    return {"deleted": deleted, "timestamp": time.time()}


@app.get("/maintenance/genre-cache-stats")
async def genre_cache_stats(service: GenreService = Depends(get_genre_service)):
    """Report the size of both cache tiers."""
    return await service.get_stats()


@app.post("/listening-history", response_model=ListeningEventResponse)
async def record_play(
    request: ListeningEventRequest,
    service: GenreService = Depends(get_genre_service)
):
    """Classify a played track and store it in the listening history."""
    event = await service.record_play(
        user_id=request.user_id,
        track_id=request.track_id,
        artist=request.artist,
        track=request.track,
        played_at=request.played_at
    )
    return ListeningEventResponse(
        user_id=event.user_id,
        track_id=event.track_id,
        track_name=event.track_name,
        artist_name=event.artist_name,
        genre=event.genre,
        sub_genres=list(event.sub_genres),
        played_at=event.played_at
    )


@app.get("/users/{user_id}/genre-mood-correlations", response_model=CorrelationListResponse)
async def get_correlations(
    user_id: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: GenreService = Depends(get_genre_service)
):
    """Mood-genre correlations of a user (defaults to the last 30 days)."""
    start, end = _utc_window(start, end)

    correlations = await service.get_mood_genre_correlations(user_id, start, end)
    return CorrelationListResponse(
        user_id=user_id,
        window_start=start,
        window_end=end,
        correlations=[
            CorrelationResponse(
                genre=c.genre,
                mood=c.mood,
                strength=c.strength,
                count=c.count
            )
            for c in correlations
        ]
    )


@app.get("/users/{user_id}/genre-distribution", response_model=GenreDistributionListResponse)
async def get_genre_distribution(
    user_id: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: GenreService = Depends(get_genre_service)
):
    """Plays per genre with their mood breakdown (defaults to the last 30 days)."""
    start, end = _utc_window(start, end)

    distribution = await service.get_genre_distribution(user_id, start, end)
    return GenreDistributionListResponse(
        user_id=user_id,
        window_start=start,
        window_end=end,
        genres=[
            GenreDistributionResponse(genre=d.genre, count=d.count, moods=dict(d.moods))
            for d in distribution
        ]
    )


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "timestamp": time.time(),
            "path": str(request.url)
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler for unexpected errors."""
    logger.error("Unexpected error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "timestamp": time.time(),
            "path": str(request.url)
        }
    )
