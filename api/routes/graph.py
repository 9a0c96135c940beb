"""
Relationship graph API endpoints.

Provides:
- Edge recomputation for a user
- Ranked warm intro paths to a target person
- Symmetric strength lookup between two people
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from api.services.errors import InvalidInputError, StorageError, WarmIntroError
from api.services.intro_paths import WarmIntroService
from config.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["graph"])


class EdgeResponse(BaseModel):
    """A derived edge between two people."""
    from_id: str
    to_id: str
    strength: float
    interaction_count: int
    sources: list[str]
    event_types: list[str]
    first_interaction_at: Optional[str] = None
    last_interaction_at: Optional[str] = None
    factors: dict[str, float] = {}
    confidence: float = 0.0


class EdgesResponse(BaseModel):
    """Response for edge recomputation."""
    user_id: str
    edges: list[EdgeResponse]
    count: int
    persisted: bool


class PathResponse(BaseModel):
    """A ranked warm intro path."""
    path: list[str]
    score: float
    rank: int
    explanation: str
    hops: int
    introducer_id: Optional[str] = None
    suggested_channel: Optional[str] = None
    edges: list[EdgeResponse]


class PathsResponse(BaseModel):
    """Response for path discovery."""
    user_id: str
    target_id: str
    paths: list[PathResponse]
    count: int


class StrengthResponse(BaseModel):
    """Response for symmetric strength lookup."""
    user_id: str
    a: str
    b: str
    mode: str
    strength: float


def get_warm_intro_service() -> WarmIntroService:
    """Dependency providing the warm intro service."""
    return WarmIntroService()


def raise_http_error(e: WarmIntroError):
    """Translate an engine error into an HTTPException."""
    if isinstance(e, InvalidInputError):
        raise HTTPException(status_code=400, detail=e.message) from e
    if isinstance(e, StorageError):
        logger.error(f"Storage failure during {e.operation}: {e.message}")
        raise HTTPException(status_code=503, detail=f"Storage unavailable: {e.operation}") from e
    raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/{user_id}/edges", response_model=EdgesResponse)
async def compute_edges(
    user_id: str,
    persist: bool = Query(default=False, description="Replace the stored edge snapshot"),
    service: WarmIntroService = Depends(get_warm_intro_service),
) -> EdgesResponse:
    """Recompute all edges for a user from current evidence."""
    try:
        edges = service.compute_edges(user_id, persist=persist)
    except WarmIntroError as e:
        raise_http_error(e)

    return EdgesResponse(
        user_id=user_id,
        edges=[EdgeResponse(**edge.to_dict()) for edge in edges],
        count=len(edges),
        persisted=persist,
    )


@router.get("/{user_id}/paths/{target_id}", response_model=PathsResponse)
async def find_intro_paths(
    user_id: str,
    target_id: str,
    max_hops: int = Query(default=settings.default_max_hops, ge=1, le=6, description="Max edges per path"),
    k: int = Query(default=settings.default_max_paths, ge=1, le=50, description="Max paths"),
    service: WarmIntroService = Depends(get_warm_intro_service),
) -> PathsResponse:
    """
    Find ranked warm intro paths from a user to a target person.

    Returns an empty list when the target is unknown or unreachable.
    """
    try:
        ranked = service.find_intro_paths(user_id, target_id, max_hops=max_hops, k=k)
    except WarmIntroError as e:
        raise_http_error(e)

    return PathsResponse(
        user_id=user_id,
        target_id=target_id,
        paths=[PathResponse(**path.to_dict()) for path in ranked],
        count=len(ranked),
    )


@router.get("/{user_id}/strength", response_model=StrengthResponse)
async def get_symmetric_strength(
    user_id: str,
    a: str = Query(..., description="One person id"),
    b: str = Query(..., description="The other person id"),
    mode: str = Query(default="max", description="max or average"),
    service: WarmIntroService = Depends(get_warm_intro_service),
) -> StrengthResponse:
    """Undirected strength between two people."""
    try:
        strength = service.symmetric_strength(user_id, a, b, mode=mode)
    except WarmIntroError as e:
        raise_http_error(e)

    return StrengthResponse(user_id=user_id, a=a, b=b, mode=mode, strength=strength)
