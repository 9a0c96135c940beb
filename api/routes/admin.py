"""
Admin API endpoints for the warm intro engine.

Provides:
- Duplicate evidence preview
- Duplicate evidence cleanup
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
import logging

from api.routes.graph import get_warm_intro_service, raise_http_error
from api.services.deduplicator import MODE_DELETE
from api.services.errors import WarmIntroError
from api.services.intro_paths import WarmIntroService

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class DuplicateGroupResponse(BaseModel):
    """One group of duplicate evidence."""
    user_id: str
    type: str
    source: str
    count: int
    duplicates_to_remove: int
    canonical_id: str
    sample_ids: list[str]


class DuplicatePreviewResponse(BaseModel):
    """Non-destructive duplicate report."""
    total_duplicates: int
    total_groups: int
    sample_groups: list[DuplicateGroupResponse]


class DeduplicateResponse(BaseModel):
    """Result of a cleanup sweep."""
    status: str
    mode: str
    deleted_count: int
    groups_cleaned: int
    failed_count: int
    failed_batches: int
    errors: list[str]


@router.get("/evidence/duplicates", response_model=DuplicatePreviewResponse)
async def preview_duplicates(
    service: WarmIntroService = Depends(get_warm_intro_service),
) -> DuplicatePreviewResponse:
    """
    Report duplicate evidence without changing anything.

    Returns totals and a sample of affected groups.
    """
    try:
        preview = service.preview_duplicates()
    except WarmIntroError as e:
        raise_http_error(e)

    return DuplicatePreviewResponse(**preview.to_dict())


@router.post("/evidence/deduplicate", response_model=DeduplicateResponse)
async def deduplicate_evidence(
    mode: str = Query(default=MODE_DELETE, description="delete or mark"),
    service: WarmIntroService = Depends(get_warm_intro_service),
) -> DeduplicateResponse:
    """
    Remove duplicate evidence, keeping the earliest-created event per group.

    Failed batches are reported in the response; the sweep can be rerun.
    """
    try:
        result = service.deduplicate(mode=mode)
    except WarmIntroError as e:
        raise_http_error(e)

    status = "partial" if result.failed_count else "completed"
    return DeduplicateResponse(status=status, **result.to_dict())
