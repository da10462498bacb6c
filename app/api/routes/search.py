from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_aggregation_service
from app.core.config import settings
from app.core.errors import ValidationAppError
from app.schemas.search import SearchResult
from app.services.aggregation_service import AggregationService

router = APIRouter(tags=["Search"])


@router.get("/search", response_model=List[SearchResult])
async def search(
    service: Annotated[AggregationService, Depends(get_aggregation_service)],
    keyword: Annotated[
        List[str] | None,
        Query(description="Query text; repeat the parameter for several queries."),
    ] = None,
    count: Annotated[
        int | None,
        Query(description="Results to request per query (defaults to APP_DEFAULT_RESULT_COUNT)."),
    ] = None,
) -> List[SearchResult]:
    """Aggregate deduplicated results for every ``keyword``.

    Results are keyed by site (canonical display host) and returned in the
    order they were first seen. Quota exhaustion or upstream failures only
    shorten the list; they are not reported as errors.

    Raises:
        ValidationAppError: 400 if ``count`` is outside 1..APP_MAX_RESULT_COUNT.
    """
    per_query = settings.app.default_result_count if count is None else count
    if not 1 <= per_query <= settings.app.max_result_count:
        raise ValidationAppError(
            code="count_out_of_range",
            message=f"count must be between 1 and {settings.app.max_result_count}",
            details={
                "min_value": 1,
                "max_value": settings.app.max_result_count,
                "actual_value": per_query,
            },
        )

    return await service.aggregate(keyword or [], per_query)
