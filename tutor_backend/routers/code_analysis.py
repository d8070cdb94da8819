"""
Code Analysis Router for the Code Tutor backend.

Stores the results of analyses run by the frontend (score, feedback,
suggestions) and summarizes them per user.

Endpoints:
- GET /code-analysis - List the caller's analyses
- GET /code-analysis/stats/summary - Totals, average score, languages, recent
- GET /code-analysis/{analysis_id} - Get one analysis
- POST /code-analysis - Store an analysis
- DELETE /code-analysis/{analysis_id} - Delete an analysis
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..constants import CODE_ANALYSIS_DEFAULT_LIMIT, MAX_LANGUAGE_LENGTH, MAX_PAGE_LIMIT, RECENT_ANALYSES_LIMIT
from ..db_models import DBUser
from ..dependencies import get_current_user, get_repository
from ..exceptions import ResourceNotFoundError
from ..models import CodeAnalysis, CodeAnalysisCreate, CodeAnalysisSummary, RecentAnalysis
from ..repository import DatabaseRepository
from ..sanitization import sanitize_text_content

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/code-analysis",
    tags=["code-analysis"],
    responses={401: {"description": "Unauthorized"}},
)


@router.get("", response_model=List[CodeAnalysis])
async def list_analyses(
    limit: int = Query(CODE_ANALYSIS_DEFAULT_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    language: Optional[str] = Query(None, max_length=MAX_LANGUAGE_LENGTH),
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> List[CodeAnalysis]:
    """List the caller's analyses, newest first, optionally for one language."""
    analyses = await repo.list_code_analyses(
        current_user.id,
        limit=limit,
        offset=offset,
        language=language.strip() if language else None,
    )
    return [CodeAnalysis.model_validate(a) for a in analyses]


@router.get("/stats/summary", response_model=CodeAnalysisSummary)
async def analysis_summary(
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> CodeAnalysisSummary:
    """
    Summarize the caller's analyses.

    Returns:
        Total count, average score (two decimals, 0 when there are none),
        languages used in alphabetical order and the five most recent
        analyses
    """
    summary = await repo.get_code_analysis_summary(current_user.id, RECENT_ANALYSES_LIMIT)
    return CodeAnalysisSummary(
        total_analyses=summary["total_analyses"],
        average_score=summary["average_score"],
        languages_used=summary["languages_used"],
        recent_analyses=[RecentAnalysis.model_validate(a) for a in summary["recent_analyses"]],
    )


@router.get("/{analysis_id}", response_model=CodeAnalysis)
async def get_analysis(
    analysis_id: UUID,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> CodeAnalysis:
    """Get one of the caller's analyses."""
    analysis = await repo.get_code_analysis(current_user.id, str(analysis_id))
    if not analysis:
        raise ResourceNotFoundError("Code analysis")
    return CodeAnalysis.model_validate(analysis)


@router.post("", response_model=CodeAnalysis, status_code=status.HTTP_201_CREATED)
async def create_analysis(
    analysis: CodeAnalysisCreate,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
) -> CodeAnalysis:
    """Store an analysis result for the caller."""
    db_analysis = await repo.add_code_analysis(
        current_user.id,
        code=sanitize_text_content(analysis.code),
        language=analysis.language,
        score=analysis.score,
        feedback=analysis.feedback,
        suggestions=analysis.suggestions,
    )
    logger.debug(f"Stored {analysis.language} analysis {db_analysis.id} for user {current_user.id}")
    return CodeAnalysis.model_validate(db_analysis)


@router.delete("/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_analysis(
    analysis_id: UUID,
    current_user: DBUser = Depends(get_current_user),
    repo: DatabaseRepository = Depends(get_repository)
):
    """
    Delete one of the caller's analyses.

    Raises:
        ResourceNotFoundError (404): If the analysis does not exist or
            belongs to another user
    """
    if not await repo.delete_code_analysis(current_user.id, str(analysis_id)):
        raise ResourceNotFoundError("Code analysis")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
