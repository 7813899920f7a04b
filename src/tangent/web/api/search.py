"""
Search and tangent REST API endpoints.

Provides:
- POST /api/search - Source cards for a query
- POST /api/tangents - Follow-up queries for a source
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ...search.base import SearchProvider, TangentGenerator
from ...trail.models import TangentContext
from ..models.api_models import SearchRequest, SearchResponse, TangentsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

_search_provider: SearchProvider | None = None
_tangent_generator: TangentGenerator | None = None


def init_search(search_provider: SearchProvider, tangent_generator: TangentGenerator) -> None:
    """Install search collaborators (called by server.py on startup)."""
    global _search_provider, _tangent_generator
    _search_provider = search_provider
    _tangent_generator = tangent_generator
    logger.info(f"Search initialized: {search_provider.name}")


def get_search_provider() -> SearchProvider:
    if _search_provider is None:
        raise HTTPException(status_code=500, detail="Search not initialized")
    return _search_provider


def get_tangent_generator() -> TangentGenerator:
    if _tangent_generator is None:
        raise HTTPException(status_code=500, detail="Tangent generation not initialized")
    return _tangent_generator


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    provider: Annotated[SearchProvider, Depends(get_search_provider)],
) -> SearchResponse:
    """
    Search for source cards.

    Request Body:
        - query: Search query
        - params: k, lambda, sigma, provider, buckets, contrarian
    """
    try:
        cards = await provider.search(request.query, request.params)
        return SearchResponse(cards=cards)
    except Exception as e:
        logger.error(f"Search API error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Search failed") from e


@router.post("/tangents", response_model=TangentsResponse)
async def tangents(
    context: TangentContext,
    generator: Annotated[TangentGenerator, Depends(get_tangent_generator)],
) -> TangentsResponse:
    """
    Suggest follow-up queries.

    Request Body:
        - title, url, context: all optional
    """
    try:
        return TangentsResponse(queries=await generator.generate(context))
    except Exception as e:
        logger.error(f"Tangents API error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Tangent generation failed") from e
