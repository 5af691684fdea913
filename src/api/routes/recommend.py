"""Recommendation endpoints for the VecRec API.

This module provides API endpoints that recommend and rank items for a user
described only by the items they have consumed. The user vector is solved on
every request from the cached vector model.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src import __version__
from src.api.metrics import metrics_service
from src.config import get_settings
from src.recommender.exceptions import (
    ModelLoadError,
    ModelNotFoundError,
    VecRecException,
)
from src.recommender.utils import build_vector_model, check_vectors_exist

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommend",
    tags=["recommendations"],
)

# Cache for the loaded vector model
_model_cache: Optional[Dict[str, Any]] = None


class ScoredItem(BaseModel):
    item_id: int = Field(..., description="Item ID")
    score: float = Field(..., description="Score against the user vector")


class RecommendRequest(BaseModel):
    """Request body for recommendations.

    Attributes:
        seen_items: Items the user has already consumed.
        top_n: Number of recommendations to return. Defaults to the
            configured VECREC_DEFAULT_TOP_N.
    """

    seen_items: List[int] = Field(..., description="Items consumed by the user")
    top_n: Optional[int] = Field(
        default=None, ge=0, description="Number of recommendations to return"
    )


class RecommendationResponse(BaseModel):
    recommendations: List[ScoredItem] = Field(
        ..., description="Recommended items, best first"
    )
    model_version: str = Field(default=__version__, description="Service version")


class RankRequest(BaseModel):
    candidates: List[int] = Field(..., description="Items to rank")
    seen_items: List[int] = Field(..., description="Items consumed by the user")


class RankResponse(BaseModel):
    """Ranked candidates with parallel scores.

    Unknown items score 0 and already seen items score -1 and come last.
    """

    items: List[int]
    scores: List[float]


def _load_model(vectors_path: str) -> Dict[str, Any]:
    """Build a cache entry for the vectors at ``vectors_path``.

    Raises:
        ModelNotFoundError: If the file does not exist.
        ModelLoadError: If the file cannot be read or the model built.
    """
    if not check_vectors_exist(vectors_path):
        logger.error(f"Item vectors not found at {vectors_path}")
        raise ModelNotFoundError(vectors_path)

    settings = get_settings()
    try:
        logger.info(f"Loading vector model from {vectors_path}")
        model = build_vector_model(
            vectors_path,
            confidence=settings.confidence,
            regularization=settings.regularization,
        )
    except Exception as e:
        logger.error(f"Failed to load model: {e}", exc_info=True)
        raise ModelLoadError(vectors_path, e) from e

    logger.info(
        "Vector model loaded",
        extra={"num_items": len(model), "n_factors": model.n_factors},
    )
    return {
        "model": model,
        "vectors_path": vectors_path,
        "loaded_at": datetime.now(timezone.utc),
    }


def load_model_if_needed(vectors_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the vector model if it is not cached yet.

    Args:
        vectors_path: Item vectors file. Defaults to the configured
            VECREC_ITEM_VECTORS_PATH.

    Returns:
        Dictionary containing:
            - model: the VectorModel
            - vectors_path: where it was loaded from
            - loaded_at: UTC load time
    """
    global _model_cache

    if _model_cache is not None:
        logger.debug("Using cached model")
        return _model_cache

    _model_cache = _load_model(vectors_path or get_settings().item_vectors_path)
    return _model_cache


def get_model_status() -> Dict[str, Any]:
    """Describe the cached model without loading it."""
    if _model_cache is None:
        return {
            "model_loaded": False,
            "timestamp_last_loaded": None,
            "vectors_path": None,
            "num_items": 0,
            "n_factors": 0,
        }
    model = _model_cache["model"]
    return {
        "model_loaded": True,
        "timestamp_last_loaded": _model_cache["loaded_at"].isoformat(),
        "vectors_path": str(_model_cache["vectors_path"]),
        "num_items": len(model),
        "n_factors": model.n_factors,
    }


@router.post("", response_model=RecommendationResponse)
def get_recommendations(request: RecommendRequest) -> RecommendationResponse:
    """Recommend items for a user given their consumed items.

    Every item in the model is scored; consumed items rank last.

    Raises:
        InsufficientHistoryError: If none of the seen items is in the model (422).
        ModelNotFoundError: If no model can be loaded (503).

    Example:
        POST /recommend {"seen_items": [1234], "top_n": 5}
    """
    start_time = time.time()
    failed = True
    top_n = request.top_n if request.top_n is not None else get_settings().default_top_n

    logger.info(
        "Generating recommendations",
        extra={"num_seen_items": len(request.seen_items), "top_n": top_n},
    )

    try:
        model = load_model_if_needed()["model"]
        recommendations = model.recommend(request.seen_items, top_n)
        failed = False
    finally:
        metrics_service.record(
            "recommend", (time.time() - start_time) * 1000, failed=failed
        )

    logger.info(f"Generated {len(recommendations)} recommendations")

    return RecommendationResponse(
        recommendations=[
            ScoredItem(item_id=rec.document_id, score=rec.score)
            for rec in recommendations
        ],
    )


@router.post("/rank", response_model=RankResponse)
def rank_candidates(request: RankRequest) -> RankResponse:
    """Rank a caller supplied list of candidate items for a user.

    The response holds exactly the submitted candidates, duplicates included.
    """
    start_time = time.time()
    failed = True

    logger.info(
        "Ranking candidates",
        extra={
            "num_candidates": len(request.candidates),
            "num_seen_items": len(request.seen_items),
        },
    )

    try:
        model = load_model_if_needed()["model"]
        items = list(request.candidates)
        scores = model.rank(items, request.seen_items)
        failed = False
    finally:
        metrics_service.record("rank", (time.time() - start_time) * 1000, failed=failed)

    return RankResponse(items=items, scores=scores)


@router.post("/reload-model")
def reload_model(vectors_path: Optional[str] = None) -> Dict[str, Any]:
    """Reload the vector model from disk.

    The previous model keeps serving if the new one fails to load.

    Args:
        vectors_path: Item vectors file. Defaults to the configured path.
    """
    global _model_cache

    path = vectors_path or get_settings().item_vectors_path
    logger.info(f"Reloading model from {path}")

    try:
        _model_cache = _load_model(path)
    except VecRecException:
        logger.warning("Model reload failed, keeping the previous model")
        raise

    return {
        "status": "Model reloaded successfully",
        "num_items": len(_model_cache["model"]),
        "n_factors": _model_cache["model"].n_factors,
    }
