"""Scoring engine for the VecRec recommendation service.

The VectorModel holds the trained item vectors and their Gram matrix, solves
user vectors from consumed items and ranks candidates against them.
"""

from src.recommender.exceptions import (
    InsufficientHistoryError,
    InvalidDimensionError,
    ModelLoadError,
    ModelNotFoundError,
    SingularSystemError,
    VecRecException,
)
from src.recommender.vector_model import DocumentScore, ScoreKind, VectorModel

__all__ = [
    "DocumentScore",
    "InsufficientHistoryError",
    "InvalidDimensionError",
    "ModelLoadError",
    "ModelNotFoundError",
    "ScoreKind",
    "SingularSystemError",
    "VecRecException",
    "VectorModel",
]
