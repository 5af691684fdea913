"""Vector space model for serving implicit-feedback matrix factorization.

The document vectors are assumed to be the item factors of a model trained as
described in "Collaborative Filtering for Implicit Feedback Datasets"
(Hu, Koren and Volinsky). Given those vectors and the documents a user has
consumed, the model solves the user vector on every request and scores
documents against it. User vectors are never stored.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, MutableSequence, Sequence, Set, Tuple

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from src.recommender.exceptions import (
    InsufficientHistoryError,
    InvalidDimensionError,
    SingularSystemError,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Scores reported for candidates that are not projected onto the user vector
SEEN_SCORE = -1.0
UNKNOWN_SCORE = 0.0


class ScoreKind(str, Enum):
    """How a document score was obtained.

    Seen documents always rank after every other candidate, whatever the
    numeric scores of the others are. Unknown documents rank as if they had
    scored ``UNKNOWN_SCORE``.
    """

    SCORED = "scored"
    UNKNOWN = "unknown"
    SEEN = "seen"


@dataclass(frozen=True)
class DocumentScore:
    """A scored document, as returned by recommend and score_candidates."""

    document_id: int
    score: float
    kind: ScoreKind = ScoreKind.SCORED


def _ranking_key(document_score: DocumentScore) -> Tuple[bool, float]:
    return document_score.kind is ScoreKind.SEEN, -document_score.score


class VectorModel:
    """Immutable document vector space model.

    Holds the item factor matrix ``Y``, its Gram matrix ``YtY`` and the two
    model parameters. Nothing is mutated after ``__init__``, so one instance
    can serve any number of concurrent requests.
    """

    def __init__(
        self,
        documents: Mapping[int, Sequence[float]],
        confidence: float,
        regularization: float,
    ):
        """Build the model from trained document vectors.

        Args:
            documents: Mapping from document ID to its latent factor vector.
                All vectors must have the same length.
            confidence: Confidence applied to every consumed document.
            regularization: Ridge coefficient added to the diagonal of the
                normal equations.

        Raises:
            InvalidDimensionError: If a vector's length differs from the
                length of the first vector.
            ValueError: If two keys map to the same integer ID, or a vector
                is not 1-D.
        """
        start_time = time.time()

        self._confidence = float(confidence)
        self._regularization = float(regularization)

        doc_ids: List[int] = []
        doc_indexes: Dict[int, int] = {}
        rows: List[np.ndarray] = []
        n_factors = 0

        for index, (doc, vector) in enumerate(documents.items()):
            doc_id = int(doc)
            if doc_id in doc_indexes:
                raise ValueError(f"Duplicate document id {doc_id} (from key {doc!r})")

            row = np.asarray(vector, dtype=np.float64)
            if row.ndim != 1:
                raise ValueError(
                    f"Vector of document {doc_id} must be 1-D, got {row.ndim} dimensions"
                )
            if index == 0:
                n_factors = row.shape[0]
            elif row.shape[0] != n_factors:
                raise InvalidDimensionError(doc_id, n_factors, row.shape[0])
            doc_ids.append(doc_id)
            doc_indexes[doc_id] = index
            rows.append(row)

        if rows:
            item_factors = np.vstack(rows)
        else:
            logger.warning("Building a vector model without documents")
            item_factors = np.zeros((0, 0), dtype=np.float64)

        # YtY is shared by every user vector solve
        gram_matrix = item_factors.T @ item_factors

        item_factors.setflags(write=False)
        gram_matrix.setflags(write=False)

        self._n_factors = n_factors
        self._doc_ids: Tuple[int, ...] = tuple(doc_ids)
        self._doc_indexes = doc_indexes
        self._item_factors = item_factors
        self._gram_matrix = gram_matrix

        logger.info(
            "Vector model built",
            extra={
                "num_documents": len(doc_ids),
                "n_factors": n_factors,
                "confidence": self._confidence,
                "regularization": self._regularization,
                "build_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

    def __len__(self) -> int:
        return len(self._doc_ids)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._doc_indexes

    def __repr__(self) -> str:
        return (
            f"VectorModel(documents={len(self)}, n_factors={self._n_factors}, "
            f"confidence={self._confidence}, regularization={self._regularization})"
        )

    @property
    def n_factors(self) -> int:
        return self._n_factors

    @property
    def confidence(self) -> float:
        return self._confidence

    @property
    def regularization(self) -> float:
        return self._regularization

    @property
    def document_ids(self) -> Tuple[int, ...]:
        """Document IDs in row order."""
        return self._doc_ids

    @property
    def item_factors(self) -> np.ndarray:
        """Read-only item factor matrix ``Y`` (documents x factors)."""
        return self._item_factors

    @property
    def gram_matrix(self) -> np.ndarray:
        """Read-only ``YtY`` (factors x factors)."""
        return self._gram_matrix

    def index_of(self, document_id: int) -> int:
        """Row of ``document_id`` in ``Y``. Raises KeyError if unknown."""
        return self._doc_indexes[document_id]

    def recommend(self, seen_items: Iterable[int], n: int) -> List[DocumentScore]:
        """Score every document in the model and return the top ``n``.

        Seen documents are ranked last with score ``SEEN_SCORE``, so they
        only show up when ``n`` exceeds the number of unseen documents.
        Ties keep model row order.

        Args:
            seen_items: Documents consumed by the user. A mapping counts its
                keys.
            n: Maximum number of results.

        Returns:
            Up to ``n`` DocumentScore objects, best first.

        Raises:
            ValueError: If n is negative.
            InsufficientHistoryError: If no seen document is in the model.
            SingularSystemError: If the user system cannot be factorized.
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        seen = set(seen_items)
        user_vec = self.user_vector(seen)
        scores = self.scores_for_user_vector(user_vec)

        seen_mask = np.fromiter(
            (doc in seen for doc in self._doc_ids), dtype=bool, count=len(self._doc_ids)
        )
        ranking_scores = np.where(seen_mask, SEEN_SCORE, scores)

        # lexsort is stable and sorts by the last key first
        order = np.lexsort((-ranking_scores, seen_mask.astype(np.int8)))[:n]

        recommendations = []
        for index in order:
            if seen_mask[index]:
                recommendations.append(
                    DocumentScore(self._doc_ids[index], SEEN_SCORE, ScoreKind.SEEN)
                )
            else:
                recommendations.append(
                    DocumentScore(self._doc_ids[index], float(scores[index]))
                )
        return recommendations

    def rank(
        self, candidates: MutableSequence[int], seen_items: Iterable[int]
    ) -> List[float]:
        """Sort ``candidates`` in place for a user and return their scores.

        The returned scores are parallel to the reordered candidates. Unknown
        documents score ``UNKNOWN_SCORE`` and seen documents ``SEEN_SCORE``.
        Ties keep the original candidate order.

        Raises:
            InsufficientHistoryError: If no seen document is in the model.
            SingularSystemError: If the user system cannot be factorized.
        """
        ranked = self.score_candidates(candidates, seen_items)
        candidates[:] = [document_score.document_id for document_score in ranked]
        return [document_score.score for document_score in ranked]

    def score_candidates(
        self, candidates: Iterable[int], seen_items: Iterable[int]
    ) -> List[DocumentScore]:
        """Score and sort ``candidates`` without touching the input."""
        candidates = list(candidates)
        seen = set(seen_items)
        user_vec = self.user_vector(seen)

        start_time = time.time()
        scores = self.scores_for_user_vector(user_vec)

        candidate_scores = []
        for doc in candidates:
            if doc in seen:
                candidate_scores.append(DocumentScore(doc, SEEN_SCORE, ScoreKind.SEEN))
                continue
            index = self._doc_indexes.get(doc)
            if index is None:
                candidate_scores.append(
                    DocumentScore(doc, UNKNOWN_SCORE, ScoreKind.UNKNOWN)
                )
            else:
                candidate_scores.append(DocumentScore(doc, float(scores[index])))

        candidate_scores.sort(key=_ranking_key)

        logger.debug(
            "Scored candidates",
            extra={
                "num_candidates": len(candidates),
                "scoring_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return candidate_scores

    def user_vector(self, seen_items: Iterable[int]) -> np.ndarray:
        """Solve the implicit user vector for a set of consumed documents.

        Every consumed document present in the model gets the model's
        confidence. Documents missing from the model are ignored.

        Raises:
            InsufficientHistoryError: If no seen document is in the model.
            SingularSystemError: If the user system cannot be factorized.
        """
        seen: Set[int] = set(seen_items)
        confidences = {
            doc: self._confidence for doc in seen if doc in self._doc_indexes
        }
        if not confidences:
            raise InsufficientHistoryError(len(seen), len(self._doc_ids))
        return self._solve_user_vector(confidences)

    def scores_for_user_vector(self, user_vec: np.ndarray) -> np.ndarray:
        """Project every document onto ``user_vec`` (``Y . x``)."""
        return self._item_factors @ user_vec

    def _solve_user_vector(self, confidences: Mapping[int, float]) -> np.ndarray:
        # Notation follows Hu, Koren and Volinsky; benfred/implicit solves the
        # same system. We solve
        #   xu = (YtCuY + reg * I)^-1 YtCuPu
        # with YtCuY = YtY + Yt(Cu - I)Y, so A starts at YtY + reg * I and
        # only the consumed rows contribute the last term.
        start_time = time.time()

        indexes = []
        weights = []
        for doc, confidence in confidences.items():
            index = self._doc_indexes.get(doc)
            if index is None:
                continue
            indexes.append(index)
            weights.append(confidence)

        # Accumulate in row order so a given history always gives the same bits
        order = np.argsort(np.asarray(indexes, dtype=np.intp), kind="stable")
        rows = np.asarray(indexes, dtype=np.intp)[order]
        weight = np.asarray(weights, dtype=np.float64)[order]
        factors = self._item_factors[rows]

        # A = YtY + reg * I + sum((c - 1) * outer(f, f))
        A = self._gram_matrix + self._regularization * np.eye(self._n_factors)
        A += (factors * (weight - 1.0)[:, np.newaxis]).T @ factors

        # b = YtCuPu = sum(c * f)
        b = factors.T @ weight

        if self._n_factors == 0:
            return np.zeros(0, dtype=np.float64)

        # A is symmetric positive definite for positive parameters and
        # confidence >= 1
        try:
            factorization = cho_factor(A, lower=True, check_finite=True)
        except (LinAlgError, ValueError) as e:
            raise SingularSystemError(self._n_factors, e) from e
        user_vec = cho_solve(factorization, b, check_finite=False)

        logger.debug(
            "Solved user vector",
            extra={
                "num_seen_in_model": len(indexes),
                "n_factors": self._n_factors,
                "solve_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return user_vec
