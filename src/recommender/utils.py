"""Utility functions for loading trained item vectors.

The offline trainer exports one latent factor vector per item. This module
reads those exports into the ``{item_id: vector}`` mapping expected by
VectorModel. Nothing here writes vectors back.

Supported formats:
    .joblib / .pkl: a ``{item_id: vector}`` dict, or a dict holding row
        aligned ``item_ids`` and ``item_factors``.
    .npz: arrays ``item_ids`` and ``item_factors``.
    .csv: an ``item_id`` column followed by one column per factor.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import joblib
import numpy as np
import pandas as pd

from src.recommender.vector_model import VectorModel

# Configure module logger
logger = logging.getLogger(__name__)

ITEM_ID_KEY = "item_ids"
ITEM_FACTORS_KEY = "item_factors"
CSV_ID_COLUMN = "item_id"

JOBLIB_SUFFIXES = {".joblib", ".pkl"}
NPZ_SUFFIX = ".npz"
CSV_SUFFIX = ".csv"


def _vectors_from_arrays(item_ids: Any, item_factors: Any) -> Dict[int, np.ndarray]:
    """Zip row aligned ID and factor arrays into a mapping."""
    item_ids = np.asarray(item_ids).ravel()
    item_factors = np.asarray(item_factors, dtype=np.float64)

    if item_factors.ndim != 2:
        raise ValueError(
            f"item_factors must be a 2-D array, got {item_factors.ndim} dimensions"
        )
    if len(item_ids) != item_factors.shape[0]:
        raise ValueError(
            f"Got {len(item_ids)} item ids for {item_factors.shape[0]} factor rows"
        )

    unique_ids, counts = np.unique(item_ids, return_counts=True)
    if (counts > 1).any():
        duplicates = unique_ids[counts > 1].tolist()
        raise ValueError(f"Found duplicated item ids: {duplicates[:10]}")

    vectors = {int(item_id): item_factors[row] for row, item_id in enumerate(item_ids)}
    if len(vectors) != len(item_ids):
        raise ValueError("Item ids collide after conversion to int")
    return vectors


def _vectors_from_mapping(data: Mapping) -> Dict[int, np.ndarray]:
    if ITEM_ID_KEY in data and ITEM_FACTORS_KEY in data:
        return _vectors_from_arrays(data[ITEM_ID_KEY], data[ITEM_FACTORS_KEY])
    vectors = {
        int(item_id): np.asarray(vector, dtype=np.float64)
        for item_id, vector in data.items()
    }
    if len(vectors) != len(data):
        raise ValueError("Item ids collide after conversion to int")
    return vectors


def _load_csv_vectors(csv_path: Path) -> Dict[int, np.ndarray]:
    df = pd.read_csv(csv_path)

    if CSV_ID_COLUMN not in df.columns:
        raise ValueError(f"CSV missing required column: {CSV_ID_COLUMN}")

    factor_columns = [col for col in df.columns if col != CSV_ID_COLUMN]
    return _vectors_from_arrays(
        df[CSV_ID_COLUMN].to_numpy(),
        df[factor_columns].to_numpy(dtype=np.float64),
    )


def load_item_vectors(vectors_path: Union[str, Path]) -> Dict[int, np.ndarray]:
    """Load trained item vectors from disk.

    Args:
        vectors_path: Path to a .joblib, .pkl, .npz or .csv export.

    Returns:
        Dictionary mapping item IDs to their factor vectors, in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the format is unsupported or the content is malformed.

    Example:
        >>> vectors = load_item_vectors("models/item_vectors.joblib")
        >>> print(f"Loaded {len(vectors)} item vectors")
    """
    path = Path(vectors_path)
    if not path.exists():
        raise FileNotFoundError(f"Item vectors file not found: {vectors_path}")

    suffix = path.suffix.lower()
    logger.info(f"Loading item vectors from {path}")

    if suffix in JOBLIB_SUFFIXES:
        data = joblib.load(path)
        if not isinstance(data, Mapping):
            raise ValueError(
                f"Expected a mapping in {path}, got {type(data).__name__}"
            )
        vectors = _vectors_from_mapping(data)
    elif suffix == NPZ_SUFFIX:
        with np.load(path, allow_pickle=False) as data:
            missing = {ITEM_ID_KEY, ITEM_FACTORS_KEY} - set(data.files)
            if missing:
                raise ValueError(f"NPZ missing required arrays: {sorted(missing)}")
            vectors = _vectors_from_arrays(data[ITEM_ID_KEY], data[ITEM_FACTORS_KEY])
    elif suffix == CSV_SUFFIX:
        vectors = _load_csv_vectors(path)
    else:
        raise ValueError(f"Unsupported item vectors format: '{path.suffix}'")

    logger.info(f"Loaded {len(vectors)} item vectors")
    return vectors


def build_vector_model(
    vectors_path: Union[str, Path],
    confidence: float,
    regularization: float,
) -> VectorModel:
    """Load item vectors and build a VectorModel from them.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be parsed.
        InvalidDimensionError: If the vectors disagree in length.
    """
    vectors = load_item_vectors(vectors_path)
    if not vectors:
        logger.warning(f"No item vectors found in {vectors_path}")
    return VectorModel(vectors, confidence=confidence, regularization=regularization)


def check_vectors_exist(vectors_path: Union[str, Path]) -> bool:
    """Check whether the item vectors file exists."""
    return Path(vectors_path).is_file()
