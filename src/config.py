"""Runtime settings for the VecRec service.

Values come from the environment, with a local ``.env`` file loaded first
when present.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_VECTORS_PATH = "models/item_vectors.joblib"
DEFAULT_CONFIDENCE = 40.0
DEFAULT_REGULARIZATION = 0.01
DEFAULT_TOP_N = 10


class Settings(BaseModel):
    item_vectors_path: str = DEFAULT_VECTORS_PATH
    confidence: float = Field(default=DEFAULT_CONFIDENCE, gt=0)
    regularization: float = Field(default=DEFAULT_REGULARIZATION, ge=0)
    default_top_n: int = Field(default=DEFAULT_TOP_N, ge=0)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Read settings from the environment. Raises ValidationError on bad values."""
    return Settings(
        item_vectors_path=os.getenv("VECREC_ITEM_VECTORS_PATH", DEFAULT_VECTORS_PATH),
        confidence=os.getenv("VECREC_CONFIDENCE", DEFAULT_CONFIDENCE),
        regularization=os.getenv("VECREC_REGULARIZATION", DEFAULT_REGULARIZATION),
        default_top_n=os.getenv("VECREC_DEFAULT_TOP_N", DEFAULT_TOP_N),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=os.getenv("PORT", 8000),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
