"""Exceptions raised by the VecRec scoring engine and its loaders.

Every error carries an HTTP status code and a details dict so the API layer
can turn it into a response without knowing each type.
"""

from typing import Any, Dict, Optional


class VecRecException(Exception):
    """Base exception for VecRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class InvalidDimensionError(VecRecException):
    """Raised when item vectors passed to a model disagree in length."""

    def __init__(self, document_id: int, expected: int, actual: int):
        message = (
            f"Invalid vector size for document {document_id}: "
            f"expected {expected} factors, got {actual}"
        )
        super().__init__(
            message=message,
            status_code=500,
            details={
                "document_id": document_id,
                "expected": expected,
                "actual": actual,
            },
        )


class InsufficientHistoryError(VecRecException):
    """Raised when none of the seen documents exist in the model."""

    def __init__(self, history_size: int, model_size: int):
        message = (
            f"No seen doc is in model. History: {history_size} Model: {model_size}"
        )
        super().__init__(
            message=message,
            status_code=422,
            details={"history_size": history_size, "model_size": model_size},
        )


class SingularSystemError(VecRecException):
    """Raised when the per-user linear system cannot be factorized."""

    def __init__(self, n_factors: int, error: Exception):
        message = f"Failed to run Cholesky factorization: {error}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "n_factors": n_factors,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class ModelNotFoundError(VecRecException):
    """Raised when the item vectors artifact cannot be found."""

    def __init__(self, vectors_path: str):
        message = (
            f"Item vectors not found at '{vectors_path}'. "
            "Export them from the trainer first."
        )
        super().__init__(
            message=message,
            status_code=503,
            details={"vectors_path": vectors_path},
        )


class ModelLoadError(VecRecException):
    """Raised when the model fails to load."""

    def __init__(self, vectors_path: str, error: Exception):
        message = f"Failed to load model from '{vectors_path}': {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "vectors_path": vectors_path,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
