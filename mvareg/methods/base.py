"""
Booked regression method: a named backend estimator plus its option string.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np

from mvareg.methods.options import Options, DISPLAY_FLAGS

logger = logging.getLogger(__name__)

# Default minimum leaf size for regression, in percent of training events.
DEFAULT_MIN_NODE_SIZE_PCT = 0.2


class BookedMethod(ABC):
    """
    A regression method booked under a name.

    Subclasses translate the option string into backend parameters in
    ``resolve_params`` (called at fit time, since some options are relative
    to the training sample size) and build the backend estimator.
    """

    method_type: str = ''

    def __init__(self, name: str, option_string: str = '', random_state: int = 42):
        self.name = name
        self.options = Options(option_string)
        self.options.ignore(*DISPLAY_FLAGS)
        self.random_state = random_state

        self.estimator = None
        self.params: Dict[str, Any] = {}
        self.metrics: Dict[str, Any] = {}
        self.is_trained = False

        self._validate_options()

    def _validate_options(self) -> None:
        """Hook for option checks that do not need the training sample."""

    @abstractmethod
    def resolve_params(self, n_train: int) -> Dict[str, Any]:
        """Backend parameters for a training sample of ``n_train`` events."""

    @abstractmethod
    def _build_estimator(self, params: Dict[str, Any]):
        """Unfitted backend estimator."""

    def _prepare_weights(self, weights: Optional[np.ndarray]) -> Optional[np.ndarray]:
        return weights

    def fit(
        self,
        X: np.ndarray,
        y: np.ndarray,
        sample_weight: Optional[np.ndarray] = None,
    ) -> 'BookedMethod':
        """Train on (X, y) with optional per-event weights."""
        if len(X) == 0:
            raise ValueError(f"{self.name}: empty training sample")

        self.params = self.resolve_params(len(X))
        self.options.warn_unused(self.name)
        self.estimator = self._build_estimator(self.params)

        weights = self._prepare_weights(sample_weight)
        logger.info(
            f"Training {self.name} ({self.method_type}) on {len(X):,} events, "
            f"{X.shape[1]} variables"
        )
        self.estimator.fit(X, y, sample_weight=weights)
        self.is_trained = True
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if not self.is_trained:
            raise RuntimeError(f"Method {self.name} must be trained before prediction")
        return np.asarray(self.estimator.predict(X), dtype=np.float64)

    def variable_ranking(self, feature_columns) -> Dict[str, float]:
        """Normalized importance per input variable, highest first."""
        if not self.is_trained:
            raise RuntimeError("Model must be trained first")

        importances = np.asarray(self.estimator.feature_importances_, dtype=np.float64)
        ranking = sorted(
            zip(feature_columns, importances), key=lambda item: item[1], reverse=True,
        )
        return {name: float(value) for name, value in ranking}

    @staticmethod
    def min_events(percent: float, n_train: int) -> int:
        """Event count corresponding to ``percent`` of the training sample."""
        if percent < 0:
            raise ValueError(f"MinNodeSize must be non-negative, got {percent}")
        return max(1, int(np.ceil(percent / 100.0 * n_train)))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"options={self.options.option_string!r}, trained={self.is_trained})"
        )
