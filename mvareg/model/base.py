"""
Model Boundary
==============

The scoring loop only ever sees a RegressionModel: an immutable function
from a fixed, ordered set of named inputs to a vector of regression
targets. How the model was trained, and how it is stored, stays behind this
interface.

Weight files are joblib bundles written by ``save_weights``::

    {
        'model': fitted estimator with .predict(X),
        'feature_columns': ['Eta', 'dPhi12', ...],   # input order
        'target': 'etruth',
        'method_name': 'BDTG',
        'method_type': 'BDT',
        'params': {...},                               # resolved backend params
        'metrics': {...},
    }

Example:
    >>> model = load_model('dataset/weights/TMVARegression_BDTG.weights.joblib',
    ...                    ['Eta', 'dPhi12', 'dEta12', 'clct1', 'clct2'])
    >>> model.evaluate([1.2, 0.3, 0.1, 4, 5])
    array([42.5])
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import joblib
import numpy as np

from mvareg.errors import ResourceNotFound, SchemaMismatch

logger = logging.getLogger(__name__)


class RegressionModel(ABC):
    """Read-only regression model over named, ordered inputs."""

    def __init__(self, variable_names: Sequence[str]):
        self._variable_names = tuple(variable_names)

    @property
    def variable_names(self) -> List[str]:
        return list(self._variable_names)

    @property
    def n_inputs(self) -> int:
        return len(self._variable_names)

    @abstractmethod
    def evaluate_batch(self, X: np.ndarray) -> np.ndarray:
        """
        Evaluate many rows at once.

        Args:
            X: Array of shape (n_rows, n_inputs)

        Returns:
            Array of shape (n_rows, n_targets)
        """

    def evaluate(self, values: Sequence[float]) -> np.ndarray:
        """Evaluate one row; returns the vector of regression targets."""
        x = np.asarray(values, dtype=np.float64).reshape(1, -1)
        if x.shape[1] != self.n_inputs:
            raise ValueError(
                f"Expected {self.n_inputs} input values "
                f"({self.variable_names}), got {x.shape[1]}"
            )
        return self.evaluate_batch(x)[0]


class EstimatorModel(RegressionModel):
    """RegressionModel backed by any fitted estimator exposing ``predict``."""

    def __init__(
        self,
        estimator,
        variable_names: Sequence[str],
        target: Optional[str] = None,
        method_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(variable_names)
        self.estimator = estimator
        self.target = target
        self.method_name = method_name
        self.metadata = metadata or {}

    def evaluate_batch(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.n_inputs:
            raise ValueError(
                f"Expected array of shape (n, {self.n_inputs}), got {X.shape}"
            )
        if len(X) == 0:
            return np.empty((0, 1), dtype=np.float64)

        y = np.asarray(self.estimator.predict(X), dtype=np.float64)
        if y.ndim == 1:
            y = y[:, np.newaxis]
        return y

    def __repr__(self) -> str:
        return (
            f"EstimatorModel(method={self.method_name!r}, "
            f"inputs={self.variable_names}, target={self.target!r})"
        )


def _require_same_inputs(stored: Sequence[str], declared: Sequence[str], source: str) -> None:
    stored, declared = list(stored), list(declared)
    if stored == declared:
        return
    missing = [v for v in stored if v not in declared]
    extra = [v for v in declared if v not in stored]
    # Same names in a different order is still a mismatch
    raise SchemaMismatch(missing + extra or declared, source=f"{source} (expects {stored})")


def check_model_inputs(model: RegressionModel, variable_names: Sequence[str]) -> None:
    """Raise SchemaMismatch unless ``model`` takes exactly ``variable_names``, in order."""
    _require_same_inputs(model.variable_names, variable_names, f"model {model!r}")


def save_weights(
    filepath: Union[str, Path],
    estimator,
    feature_columns: Sequence[str],
    target: Optional[str],
    method_name: str,
    method_type: str,
    params: Optional[Dict[str, Any]] = None,
    metrics: Optional[Dict[str, Any]] = None,
) -> Path:
    """Persist a fitted estimator and its declarations as a weight file."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    bundle = {
        'model': estimator,
        'feature_columns': list(feature_columns),
        'target': target,
        'method_name': method_name,
        'method_type': method_type,
        'params': dict(params or {}),
        'metrics': dict(metrics or {}),
    }
    joblib.dump(bundle, filepath)
    logger.info(f"Saved weight file for {method_name}: {filepath}")
    return filepath


def load_model(
    filepath: Union[str, Path],
    variable_names: Optional[Sequence[str]] = None,
) -> EstimatorModel:
    """
    Load a weight file.

    Args:
        filepath: Path written by ``save_weights``
        variable_names: Declared inputs. Must match the stored input names
            exactly, in order. None skips the check.

    Raises:
        ResourceNotFound: Weight file does not exist
        SchemaMismatch: Declared variables disagree with the weight file
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise ResourceNotFound(filepath, what='weight file')

    bundle = joblib.load(filepath)
    stored = list(bundle['feature_columns'])

    if variable_names is not None:
        _require_same_inputs(stored, variable_names, f"weight file {filepath}")

    model = EstimatorModel(
        bundle['model'],
        stored,
        target=bundle.get('target'),
        method_name=bundle.get('method_name'),
        metadata={
            'method_type': bundle.get('method_type'),
            'params': bundle.get('params', {}),
            'metrics': bundle.get('metrics', {}),
        },
    )
    logger.info(f"Loaded {model!r} from {filepath}")
    return model
