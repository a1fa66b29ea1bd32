"""
Reader: apply booked, trained regression models to single events.

Variables are declared once through a FeatureSchema; every booked weight
file must have been trained on exactly those variables, in that order.
"""

import logging
from pathlib import Path
from typing import Dict, List, Sequence, Union

import numpy as np

from mvareg.data.schema import FeatureSchema
from mvareg.methods.options import Options, DISPLAY_FLAGS
from mvareg.model.base import RegressionModel, check_model_inputs, load_model

logger = logging.getLogger(__name__)


class Reader:
    """Holds models booked by name over one set of declared variables."""

    def __init__(self, schema: FeatureSchema, option_string: str = ''):
        self.schema = schema
        self.options = Options(option_string)
        self.options.ignore(*DISPLAY_FLAGS)
        self._models: Dict[str, RegressionModel] = {}

    @property
    def variable_names(self) -> List[str]:
        return list(self.schema.inputs)

    @property
    def booked(self) -> List[str]:
        return list(self._models)

    def book_model(self, method_name: str, weight_file: Union[str, Path]) -> RegressionModel:
        """Load ``weight_file`` and register it under ``method_name``."""
        if method_name in self._models:
            raise ValueError(f"Method already booked: {method_name}")
        model = load_model(weight_file, self.variable_names)
        self._models[method_name] = model
        logger.info(f"Booked '{method_name}' from {weight_file}")
        return model

    def add_model(self, method_name: str, model: RegressionModel) -> RegressionModel:
        """Register an already-loaded model; raises SchemaMismatch if its inputs differ from the schema."""
        check_model_inputs(model, self.variable_names)
        self._models[method_name] = model
        return model

    def model(self, method_name: str) -> RegressionModel:
        try:
            return self._models[method_name]
        except KeyError:
            raise KeyError(
                f"Method '{method_name}' is not booked (booked: {self.booked})"
            ) from None

    def evaluate_regression(self, method_name: str, values: Sequence[float]) -> np.ndarray:
        """Regression target vector for one event."""
        return self.model(method_name).evaluate(values)
