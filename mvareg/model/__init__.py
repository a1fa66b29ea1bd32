"""
Model Module
============

The boundary between mvareg and the trained regression models.

Key Components:
    RegressionModel: Abstract read-only model (evaluate / evaluate_batch)
    EstimatorModel: RegressionModel over a fitted xgboost / sklearn estimator
    load_model: Load a weight file, checking the declared variables
    save_weights: Write a weight file
"""

from mvareg.model.base import (
    RegressionModel,
    EstimatorModel,
    check_model_inputs,
    load_model,
    save_weights,
)

__all__ = [
    "RegressionModel",
    "EstimatorModel",
    "check_model_inputs",
    "load_model",
    "save_weights",
]
