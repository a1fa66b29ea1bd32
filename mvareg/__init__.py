"""
mvareg: Boosted-Decision-Tree Regression Training and Batch Scoring
====================================================================

Train gradient-boosted regression trees on event tables and apply them
row by row to produce augmented output tables.

Workflow:
    1. mvareg-train  -> weight files + evaluation results table
    2. mvareg-apply  -> per-event predictions next to the model inputs

Modules:
    data: Variable declarations and Parquet event-table I/O
    methods: Bookable regression methods (xgboost BDT, sklearn DT)
    model: Model boundary and weight files
    reader: Apply booked models to single events
    scoring: Batch scoring job
    trainer: Training / testing / evaluation job
    config: YAML-backed job configuration

License: MIT
"""

__version__ = "1.0.0"

from mvareg import data, methods, model
from mvareg.errors import MvaRegError, ResourceNotFound, SchemaMismatch

__all__ = [
    "data",
    "methods",
    "model",
    "MvaRegError",
    "ResourceNotFound",
    "SchemaMismatch",
]
