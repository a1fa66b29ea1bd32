"""
Gradient-Boosted Decision Trees (xgboost backend)
=================================================

Option string → XGBRegressor parameters:

    NTrees=64               n_estimators
    Shrinkage=0.3           learning_rate
    MaxDepth=4              max_depth
    MinNodeSize=0.001       min_child_weight = MinNodeSize% of training events
                            (squared-error hessian is 1 per event)
    nCuts=99999             tree_method='hist', max_bin=nCuts
    nCuts=-1                tree_method='exact'
    UseBaggedBoost          subsample=BaggedSampleFraction (default 0.6)
    BoostType=Grad          only gradient boosting is available
    NegWeightTreatment=IgnoreNegWeightsInTraining
                            negative event weights are zeroed for training
    NegWeightTreatment=Pray negative weights are passed through unchanged

Example:
    >>> bdt = GradientBDT('BDTG', '!H:!V:NTrees=64:BoostType=Grad:Shrinkage=0.3')
    >>> bdt.fit(X_train, y_train)
    >>> bdt.predict(X_test)
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import xgboost as xgb

from mvareg.methods.base import BookedMethod, DEFAULT_MIN_NODE_SIZE_PCT

logger = logging.getLogger(__name__)

NEG_WEIGHT_TREATMENTS = ('IgnoreNegWeightsInTraining', 'Pray')


class GradientBDT(BookedMethod):
    """Gradient boosting regression via xgboost.XGBRegressor."""

    method_type = 'BDT'

    def _validate_options(self) -> None:
        boost_type = self.options.get_str('BoostType', 'Grad')
        if boost_type.lower() != 'grad':
            raise ValueError(
                f"{self.name}: BoostType={boost_type} is not available, "
                f"only BoostType=Grad is supported"
            )

        treatment = self.options.get_str('NegWeightTreatment', 'IgnoreNegWeightsInTraining')
        if treatment not in NEG_WEIGHT_TREATMENTS:
            raise ValueError(
                f"{self.name}: NegWeightTreatment={treatment} is not supported "
                f"(choose from {NEG_WEIGHT_TREATMENTS})"
            )
        self.neg_weight_treatment = treatment

    def resolve_params(self, n_train: int) -> Dict[str, Any]:
        opts = self.options

        n_trees = opts.get_int('NTrees', 800)
        max_depth = opts.get_int('MaxDepth', 3)
        shrinkage = opts.get_float('Shrinkage', 1.0)
        if n_trees < 1:
            raise ValueError(f"{self.name}: NTrees must be >= 1, got {n_trees}")
        if max_depth < 1:
            raise ValueError(f"{self.name}: MaxDepth must be >= 1, got {max_depth}")
        if not 0.0 < shrinkage <= 1.0:
            raise ValueError(f"{self.name}: Shrinkage must be in (0, 1], got {shrinkage}")

        min_node_pct = opts.get_float('MinNodeSize', DEFAULT_MIN_NODE_SIZE_PCT)

        params = {
            'n_estimators': n_trees,
            'max_depth': max_depth,
            'learning_rate': shrinkage,
            'min_child_weight': self.min_events(min_node_pct, n_train),
            'objective': 'reg:squarederror',
            'random_state': self.random_state,
            'n_jobs': -1,
            'verbosity': 0,
        }

        n_cuts = opts.get_int('nCuts', 20)
        if n_cuts <= 0:
            params['tree_method'] = 'exact'
        else:
            params['tree_method'] = 'hist'
            params['max_bin'] = max(2, n_cuts)

        if opts.get_bool('UseBaggedBoost', False):
            params['subsample'] = opts.get_float('BaggedSampleFraction', 0.6)
        else:
            opts.ignore('BaggedSampleFraction')

        return params

    def _build_estimator(self, params: Dict[str, Any]):
        return xgb.XGBRegressor(**params)

    def _prepare_weights(self, weights: Optional[np.ndarray]) -> Optional[np.ndarray]:
        if weights is None:
            return None
        weights = np.asarray(weights, dtype=np.float64)
        n_negative = int((weights < 0).sum())
        if n_negative and self.neg_weight_treatment == 'IgnoreNegWeightsInTraining':
            logger.info(
                f"{self.name}: ignoring {n_negative:,} events with negative weight in training"
            )
            weights = np.where(weights < 0, 0.0, weights)
        return weights

