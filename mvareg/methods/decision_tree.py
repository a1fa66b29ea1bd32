"""
Single decision tree regression (scikit-learn backend).

Options:
    MaxDepth=3          max_depth (0 or negative = unlimited)
    MinNodeSize=0.2     min_samples_leaf = MinNodeSize% of training events
"""

from typing import Any, Dict

from sklearn.tree import DecisionTreeRegressor

from mvareg.methods.base import BookedMethod, DEFAULT_MIN_NODE_SIZE_PCT


class DecisionTree(BookedMethod):
    """Regression tree via sklearn.tree.DecisionTreeRegressor."""

    method_type = 'DT'

    def resolve_params(self, n_train: int) -> Dict[str, Any]:
        max_depth = self.options.get_int('MaxDepth', 3)
        min_node_pct = self.options.get_float('MinNodeSize', DEFAULT_MIN_NODE_SIZE_PCT)

        return {
            'max_depth': max_depth if max_depth > 0 else None,
            'min_samples_leaf': self.min_events(min_node_pct, n_train),
            'random_state': self.random_state,
        }

    def _build_estimator(self, params: Dict[str, Any]):
        return DecisionTreeRegressor(**params)
