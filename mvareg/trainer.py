"""
Regression Training
===================

Train, test and evaluate booked regression methods on one event table, then
write a weight file per method and a results table with every method's
predictions on the training and test samples.

Workflow:
    1. Declare variables and target (FeatureSchema)
    2. add_regression_table(df, weight)
    3. prepare_training_and_test(cut, split options)
    4. book_method(type, name, options) for each method
    5. train_all_methods()  -> weight files
    6. test_all_methods()   -> predictions on both samples
    7. evaluate_all_methods() -> metrics per method
    8. close()              -> results table

Split options (colon-separated):
    nTrain_Regression=N   training events (0 = see below)
    nTest_Regression=N    test events (0 = see below)
    SplitMode=Random|Block|Alternate
    SplitSeed=100         seed for SplitMode=Random
    NormMode=None|NumEvents|EqualNumEvents

If both counts are 0 the selected events are split in half; if one is 0 it
takes all events not used by the other. NumEvents (and EqualNumEvents, which
is identical for a single regression class) rescales weights so that each
sample's weights sum to its event count.

Evaluation metrics (test sample, event-weighted where applicable):
    mse, mae, r2                 sklearn.metrics
    bias, rms                    mean and std of (prediction - target)
    bias_trunc, rms_trunc        same, restricted to events whose |deviation|
                                 is within the 90% quantile
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from tqdm import tqdm

from mvareg.config import TrainingConfig, weight_file_path
from mvareg.data.io import open_table, write_table
from mvareg.data.schema import FeatureSchema
from mvareg.methods import BookedMethod, book_method
from mvareg.methods.options import Options, DISPLAY_FLAGS
from mvareg.model.base import save_weights

logger = logging.getLogger(__name__)

SPLIT_MODES = ('random', 'block', 'alternate')
NORM_MODES = ('none', 'numevents', 'equalnumevents')

# Truncation quantile for bias_trunc / rms_trunc
TRUNCATION_QUANTILE = 0.9


@dataclass
class SplitOptions:
    """Resolved train/test split settings."""
    n_train: int = 0
    n_test: int = 0
    split_mode: str = 'random'
    split_seed: int = 100
    norm_mode: str = 'numevents'

    @classmethod
    def parse(cls, option_string: str) -> 'SplitOptions':
        opts = Options(option_string)
        opts.ignore(*DISPLAY_FLAGS)

        split = cls(
            n_train=opts.get_int('nTrain_Regression', 0),
            n_test=opts.get_int('nTest_Regression', 0),
            split_mode=opts.get_str('SplitMode', 'Random').lower(),
            split_seed=opts.get_int('SplitSeed', 100),
            norm_mode=opts.get_str('NormMode', 'NumEvents').lower(),
        )
        opts.warn_unused('PrepareTrainingAndTest')

        if split.n_train < 0 or split.n_test < 0:
            raise ValueError("nTrain_Regression and nTest_Regression must be >= 0")
        if split.split_mode not in SPLIT_MODES:
            raise ValueError(f"Unknown SplitMode '{split.split_mode}' (choose from {SPLIT_MODES})")
        if split.norm_mode not in NORM_MODES:
            raise ValueError(f"Unknown NormMode '{split.norm_mode}' (choose from {NORM_MODES})")
        return split

    def resolve_counts(self, n_events: int) -> tuple:
        """(n_train, n_test) for ``n_events`` selected events."""
        n_train, n_test = self.n_train, self.n_test
        if n_train == 0 and n_test == 0:
            n_train = n_events // 2
            n_test = n_events - n_train
        elif n_train == 0:
            n_train = n_events - n_test
        elif n_test == 0:
            n_test = n_events - n_train

        if n_train + n_test > n_events:
            raise ValueError(
                f"Requested {n_train:,} training + {n_test:,} test events, "
                f"but only {n_events:,} events pass the selection"
            )
        if n_train <= 0:
            raise ValueError("No events left for training")
        return n_train, n_test


def _weighted_std(x: np.ndarray, w: np.ndarray, mean: float) -> float:
    return float(np.sqrt(np.average((x - mean) ** 2, weights=w)))


def regression_metrics(
    target: np.ndarray,
    prediction: np.ndarray,
    weights: Optional[np.ndarray] = None,
) -> Dict[str, float]:
    """Deviation statistics of ``prediction`` against ``target``."""
    target = np.asarray(target, dtype=np.float64)
    prediction = np.asarray(prediction, dtype=np.float64)
    if weights is None:
        weights = np.ones_like(target)
    weights = np.asarray(weights, dtype=np.float64)

    n = len(target)
    if n == 0 or weights.sum() <= 0:
        metrics = {k: float('nan') for k in ('mse', 'mae', 'r2', 'bias', 'rms', 'bias_trunc', 'rms_trunc')}
        metrics['n_events'] = n
        return metrics

    deviation = prediction - target
    bias = float(np.average(deviation, weights=weights))
    rms = _weighted_std(deviation, weights, bias)

    cut = np.quantile(np.abs(deviation), TRUNCATION_QUANTILE)
    inside = np.abs(deviation) <= cut
    bias_trunc = float(np.average(deviation[inside], weights=weights[inside]))
    rms_trunc = _weighted_std(deviation[inside], weights[inside], bias_trunc)

    return {
        'n_events': n,
        'mse': float(mean_squared_error(target, prediction, sample_weight=weights)),
        'mae': float(mean_absolute_error(target, prediction, sample_weight=weights)),
        'r2': float(r2_score(target, prediction, sample_weight=weights)) if n > 1 else float('nan'),
        'bias': bias,
        'rms': rms,
        'bias_trunc': bias_trunc,
        'rms_trunc': rms_trunc,
    }


class Trainer:
    """
    Books, trains, tests and evaluates regression methods for one job.

    Args:
        job_name: Prefix for weight files (``<job_name>_<method>.weights.joblib``)
        output_path: Results table written by close()
        schema: Input variables, target, optional weight column and spectators
        option_string: Job options (V, Silent, DrawProgressBar, Color)
        weights_dir: Directory for weight files
    """

    def __init__(
        self,
        job_name: str,
        output_path: Union[str, Path],
        schema: FeatureSchema,
        option_string: str = '',
        weights_dir: Union[str, Path] = 'dataset/weights',
    ):
        if schema.target is None:
            raise ValueError("Regression training needs a target variable")

        self.job_name = job_name
        self.output_path = Path(output_path)
        self.schema = schema
        self.weights_dir = Path(weights_dir)

        opts = Options(option_string)
        self.verbose = opts.get_bool('V', False)
        self.silent = opts.get_bool('Silent', False)
        self.progress = opts.get_bool('DrawProgressBar', False)
        opts.ignore('Color', 'H', 'VerboseLevel')
        opts.warn_unused(job_name)

        self.methods: Dict[str, BookedMethod] = {}
        self.metrics: Dict[str, Dict[str, float]] = {}
        self._tables: List[pd.DataFrame] = []
        self._train: Optional[pd.DataFrame] = None
        self._test: Optional[pd.DataFrame] = None
        self._predictions: Dict[str, Dict[str, np.ndarray]] = {}
        self.is_closed = False

    # ---- data -----------------------------------------------------------

    def add_regression_table(self, df: pd.DataFrame, weight: float = 1.0) -> None:
        """Register an event table; every event gets global weight ``weight``."""
        self.schema.validate(df.columns, source='regression table')

        table = df[self.schema.columns].copy()
        event_weight = np.full(len(table), float(weight))
        if self.schema.weight is not None:
            event_weight = event_weight * table[self.schema.weight].to_numpy(dtype=np.float64)
        table['__weight__'] = event_weight

        self._tables.append(table)
        logger.info(f"Added regression table: {len(table):,} events, global weight {weight}")

    def prepare_training_and_test(self, cut: str = '', option_string: str = '') -> None:
        """
        Apply ``cut`` (a DataFrame.query expression, '' = none) and split
        the selected events into training and test samples.
        """
        if not self._tables:
            raise RuntimeError("No regression table added")

        events = pd.concat(self._tables, ignore_index=True)
        if cut:
            n_before = len(events)
            events = events.query(cut).reset_index(drop=True)
            logger.info(f"Cut '{cut}': {len(events):,} of {n_before:,} events selected")

        used = self.schema.inputs + [self.schema.target]
        nan_mask = events[used].isna().any(axis=1)
        if nan_mask.any():
            logger.warning(
                f"Dropping {int(nan_mask.sum()):,} events with NaN in inputs or target "
                f"({nan_mask.mean() * 100:.2f}%)"
            )
            events = events.loc[~nan_mask].reset_index(drop=True)

        split = SplitOptions.parse(option_string)
        n_train, n_test = split.resolve_counts(len(events))

        if split.split_mode == 'random':
            rng = np.random.default_rng(split.split_seed)
            order = rng.permutation(len(events))
        elif split.split_mode == 'alternate':
            idx = np.arange(len(events))
            order = np.concatenate([idx[0::2], idx[1::2]])
        else:
            order = np.arange(len(events))

        self._train = events.iloc[order[:n_train]].reset_index(drop=True)
        self._test = events.iloc[order[n_train:n_train + n_test]].reset_index(drop=True)

        if split.norm_mode != 'none':
            for sample in (self._train, self._test):
                total = sample['__weight__'].sum()
                if len(sample) and total > 0:
                    sample['__weight__'] *= len(sample) / total

        logger.info(
            f"Training sample: {len(self._train):,} events, "
            f"test sample: {len(self._test):,} events "
            f"(SplitMode={split.split_mode}, NormMode={split.norm_mode})"
        )

    # ---- methods --------------------------------------------------------

    def book_method(self, method_type: str, name: str, option_string: str = '') -> BookedMethod:
        if name in self.methods:
            raise ValueError(f"Method '{name}' is already booked")
        method = book_method(method_type, name, option_string)
        self.methods[name] = method
        logger.info(f"Booked method {name} ({method_type}): {option_string}")
        return method

    def weight_file(self, name: str) -> Path:
        return weight_file_path(self.weights_dir, self.job_name, name)

    def _arrays(self, sample: pd.DataFrame):
        X = sample[self.schema.inputs].to_numpy(dtype=np.float64)
        y = sample[self.schema.target].to_numpy(dtype=np.float64)
        w = sample['__weight__'].to_numpy(dtype=np.float64)
        return X, y, w

    def _write_weights(self, method: BookedMethod) -> Path:
        return save_weights(
            self.weight_file(method.name),
            method.estimator,
            self.schema.inputs,
            self.schema.target,
            method_name=method.name,
            method_type=method.method_type,
            params=method.params,
            metrics=method.metrics,
        )

    def _require_split(self) -> None:
        if self._train is None:
            raise RuntimeError("Call prepare_training_and_test() first")

    def train_all_methods(self) -> None:
        """Train every booked method and write its weight file."""
        self._require_split()
        if not self.methods:
            raise RuntimeError("No methods booked")

        X, y, w = self._arrays(self._train)
        methods = list(self.methods.values())
        for method in tqdm(methods, desc="Training", disable=not self.progress):
            method.fit(X, y, sample_weight=w)
            log = logger.info if self.verbose else logger.debug
            log(f"{method.name} parameters: {method.params}")

            ranking = method.variable_ranking(self.schema.inputs)
            logger.info(f"{method.name} variable ranking:")
            for rank, (name, importance) in enumerate(ranking.items(), start=1):
                logger.info(f"  {rank:3d}  {name:15s} {importance:.4e}")

            self._write_weights(method)

    def test_all_methods(self) -> None:
        """Compute every method's predictions on both samples."""
        self._require_split()
        X_train, _, _ = self._arrays(self._train)
        X_test, _, _ = self._arrays(self._test)

        for name, method in self.methods.items():
            self._predictions[name] = {
                'train': method.predict(X_train),
                'test': method.predict(X_test) if len(X_test) else np.empty(0),
            }
            logger.debug(f"Tested {name}")

    def evaluate_all_methods(self) -> Dict[str, Dict[str, float]]:
        """Deviation metrics on the test sample; updates weight files."""
        if len(self._predictions) != len(self.methods):
            self.test_all_methods()

        _, y_test, w_test = self._arrays(self._test)
        for name, method in self.methods.items():
            metrics = regression_metrics(y_test, self._predictions[name]['test'], w_test)
            method.metrics = metrics
            self.metrics[name] = metrics
            self._write_weights(method)

        self._log_evaluation()
        return self.metrics

    def _log_evaluation(self) -> None:
        log = logger.debug if self.silent else logger.info
        log("Evaluation results (test sample):")
        log(
            f"  {'Method':12s} {'bias':>11s} {'rms':>11s} {'bias_T':>11s} "
            f"{'rms_T':>11s} {'mse':>11s} {'r2':>8s}"
        )
        for name, m in self.metrics.items():
            log(
                f"  {name:12s} {m['bias']:11.4e} {m['rms']:11.4e} {m['bias_trunc']:11.4e} "
                f"{m['rms_trunc']:11.4e} {m['mse']:11.4e} {m['r2']:8.4f}"
            )

    # ---- output ---------------------------------------------------------

    def results_table(self) -> pd.DataFrame:
        """Inputs, target, spectators, weight and predictions for both samples."""
        self._require_split()
        frames = []
        for sample_name, sample in (('train', self._train), ('test', self._test)):
            frame = sample[self.schema.inputs + [self.schema.target] + self.schema.spectators].copy()
            frame['weight'] = sample['__weight__'].to_numpy()
            for name, preds in self._predictions.items():
                frame[name] = preds[sample_name]
            frame.insert(0, 'sample', sample_name)
            frames.append(frame)
        return pd.concat(frames, ignore_index=True)

    def close(self) -> Path:
        """Write the results table; the trainer cannot be reused afterwards."""
        if self.is_closed:
            raise RuntimeError("Trainer already closed")
        path = write_table(self.results_table(), self.output_path, name=self.job_name)
        self.is_closed = True
        return path


def run_training(
    config: TrainingConfig,
    method_names: Optional[Sequence[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Full training job from a TrainingConfig.

    Args:
        config: Job configuration
        method_names: Restrict to these booked method names (None/empty = all)

    Returns:
        Evaluation metrics per method

    Raises:
        ResourceNotFound: Input table missing
        ValueError: Unknown method name in ``method_names``
    """
    specs = config.methods
    if method_names:
        known = {m.name for m in specs}
        unknown = [n for n in method_names if n not in known]
        if unknown:
            raise ValueError(
                f"Unknown method(s) {unknown}; configured: {sorted(known)}"
            )
        specs = [m for m in specs if m.name in method_names]

    df = open_table(config.input_path)
    logger.info(f"Using input file: {config.input_path}")

    trainer = Trainer(
        config.job_name,
        config.output_path,
        config.schema,
        option_string=config.factory_options,
        weights_dir=config.weights_dir,
    )
    trainer.add_regression_table(df, weight=config.event_weight)
    trainer.prepare_training_and_test(config.cut, config.split_options)

    for spec in specs:
        trainer.book_method(spec.type, spec.name, spec.options)

    trainer.train_all_methods()
    trainer.test_all_methods()
    metrics = trainer.evaluate_all_methods()
    trainer.close()
    return metrics
