"""
Batch Scoring
=============

Apply a trained regression model to every row of an event table and write
an augmented output table:

    input row   (Eta, dPhi12, dEta12, clct1, clct2, GenPt)
    output row  (|GenPt|, |BDTPt|, Eta, dPhi12, dEta12, clct1, clct2)

Output columns are the auxiliary (truth) columns, then the prediction, then
the model inputs in declared order. Truth and prediction are stored as
magnitudes; inputs are copied unchanged.

One output row per input row, in input order. The output is assembled in
memory and written once at the end, so a failed run never leaves a partial
table behind. Rows are evaluated in contiguous chunks; with ``n_jobs != 1``
chunks are evaluated in parallel by joblib worker threads (the model is
shared read-only) and re-joined in input order.

Job states::

    NOT_STARTED -> INPUT_OPENED -> ROWS_PROCESSED -> OUTPUT_WRITTEN -> CLOSED
         \\-> ABORTED  (input, weight file, schema check, scoring or write failed)

Example:
    >>> job = ScoringJob(ScoringConfig(input_path='events.parquet'))
    >>> result = job.run()
    >>> result.n_rows
    100000
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from mvareg.config import ScoringConfig
from mvareg.data.io import count_rows, open_table, table_columns, write_table
from mvareg.data.schema import FeatureSchema
from mvareg.errors import MvaRegError
from mvareg.model.base import RegressionModel, check_model_inputs
from mvareg.reader import Reader

logger = logging.getLogger(__name__)


class ScoringState(Enum):
    NOT_STARTED = 'not_started'
    INPUT_OPENED = 'input_opened'
    ROWS_PROCESSED = 'rows_processed'
    OUTPUT_WRITTEN = 'output_written'
    CLOSED = 'closed'
    ABORTED = 'aborted'


def output_columns(schema: FeatureSchema, prediction_column: str = 'BDTPt') -> List[str]:
    """Output table column order: auxiliary, prediction, inputs."""
    return list(schema.auxiliary) + [prediction_column] + list(schema.inputs)


def score_chunk(
    chunk: pd.DataFrame,
    model: RegressionModel,
    schema: FeatureSchema,
    prediction_column: str = 'BDTPt',
) -> pd.DataFrame:
    """
    Score a contiguous block of rows.

    Each row is independent: prediction = |model(inputs)[0]|, auxiliary
    values become magnitudes, inputs pass through untouched.
    """
    X = chunk[schema.inputs].to_numpy(dtype=np.float64)
    predictions = model.evaluate_batch(X)
    if predictions.shape[0] != len(chunk):
        raise RuntimeError(
            f"Model returned {predictions.shape[0]} results for {len(chunk)} rows"
        )

    out = {}
    for col in schema.auxiliary:
        out[col] = np.abs(chunk[col].to_numpy())
    out[prediction_column] = np.abs(predictions[:, 0])
    for col in schema.inputs:
        out[col] = chunk[col].to_numpy()

    return pd.DataFrame(out, columns=output_columns(schema, prediction_column))


def _empty_output(df: pd.DataFrame, schema: FeatureSchema, prediction_column: str) -> pd.DataFrame:
    columns = output_columns(schema, prediction_column)
    dtypes = {col: df[col].dtype for col in schema.auxiliary + schema.inputs}
    dtypes[prediction_column] = np.float64
    return pd.DataFrame({col: pd.Series([], dtype=dtypes[col]) for col in columns})


def score_table(
    df: pd.DataFrame,
    model: RegressionModel,
    schema: FeatureSchema,
    prediction_column: str = 'BDTPt',
    chunk_size: int = 10000,
    n_jobs: int = 1,
    progress: bool = True,
) -> pd.DataFrame:
    """
    Score every row of ``df``.

    Args:
        df: Event table containing every declared input and auxiliary column
        model: Model over ``schema.inputs``
        schema: Variable declarations
        prediction_column: Name of the prediction column
        chunk_size: Rows evaluated per model call
        n_jobs: joblib workers (1 = sequential, -1 = all cores)
        progress: Show a tqdm progress bar (sequential mode)

    Returns:
        Output table with exactly ``len(df)`` rows in input order
    """
    schema.validate(df.columns)
    check_model_inputs(model, schema.inputs)
    if n_jobs == 0:
        raise ValueError("n_jobs must not be 0")

    n_rows = len(df)
    if n_rows == 0:
        return _empty_output(df, schema, prediction_column)

    starts = range(0, n_rows, chunk_size)

    if n_jobs == 1:
        parts = []
        with tqdm(total=n_rows, desc="Scoring events", unit="evt", disable=not progress) as bar:
            for start in starts:
                chunk = df.iloc[start:start + chunk_size]
                parts.append(score_chunk(chunk, model, schema, prediction_column))
                bar.update(len(chunk))
    else:
        # Threads share the read-only model; results come back in submission order
        parts = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(score_chunk)(df.iloc[start:start + chunk_size], model, schema, prediction_column)
            for start in starts
        )

    result = pd.concat(parts, ignore_index=True)
    if len(result) != n_rows:
        raise RuntimeError(f"Scored {len(result)} rows for {n_rows} input rows")
    return result


@dataclass
class ScoringResult:
    """Summary of a completed scoring run."""
    output_path: Path
    n_rows: int
    real_time: float
    cpu_time: float


class ScoringJob:
    """
    One scoring run: book model, open input, score, write, close.

    The model can be injected (any RegressionModel over the declared
    inputs); otherwise it is loaded from ``config.weight_file``.
    """

    def __init__(self, config: ScoringConfig, model: Optional[RegressionModel] = None):
        self.config = config
        self.state = ScoringState.NOT_STARTED
        self.reader = Reader(config.schema, config.reader_options)
        self.reader.options.warn_unused('Reader')
        self._injected_model = model

    def _book_model(self) -> RegressionModel:
        if self._injected_model is not None:
            self.reader.add_model(self.config.method_name, self._injected_model)
        else:
            self.reader.book_model(self.config.method_name, self.config.weight_file)
        return self.reader.model(self.config.method_name)

    def _open_input(self) -> pd.DataFrame:
        path = self.config.input_path
        schema = self.config.schema

        # Fail on absent columns before any row is read
        schema.validate(table_columns(path), source=str(path))
        logger.info(f"Using input file: {path}")
        logger.info(f"Processing: {count_rows(path):,} events")

        return open_table(path, columns=schema.inputs + schema.auxiliary)

    def run(self, progress: bool = True) -> ScoringResult:
        """Execute the job; raises MvaRegError subclasses on fatal errors."""
        if self.state is not ScoringState.NOT_STARTED:
            raise RuntimeError(f"Scoring job already ran (state={self.state.value})")

        cfg = self.config
        try:
            model = self._book_model()
            df = self._open_input()
        except MvaRegError:
            self.state = ScoringState.ABORTED
            raise
        self.state = ScoringState.INPUT_OPENED

        wall_start = time.perf_counter()
        cpu_start = time.process_time()

        try:
            output = score_table(
                df,
                model,
                cfg.schema,
                prediction_column=cfg.prediction_column,
                chunk_size=cfg.chunk_size,
                n_jobs=cfg.n_jobs,
                progress=progress,
            )
            self.state = ScoringState.ROWS_PROCESSED

            real_time = time.perf_counter() - wall_start
            cpu_time = time.process_time() - cpu_start
            logger.info(
                f"End of event loop: Real time {real_time:.2f} s, CP time {cpu_time:.2f} s"
            )

            output_path = write_table(output, cfg.output_path, name=cfg.output_table)
        except Exception:
            self.state = ScoringState.ABORTED
            raise
        self.state = ScoringState.OUTPUT_WRITTEN

        # pq.write_table closes the file; nothing else is held open
        self.state = ScoringState.CLOSED

        return ScoringResult(
            output_path=output_path,
            n_rows=len(output),
            real_time=real_time,
            cpu_time=cpu_time,
        )
