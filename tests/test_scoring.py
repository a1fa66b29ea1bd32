"""
Tests for the batch scoring loop and ScoringJob.

Models are small RegressionModel stand-ins so that expected outputs are
known exactly; one test scores with a real weight file.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.tree import DecisionTreeRegressor

from mvareg.config import ScoringConfig
from mvareg.data import make_muon_events, open_table, table_name, write_table
from mvareg.data.schema import FeatureSchema, muon_pt_schema
from mvareg.errors import ResourceNotFound, SchemaMismatch
from mvareg.model import RegressionModel, save_weights
from mvareg.scoring import (
    ScoringJob,
    ScoringState,
    output_columns,
    score_table,
)

INPUTS = ['Eta', 'dPhi12', 'dEta12', 'clct1', 'clct2']
OUTPUT = ['GenPt', 'BDTPt', 'Eta', 'dPhi12', 'dEta12', 'clct1', 'clct2']


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class ConstantModel(RegressionModel):
    """Returns the same value for every row."""

    def __init__(self, value, variable_names=INPUTS):
        super().__init__(variable_names)
        self.value = value

    def evaluate_batch(self, X):
        return np.full((len(X), 1), self.value, dtype=np.float64)


class InverseSlopeModel(RegressionModel):
    """Signed pT estimate from the bending angle: -0.4 / dPhi12."""

    def __init__(self):
        super().__init__(INPUTS)
        self.calls = 0

    def evaluate_batch(self, X):
        self.calls += 1
        X = np.asarray(X)
        return (-0.4 / X[:, [1]]).astype(np.float64)


class TwoTargetModel(RegressionModel):
    """Returns two regression targets per row; only the first is stored."""

    def __init__(self):
        super().__init__(INPUTS)

    def evaluate_batch(self, X):
        return np.tile([-42.5, 99.0], (len(X), 1))


class FailingModel(RegressionModel):
    """Raises on evaluation, after the input has been opened."""

    def __init__(self):
        super().__init__(INPUTS)

    def evaluate_batch(self, X):
        raise RuntimeError("evaluation failed")


def _make_scenario_row() -> pd.DataFrame:
    return pd.DataFrame({
        'Eta': [1.2], 'dPhi12': [0.3], 'dEta12': [0.1],
        'clct1': [4.0], 'clct2': [5.0], 'GenPt': [-50.0],
    })


# ===================================================================
# score_table
# ===================================================================

class TestScoreTable(unittest.TestCase):

    def setUp(self):
        self.schema = muon_pt_schema()
        self.events = make_muon_events(500, seed=7)

    def test_output_columns(self):
        self.assertEqual(output_columns(self.schema), OUTPUT)
        self.assertEqual(output_columns(self.schema, 'Pred')[1], 'Pred')

    def test_reference_row(self):
        out = score_table(_make_scenario_row(), ConstantModel(-42.5), self.schema, progress=False)

        self.assertEqual(list(out.columns), OUTPUT)
        self.assertEqual(len(out), 1)
        np.testing.assert_allclose(
            out.iloc[0].to_numpy(dtype=np.float64),
            [50.0, 42.5, 1.2, 0.3, 0.1, 4.0, 5.0],
        )

    def test_one_row_per_input_in_order(self):
        out = score_table(self.events, InverseSlopeModel(), self.schema, chunk_size=64, progress=False)

        self.assertEqual(len(out), len(self.events))
        expected = np.abs(-0.4 / self.events['dPhi12'].to_numpy(dtype=np.float64))
        np.testing.assert_allclose(out['BDTPt'].to_numpy(), expected)

    def test_inputs_pass_through(self):
        out = score_table(self.events, ConstantModel(1.0), self.schema, progress=False)
        for col in INPUTS:
            np.testing.assert_array_equal(out[col].to_numpy(), self.events[col].to_numpy())

    def test_truth_and_prediction_are_magnitudes(self):
        out = score_table(self.events, ConstantModel(-3.0), self.schema, progress=False)

        self.assertTrue((out['GenPt'] >= 0).all())
        np.testing.assert_allclose(out['GenPt'], np.abs(self.events['GenPt']))
        self.assertTrue((out['BDTPt'] == 3.0).all())
        # signed inputs keep their sign
        self.assertTrue((out['dPhi12'] < 0).any())

    def test_chunk_size_does_not_change_result(self):
        whole = score_table(self.events, InverseSlopeModel(), self.schema, chunk_size=10000, progress=False)
        per_row_model = InverseSlopeModel()
        per_row = score_table(self.events.iloc[:40], per_row_model, self.schema, chunk_size=1, progress=False)

        self.assertEqual(per_row_model.calls, 40)
        pd.testing.assert_frame_equal(per_row, whole.iloc[:40].reset_index(drop=True))

    def test_parallel_matches_sequential(self):
        sequential = score_table(self.events, InverseSlopeModel(), self.schema, chunk_size=50, progress=False)
        parallel = score_table(self.events, InverseSlopeModel(), self.schema, chunk_size=50, n_jobs=2)
        pd.testing.assert_frame_equal(parallel, sequential)

    def test_empty_input(self):
        out = score_table(self.events.iloc[0:0], ConstantModel(1.0), self.schema, progress=False)
        self.assertEqual(len(out), 0)
        self.assertEqual(list(out.columns), OUTPUT)

    def test_missing_column(self):
        with self.assertRaises(SchemaMismatch):
            score_table(self.events.drop(columns=['clct2']), ConstantModel(1.0), self.schema)

    def test_model_inputs_must_match(self):
        with self.assertRaises(SchemaMismatch):
            score_table(self.events, ConstantModel(1.0, ['Eta', 'dPhi12']), self.schema)
        reordered = ['dPhi12', 'Eta', 'dEta12', 'clct1', 'clct2']
        with self.assertRaises(SchemaMismatch):
            score_table(self.events, ConstantModel(1.0, reordered), self.schema)

    def test_only_first_target_is_stored(self):
        out = score_table(_make_scenario_row(), TwoTargetModel(), self.schema, progress=False)
        self.assertEqual(list(out.columns), OUTPUT)
        self.assertEqual(out['BDTPt'].iloc[0], 42.5)

    def test_zero_workers_rejected(self):
        with self.assertRaises(ValueError):
            score_table(self.events, ConstantModel(1.0), self.schema, n_jobs=0)

    def test_extra_columns_ignored(self):
        events = self.events.assign(Phi=0.5)
        out = score_table(events, ConstantModel(1.0), self.schema, progress=False)
        self.assertNotIn('Phi', out.columns)


# ===================================================================
# ScoringJob
# ===================================================================

class TestScoringJob(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix='mvareg_scoring_test_'))
        self.input_path = write_table(
            make_muon_events(300, seed=3), self.tmpdir / 'events.parquet', name='theNtuple',
        )

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _config(self, **overrides) -> ScoringConfig:
        values = {
            'input_path': str(self.input_path),
            'output_path': str(self.tmpdir / 'out' / 'results.parquet'),
            'weights_dir': str(self.tmpdir / 'weights'),
        }
        values.update(overrides)
        return ScoringConfig(**values)

    def test_run_with_injected_model(self):
        job = ScoringJob(self._config(), model=ConstantModel(-42.5))
        result = job.run(progress=False)

        self.assertEqual(job.state, ScoringState.CLOSED)
        self.assertEqual(result.n_rows, 300)
        self.assertGreaterEqual(result.real_time, 0.0)

        out = open_table(result.output_path)
        self.assertEqual(list(out.columns), OUTPUT)
        self.assertEqual(len(out), 300)
        self.assertEqual(table_name(result.output_path), 'BDTresults')

    def test_run_with_weight_file(self):
        events = make_muon_events(400, seed=11)
        tree = DecisionTreeRegressor(max_depth=5, random_state=42)
        tree.fit(events[INPUTS].to_numpy(dtype=np.float64), events['GenPt'].to_numpy())
        config = self._config()
        save_weights(config.weight_file, tree, INPUTS, 'GenPt', 'BDTG', 'DT')

        result = ScoringJob(config).run(progress=False)
        out = open_table(result.output_path)
        self.assertTrue((out['BDTPt'] >= 0).all())
        self.assertEqual(len(out), 300)

    def test_rerun_is_idempotent(self):
        first = ScoringJob(self._config(), model=InverseSlopeModel()).run(progress=False)
        before = open_table(first.output_path)
        second = ScoringJob(self._config(), model=InverseSlopeModel()).run(progress=False)
        pd.testing.assert_frame_equal(open_table(second.output_path), before)

    def test_missing_input_aborts(self):
        config = self._config(input_path=str(self.tmpdir / 'absent.parquet'))
        job = ScoringJob(config, model=ConstantModel(1.0))

        with self.assertRaises(ResourceNotFound):
            job.run(progress=False)
        self.assertEqual(job.state, ScoringState.ABORTED)
        self.assertFalse(Path(config.output_path).exists())

    def test_missing_weight_file_aborts(self):
        config = self._config()
        job = ScoringJob(config)

        with self.assertRaises(ResourceNotFound) as ctx:
            job.run(progress=False)
        self.assertEqual(ctx.exception.what, 'weight file')
        self.assertEqual(job.state, ScoringState.ABORTED)
        self.assertFalse(Path(config.output_path).exists())

    def test_schema_mismatch_aborts(self):
        schema = FeatureSchema(inputs=['Eta', 'dPhi12', 'dEta12', 'clct1', 'pattern'], auxiliary=['GenPt'])
        config = self._config(schema=schema)
        model = ConstantModel(1.0, schema.inputs)
        job = ScoringJob(config, model=model)

        with self.assertRaises(SchemaMismatch):
            job.run(progress=False)
        self.assertEqual(job.state, ScoringState.ABORTED)
        self.assertFalse(Path(config.output_path).exists())

    def test_injected_model_with_other_inputs_aborts(self):
        config = self._config()
        job = ScoringJob(config, model=ConstantModel(1.0, ['Eta', 'dPhi12']))

        with self.assertRaises(SchemaMismatch):
            job.run(progress=False)
        self.assertEqual(job.state, ScoringState.ABORTED)
        self.assertFalse(Path(config.output_path).exists())

    def test_evaluation_failure_aborts(self):
        config = self._config()
        job = ScoringJob(config, model=FailingModel())

        with self.assertRaises(RuntimeError):
            job.run(progress=False)
        self.assertEqual(job.state, ScoringState.ABORTED)
        self.assertFalse(Path(config.output_path).exists())

    def test_empty_input_writes_header(self):
        path = write_table(make_muon_events(10).iloc[0:0], self.tmpdir / 'empty.parquet')
        result = ScoringJob(self._config(input_path=str(path)), model=ConstantModel(1.0)).run(progress=False)

        self.assertEqual(result.n_rows, 0)
        out = open_table(result.output_path)
        self.assertEqual(list(out.columns), OUTPUT)
        self.assertEqual(len(out), 0)

    def test_job_runs_once(self):
        job = ScoringJob(self._config(), model=ConstantModel(1.0))
        job.run(progress=False)
        with self.assertRaises(RuntimeError):
            job.run(progress=False)


if __name__ == '__main__':
    unittest.main()
