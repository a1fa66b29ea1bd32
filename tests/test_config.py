"""Tests for the YAML-backed job configurations."""

import pytest

from mvareg.config import (
    DEFAULT_BDTG_OPTIONS,
    MethodSpec,
    ScoringConfig,
    TrainingConfig,
    dump_yaml,
    weight_file_path,
)
from mvareg.data.schema import FeatureSchema
from mvareg.errors import ResourceNotFound


class TestScoringConfig:
    def test_defaults(self):
        config = ScoringConfig()
        assert config.schema.inputs == ['Eta', 'dPhi12', 'dEta12', 'clct1', 'clct2']
        assert config.schema.auxiliary == ['GenPt']
        assert config.output_table == 'BDTresults'
        assert config.weight_file.name == 'TMVARegression_BDTG.weights.joblib'

    def test_yaml_round_trip(self, tmp_path):
        config = ScoringConfig(input_path='in.parquet', n_jobs=4, chunk_size=500)
        path = dump_yaml(config, tmp_path / 'cfg' / 'scoring.yaml')
        assert ScoringConfig.from_yaml(path) == config

    def test_schema_from_mapping(self, tmp_path):
        path = tmp_path / 'scoring.yaml'
        path.write_text(
            "method_name: DT\n"
            "schema:\n"
            "  inputs: [x, y]\n"
            "  auxiliary: [truth]\n"
        )
        config = ScoringConfig.from_yaml(path)
        assert isinstance(config.schema, FeatureSchema)
        assert config.schema.inputs == ['x', 'y']
        assert config.method_name == 'DT'

    def test_unknown_key(self, tmp_path):
        path = tmp_path / 'scoring.yaml'
        path.write_text("input_file: events.parquet\n")
        with pytest.raises(ValueError, match='Unknown ScoringConfig keys'):
            ScoringConfig.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ResourceNotFound) as excinfo:
            ScoringConfig.from_yaml(tmp_path / 'absent.yaml')
        assert excinfo.value.what == 'config file'

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / 'scoring.yaml'
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match='mapping'):
            ScoringConfig.from_yaml(path)

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError, match='chunk_size'):
            ScoringConfig(chunk_size=0)

    def test_zero_workers(self):
        with pytest.raises(ValueError, match='n_jobs'):
            ScoringConfig(n_jobs=0)
        assert ScoringConfig(n_jobs=-1).n_jobs == -1

    def test_prediction_column_collision(self):
        with pytest.raises(ValueError, match='collides'):
            ScoringConfig(prediction_column='GenPt')


class TestTrainingConfig:
    def test_defaults(self):
        config = TrainingConfig()
        assert config.schema.target == 'etruth'
        assert len(config.schema.inputs) == 18
        assert config.methods == [MethodSpec('BDT', 'BDTG', DEFAULT_BDTG_OPTIONS)]
        assert config.event_weight == 1.0

    def test_yaml_round_trip(self, tmp_path):
        config = TrainingConfig(
            methods=[MethodSpec('BDT', 'BDTG', 'NTrees=10'), MethodSpec('DT', 'DT')],
        )
        path = dump_yaml(config, tmp_path / 'training.yaml')
        loaded = TrainingConfig.from_yaml(path)
        assert loaded == config
        assert isinstance(loaded.methods[1], MethodSpec)

    def test_target_required(self):
        with pytest.raises(ValueError, match='target'):
            TrainingConfig(schema={'inputs': ['a']})

    def test_duplicate_method_names(self):
        with pytest.raises(ValueError, match='more than once'):
            TrainingConfig(methods=[{'type': 'BDT', 'name': 'A'}, {'type': 'DT', 'name': 'A'}])

    def test_weight_file(self):
        config = TrainingConfig(weights_dir='w', job_name='Job')
        assert config.weight_file('DT') == weight_file_path('w', 'Job', 'DT')
        assert str(config.weight_file('DT')).endswith('Job_DT.weights.joblib')
