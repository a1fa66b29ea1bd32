"""
Job Configuration
=================

Dataclass configurations for the two batch jobs, with YAML round-tripping.
Defaults reproduce the reference muon pT application and calorimeter
energy training jobs.

Example YAML (scoring)::

    input_path: data/Output_Trimmed_97p5_TEST_Mode3_100k.parquet
    output_path: results/bdt_results.parquet
    method_name: BDTG
    schema:
      inputs: [Eta, dPhi12, dEta12, clct1, clct2]
      auxiliary: [GenPt]

Example YAML (training)::

    input_path: data/testDataReg.parquet
    split_options: nTrain_Regression=25000:nTest_Regression=25000:SplitMode=Random
    methods:
      - type: BDT
        name: BDTG
        options: "!H:!V:NTrees=64:BoostType=Grad:Shrinkage=0.3:MaxDepth=4"
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from mvareg.data.schema import FeatureSchema, calo_energy_schema, muon_pt_schema
from mvareg.errors import ResourceNotFound


def weight_file_path(weights_dir: Union[str, Path], job_name: str, method_name: str) -> Path:
    """``<weights_dir>/<job_name>_<method_name>.weights.joblib``"""
    return Path(weights_dir) / f'{job_name}_{method_name}.weights.joblib'


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ResourceNotFound(path, what='config file')
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _check_keys(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@dataclass
class ScoringConfig:
    """Configuration for the batch scoring job."""

    input_path: str = 'data/Output_Trimmed_97p5_TEST_Mode3_100k.parquet'
    output_path: str = 'test_results_bdt.parquet'
    output_table: str = 'BDTresults'
    weights_dir: str = 'dataset/weights'
    job_name: str = 'TMVARegression'
    method_name: str = 'BDTG'
    prediction_column: str = 'BDTPt'
    reader_options: str = '!Color:!Silent'
    schema: FeatureSchema = field(default_factory=muon_pt_schema)
    n_jobs: int = 1
    chunk_size: int = 10000

    def __post_init__(self):
        if isinstance(self.schema, dict):
            self.schema = FeatureSchema.from_dict(self.schema)
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be a positive worker count or negative (-1 = all cores), got 0")
        if self.prediction_column in self.schema.columns:
            raise ValueError(
                f"prediction_column '{self.prediction_column}' collides with a declared variable"
            )

    @property
    def weight_file(self) -> Path:
        return weight_file_path(self.weights_dir, self.job_name, self.method_name)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data['schema'] = self.schema.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoringConfig':
        _check_keys(cls, data)
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ScoringConfig':
        return cls.from_dict(_read_yaml(path))


# ---------------------------------------------------------------------------
# Training
# ---------------------------------------------------------------------------

@dataclass
class MethodSpec:
    """One booked method: backend type, name and option string."""

    type: str
    name: str
    options: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


DEFAULT_BDTG_OPTIONS = (
    '!H:!V:NTrees=64::BoostType=Grad:Shrinkage=0.3:nCuts=99999:MaxDepth=4:'
    'MinNodeSize=0.001:NegWeightTreatment=IgnoreNegWeightsInTraining'
)


def _default_methods() -> List[MethodSpec]:
    return [MethodSpec(type='BDT', name='BDTG', options=DEFAULT_BDTG_OPTIONS)]


@dataclass
class TrainingConfig:
    """Configuration for the training job."""

    input_path: str = 'data/testDataReg.parquet'
    output_path: str = 'TMVACaloReg.parquet'
    weights_dir: str = 'dataset/weights'
    job_name: str = 'TMVARegression'
    factory_options: str = '!V:!Silent:Color:DrawProgressBar'
    schema: FeatureSchema = field(default_factory=calo_energy_schema)
    event_weight: float = 1.0
    cut: str = ''
    split_options: str = (
        'nTrain_Regression=25000:nTest_Regression=25000:'
        'SplitMode=Random:NormMode=NumEvents:!V'
    )
    methods: List[MethodSpec] = field(default_factory=_default_methods)

    def __post_init__(self):
        if isinstance(self.schema, dict):
            self.schema = FeatureSchema.from_dict(self.schema)
        if self.schema.target is None:
            raise ValueError("Training schema must declare a target")
        self.methods = [
            MethodSpec(**m) if isinstance(m, dict) else m for m in self.methods
        ]
        names = [m.name for m in self.methods]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Method names booked more than once: {duplicates}")

    def weight_file(self, method_name: str) -> Path:
        return weight_file_path(self.weights_dir, self.job_name, method_name)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data['schema'] = self.schema.to_dict()
        data['methods'] = [m.to_dict() for m in self.methods]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingConfig':
        _check_keys(cls, data)
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'TrainingConfig':
        return cls.from_dict(_read_yaml(path))


def dump_yaml(config: Union[ScoringConfig, TrainingConfig], path: Union[str, Path]) -> Path:
    """Write a config as YAML (readable back with ``from_yaml``)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    return path
