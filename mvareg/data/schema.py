"""
Variable Declarations
=====================

A FeatureSchema is the ordered list of variables a model is trained on or
applied to, plus the columns that ride along with them:

    inputs      -- model inputs, in the order the model expects them
    auxiliary   -- truth values copied into the scoring output (e.g. GenPt)
    target      -- regression target (training only)
    weight      -- optional per-event weight column (training only)
    spectators  -- columns copied into the training results table untouched

Column names are matched by exact name. ``validate`` checks all of them up
front so that a misspelled branch fails before the first row is read.

Example:
    >>> schema = FeatureSchema(inputs=['Eta', 'dPhi12'], auxiliary=['GenPt'])
    >>> schema.validate(df.columns)
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from mvareg.errors import SchemaMismatch

logger = logging.getLogger(__name__)


@dataclass
class FeatureSchema:
    """Ordered variable declarations for one model."""

    inputs: List[str]
    auxiliary: List[str] = field(default_factory=list)
    target: Optional[str] = None
    weight: Optional[str] = None
    spectators: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.inputs = list(self.inputs)
        self.auxiliary = list(self.auxiliary)
        self.spectators = list(self.spectators)

        if not self.inputs:
            raise ValueError("FeatureSchema needs at least one input variable")

        names = self.columns
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Variables declared more than once: {duplicates}")

    @property
    def columns(self) -> List[str]:
        """Every column this schema reads, inputs first."""
        cols = list(self.inputs) + list(self.auxiliary)
        if self.target is not None:
            cols.append(self.target)
        if self.weight is not None:
            cols.append(self.weight)
        cols.extend(self.spectators)
        return cols

    def missing(self, columns: Iterable[str]) -> List[str]:
        available = set(columns)
        return [c for c in self.columns if c not in available]

    def validate(self, columns: Iterable[str], source: str = 'input table') -> None:
        """
        Raise SchemaMismatch listing every declared column absent from ``columns``.

        Args:
            columns: Column names offered by the data source
            source: Human-readable name of the source for the error message
        """
        missing = self.missing(columns)
        if missing:
            logger.error(f"{source} is missing declared columns: {missing}")
            raise SchemaMismatch(missing, source=source)

    def add_variable(self, name: str) -> 'FeatureSchema':
        """Append an input variable (declaration order is model input order)."""
        if name in self.columns:
            raise ValueError(f"Variable already declared: {name}")
        self.inputs.append(name)
        return self

    def add_spectator(self, name: str) -> 'FeatureSchema':
        if name in self.columns:
            raise ValueError(f"Variable already declared: {name}")
        self.spectators.append(name)
        return self

    def to_dict(self) -> dict:
        return {
            'inputs': list(self.inputs),
            'auxiliary': list(self.auxiliary),
            'target': self.target,
            'weight': self.weight,
            'spectators': list(self.spectators),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FeatureSchema':
        unknown = set(data) - {'inputs', 'auxiliary', 'target', 'weight', 'spectators'}
        if unknown:
            raise ValueError(f"Unknown schema keys: {sorted(unknown)}")
        return cls(
            inputs=data['inputs'],
            auxiliary=data.get('auxiliary') or [],
            target=data.get('target'),
            weight=data.get('weight'),
            spectators=data.get('spectators') or [],
        )


# Muon pT assignment from CSC track-segment differences.
MUON_PT_SCHEMA = FeatureSchema(
    inputs=['Eta', 'dPhi12', 'dEta12', 'clct1', 'clct2'],
    auxiliary=['GenPt'],
)

# Calorimeter energy regression: 13 cell energies plus cluster geometry.
CALO_ENERGY_SCHEMA = FeatureSchema(
    inputs=[f'e{i}' for i in range(13)] + ['eta', 'phi', 'eta0', 'phi0', 'esum'],
    target='etruth',
)


def muon_pt_schema() -> FeatureSchema:
    """Fresh copy of the muon pT scoring schema."""
    return FeatureSchema.from_dict(MUON_PT_SCHEMA.to_dict())


def calo_energy_schema() -> FeatureSchema:
    """Fresh copy of the calorimeter training schema."""
    return FeatureSchema.from_dict(CALO_ENERGY_SCHEMA.to_dict())
