"""
Data Module
===========

Variable declarations and Parquet event-table I/O.

Key Components:
    FeatureSchema: Ordered input / auxiliary / target declarations
    open_table: Read an event table with existence and schema checks
    write_table: Write (overwrite) an event table with a table name
"""

from mvareg.data.schema import (
    FeatureSchema,
    MUON_PT_SCHEMA,
    CALO_ENERGY_SCHEMA,
    muon_pt_schema,
    calo_energy_schema,
)
from mvareg.data.io import (
    open_table,
    write_table,
    count_rows,
    table_columns,
    table_name,
)
from mvareg.data.synthetic import make_muon_events, make_calo_events

__all__ = [
    "FeatureSchema",
    "MUON_PT_SCHEMA",
    "CALO_ENERGY_SCHEMA",
    "muon_pt_schema",
    "calo_energy_schema",
    "open_table",
    "write_table",
    "count_rows",
    "table_columns",
    "table_name",
    "make_muon_events",
    "make_calo_events",
]
