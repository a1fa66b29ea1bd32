#!/usr/bin/env python
"""
Create synthetic event tables for demonstration.

Writes the two tables the built-in configurations expect:
- Muon pT application table (Eta, dPhi12, dEta12, clct1, clct2, GenPt)
- Calorimeter energy training table (e0..e12, eta, phi, eta0, phi0, esum, etruth)

Usage:
    python scripts/create_demo_data.py --output-dir data --n-muon 100000 --n-calo 60000
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mvareg.data.io import write_table
from mvareg.data.synthetic import make_calo_events, make_muon_events


def main():
    parser = argparse.ArgumentParser(
        description="Create synthetic muon and calorimeter event tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--output-dir', type=str, default='data', help='Output directory (default: data/)')
    parser.add_argument('--n-muon', type=int, default=100000, help='Muon events (default: 100000)')
    parser.add_argument('--n-calo', type=int, default=60000, help='Calorimeter events (default: 60000)')
    parser.add_argument('--seed', type=int, default=42, help='Random seed (default: 42)')
    args = parser.parse_args()

    output_dir = Path(args.output_dir)

    print("=" * 70)
    print("Creating Demonstration Event Tables")
    print("=" * 70)

    muon = make_muon_events(args.n_muon, seed=args.seed)
    muon_path = write_table(muon, output_dir / 'Output_Trimmed_97p5_TEST_Mode3_100k.parquet', name='theNtuple')
    print(f"[OK] {len(muon):,} muon events -> {muon_path}")

    calo = make_calo_events(args.n_calo, seed=args.seed)
    calo_path = write_table(calo, output_dir / 'testDataReg.parquet', name='TreeR')
    print(f"[OK] {len(calo):,} calorimeter events -> {calo_path}")

    print("=" * 70)


if __name__ == '__main__':
    main()
