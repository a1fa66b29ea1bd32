"""
Command-line entry points.

    mvareg-apply [-b] [--config scoring.yaml] [METHOD ...]
    mvareg-train [-b] [--config training.yaml] [METHOD ...]

Positional METHOD arguments (or comma-separated lists) select methods;
``-b/--batch`` is accepted anywhere on the command line and has no effect.
Exit codes: 0 success, 1 missing input / weight / config file or schema
mismatch.
"""

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from mvareg.errors import ResourceNotFound, SchemaMismatch

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """Process-wide logging setup, performed by the entry points only."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_method_list(args: Sequence[str]) -> List[str]:
    """Join positional method arguments, dropping the batch flag."""
    methods = []
    for arg in args:
        if arg in ('-b', '--batch'):
            continue
        methods.extend(m.strip() for m in arg.split(',') if m.strip())
    return methods


def _base_parser(description: str, epilog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    parser.add_argument(
        'methods',
        nargs='*',
        help='Method names, separately or comma-separated (e.g. BDTG,DT)'
    )
    parser.add_argument(
        '-b', '--batch',
        action='store_true',
        default=False,
        help='Batch mode (accepted for compatibility, no effect)'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='YAML configuration file (default: built-in configuration)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        default=False,
        help='Enable debug logging'
    )
    return parser


def _report_fatal(exc: Exception) -> int:
    if isinstance(exc, ResourceNotFound):
        if exc.what == 'data file':
            print("ERROR: could not open data file")
        print(f"ERROR: {exc}")
    else:
        print(f"ERROR: {exc}")
    return 1


# ---------------------------------------------------------------------------
# mvareg-apply
# ---------------------------------------------------------------------------

def apply_main(argv: Optional[Sequence[str]] = None) -> int:
    """Score an event table with a trained weight file."""
    parser = _base_parser(
        'Apply a trained regression model to an event table',
        """
Examples:
  # Built-in muon pT configuration
  mvareg-apply

  # Custom configuration, parallel scoring
  mvareg-apply --config scoring.yaml --n-jobs 4
""",
    )
    parser.add_argument('--input', type=str, default=None, help='Input event table (overrides config)')
    parser.add_argument('--output', type=str, default=None, help='Output table (overrides config)')
    parser.add_argument('--weights-dir', type=str, default=None, help='Weight file directory (overrides config)')
    parser.add_argument('--n-jobs', type=int, default=None, help='Parallel workers for scoring (default: 1)')
    parser.add_argument('--no-progress', action='store_true', default=False, help='Hide the progress bar')
    args = parser.parse_intermixed_args(argv)
    if args.n_jobs == 0:
        parser.error("--n-jobs must not be 0 (use -1 for all cores)")

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    from mvareg.config import ScoringConfig
    from mvareg.scoring import ScoringJob

    print()
    print("==> Start mvareg-apply")

    try:
        config = ScoringConfig.from_yaml(args.config) if args.config else ScoringConfig()
        if args.input:
            config.input_path = args.input
        if args.output:
            config.output_path = args.output
        if args.weights_dir:
            config.weights_dir = args.weights_dir
        if args.n_jobs is not None:
            config.n_jobs = args.n_jobs

        methods = parse_method_list(args.methods)
        if methods:
            logger.info(f"Method list: {','.join(methods)} (scoring uses {config.method_name})")

        result = ScoringJob(config).run(progress=not args.no_progress)
    except (ResourceNotFound, SchemaMismatch) as exc:
        return _report_fatal(exc)

    print(f"--- Created output file: {result.output_path} ({result.n_rows:,} events)")
    print("==> mvareg-apply is done!")
    print()
    return 0


# ---------------------------------------------------------------------------
# mvareg-train
# ---------------------------------------------------------------------------

def train_main(argv: Optional[Sequence[str]] = None) -> int:
    """Train and evaluate the configured regression methods."""
    parser = _base_parser(
        'Train, test and evaluate regression methods',
        """
Examples:
  # Built-in calorimeter configuration (BDTG)
  mvareg-train

  # Only train selected methods from a configuration
  mvareg-train --config training.yaml BDTG,DT
""",
    )
    parser.add_argument('--input', type=str, default=None, help='Training event table (overrides config)')
    parser.add_argument('--output', type=str, default=None, help='Results table (overrides config)')
    parser.add_argument('--weights-dir', type=str, default=None, help='Weight file directory (overrides config)')
    args = parser.parse_intermixed_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    from mvareg.config import TrainingConfig
    from mvareg.trainer import run_training

    try:
        config = TrainingConfig.from_yaml(args.config) if args.config else TrainingConfig()
        if args.input:
            config.input_path = args.input
        if args.output:
            config.output_path = args.output
        if args.weights_dir:
            config.weights_dir = args.weights_dir

        methods = parse_method_list(args.methods)
        known = [m.name for m in config.methods]
        unknown = [m for m in methods if m not in known]
        if unknown:
            parser.error(f"unknown method(s) {unknown}; configured: {known}")

        run_training(config, methods)
    except (ResourceNotFound, SchemaMismatch) as exc:
        return _report_fatal(exc)

    print(f"==> Wrote results file: {config.output_path}")
    print(f"==> Weight files in: {config.weights_dir}")
    print("==> mvareg-train is done!")
    print()
    return 0


if __name__ == '__main__':
    sys.exit(apply_main())
