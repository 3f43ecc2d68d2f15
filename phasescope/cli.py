"""
PHASESCOPE Command Line Interface

Usage:
    python -m phasescope <command> [args]

Commands:
    analyze     Run the attractor pipeline on the columns of a table
    config      Print the effective configuration as YAML

Examples:
    python -m phasescope analyze sunspots.csv --column count --dt 1
    python -m phasescope analyze lorenz.parquet --config lorenz.yaml -o lorenz_summary.parquet
    python -m phasescope config --config lorenz.yaml

Exit codes:
    0  every signal analysed
    1  usage or input error
    2  at least one signal failed (the others are still written)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from phasescope.config import dump_config, load_analysis_config
from phasescope.errors import ConfigurationError


logger = logging.getLogger(__name__)


def _setup_logging(quiet: bool = False, debug: bool = False):
    level = logging.DEBUG if debug else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)s | %(message)s',
    )


def _error(message: str) -> int:
    print(f"ERROR: {message}", file=sys.stderr)
    return 1


def read_signals(path: Path, columns: Optional[List[str]] = None) -> Dict[str, np.ndarray]:
    """
    Numeric columns of a CSV or parquet table, one signal per column.

    Missing values are dropped per column.
    """
    if path.suffix == '.parquet':
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    if columns:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise KeyError(f"Columns not found in {path.name}: {missing}")
        df = df[columns]
    else:
        df = df.select_dtypes(include='number')

    if df.empty or len(df.columns) == 0:
        raise ValueError(f"No numeric columns in {path.name}")

    return {
        str(name): df[name].dropna().to_numpy(dtype=float)
        for name in df.columns
    }


def _write_table(df: pd.DataFrame, path: Path):
    if path.suffix == '.parquet':
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)


def _config_overrides(args) -> dict:
    overrides = {}
    if getattr(args, 'dt', None) is not None:
        overrides['sampling_period'] = args.dt
    if getattr(args, 'jobs', None) is not None:
        overrides['n_jobs'] = args.jobs
    if getattr(args, 'seed', None) is not None:
        overrides['topology'] = {'seed': args.seed}
    return overrides


def cmd_analyze(args) -> int:
    """Run the pipeline over every selected column."""
    from phasescope.engine import AttractorEngine

    input_path = Path(args.input)
    output_path = Path(args.output)

    if not input_path.exists():
        return _error(f"Input file not found: {input_path}")
    if output_path.resolve() == input_path.resolve():
        return _error(f"Output '{output_path}' matches the input file")

    try:
        config = load_analysis_config(args.config, overrides=_config_overrides(args))
    except (FileNotFoundError, ConfigurationError) as e:
        return _error(str(e))

    try:
        signals = read_signals(input_path, args.column)
    except (KeyError, ValueError) as e:
        return _error(str(e))

    logger.info(f"Read {len(signals)} signals from {input_path}")

    result = AttractorEngine(config).analyze_many(signals)

    _write_table(result.summary(), output_path)
    logger.info(f"Wrote summary for {len(signals)} signals to {output_path}")

    if args.diagrams:
        diagrams_path = output_path.with_name(f"{output_path.stem}_diagrams.csv")
        result.diagrams().to_csv(diagrams_path, index=False)
        logger.info(f"Wrote persistence diagrams to {diagrams_path}")

    for failure in result.failures:
        print(f"FAILED {failure.signal_id}: {failure.summary()['error']}", file=sys.stderr)

    return 0 if result.ok else 2


def cmd_config(args) -> int:
    """Print the effective configuration."""
    try:
        config = load_analysis_config(args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        return _error(str(e))
    print(dump_config(config), end='')
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """PHASESCOPE CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='phasescope',
        description='Attractor reconstruction, Lyapunov exponent and persistent homology',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m phasescope analyze sunspots.csv --column count
    python -m phasescope analyze lorenz.parquet --config lorenz.yaml --diagrams
    python -m phasescope config
        """,
    )
    parser.add_argument('--quiet', '-q', action='store_true', help='Only warnings and errors')
    parser.add_argument('--debug', action='store_true', help='Per-stage debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # analyze command
    analyze_parser = subparsers.add_parser(
        'analyze',
        help='Run the attractor pipeline on the columns of a CSV/parquet table',
    )
    analyze_parser.add_argument('input', help='[INPUT] CSV or parquet table, one signal per column')
    analyze_parser.add_argument(
        '--column', '-c',
        action='append',
        help='Column to analyse (repeatable; default: all numeric columns)',
    )
    analyze_parser.add_argument('--config', help='Analysis config YAML')
    analyze_parser.add_argument('--dt', type=float, help='Sampling period (overrides config)')
    analyze_parser.add_argument('--seed', type=int, help='Subsampling seed (overrides config)')
    analyze_parser.add_argument('--jobs', '-j', type=int, help='Parallel workers (overrides config)')
    analyze_parser.add_argument(
        '--output', '-o',
        default='phasescope_summary.parquet',
        help='[OUTPUT] Summary table, .parquet or .csv (default: phasescope_summary.parquet)',
    )
    analyze_parser.add_argument(
        '--diagrams',
        action='store_true',
        help='Also write <output>_diagrams.csv with every persistence pair',
    )

    # config command
    config_parser = subparsers.add_parser(
        'config',
        help='Print the effective configuration as YAML',
    )
    config_parser.add_argument('--config', help='Analysis config YAML')

    args = parser.parse_args(argv)
    _setup_logging(quiet=args.quiet, debug=args.debug)

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch to command handler
    handlers = {
        'analyze': cmd_analyze,
        'config': cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
