#!/usr/bin/env python3
"""
Run Optimization Entry Point for the Strategy Optimizer.

This script provides a command-line interface to run a phased parameter
search against the simulated evaluator.

Features:
- Load parameter definitions from YAML or JSON
- Load settings from YAML with STRATOPT_* environment overrides
- Log progress while the search runs
- Export the summary as JSON and the top results as CSV

Usage:
    # Run with defaults (standard depth, 100 iterations)
    python scripts/run_optimization.py --parameters config/parameters.yaml

    # Deep search with a fixed seed
    python scripts/run_optimization.py --parameters params.json --depth deep \\
        --max-iterations 300 --seed 42

    # Save results
    python scripts/run_optimization.py --parameters params.yaml \\
        --output results/summary.json --csv results/top_results.csv
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from strategy_optimizer.lib.config import (
    OptimizerSettings,
    load_config,
    load_parameter_definitions,
    validate_config,
)
from strategy_optimizer.lib.logging_utils import LogLevel, setup_logging
from strategy_optimizer.optimization import (
    OptimizationError,
    OptimizationSummary,
    ProgressUpdate,
    SimulatedEvaluator,
    StrategyOptimizer,
)

logger = logging.getLogger(__name__)


class ProgressLogger:
    """Progress observer that logs every ``every_pct`` percent."""

    def __init__(self, every_pct: int = 10):
        self.every_pct = every_pct
        self._last_logged = -1

    def __call__(self, update: ProgressUpdate) -> None:
        bucket = update.percentage // self.every_pct
        if bucket > self._last_logged:
            self._last_logged = bucket
            logger.info(
                f"Progress: {update.current}/{update.total} ({update.percentage}%) "
                f"best={update.best_score:.4f}"
            )


async def run_optimization(
    definitions: List[Dict[str, Any]],
    settings: OptimizerSettings,
    latency: float = 0.0,
) -> OptimizationSummary:
    """
    Run one optimization with the simulated evaluator.

    Args:
        definitions: Parameter definitions in wire shape
        settings: Loaded settings
        latency: Simulated seconds per evaluation

    Returns:
        OptimizationSummary
    """
    run_config = settings.to_run_config()
    evaluator = SimulatedEvaluator(seed=run_config.random_seed, latency=latency)
    optimizer = StrategyOptimizer(evaluator, progress_observer=ProgressLogger())

    logger.info(
        f"Estimated search space: "
        f"{optimizer.estimate_total_iterations(definitions, run_config)} iterations"
    )
    return await optimizer.optimize(definitions, run_config)


def save_summary(summary: OptimizationSummary, path: str) -> None:
    """Write the summary as JSON."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(summary.to_dict(), f, indent=2, default=str)
    logger.info(f"Summary saved to {output_path}")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Run phased strategy parameter optimization',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Inputs
    parser.add_argument(
        '--parameters',
        type=str,
        required=True,
        help='Path to parameter definitions (.yaml/.yml/.json)',
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to optimizer settings YAML',
    )

    # Search overrides
    parser.add_argument(
        '--max-iterations',
        type=int,
        default=None,
        help='Maximum evaluations (overrides config)',
    )
    parser.add_argument(
        '--depth',
        type=str,
        choices=['basic', 'standard', 'deep'],
        default=None,
        help='Optimization depth (overrides config)',
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed (overrides config)',
    )
    parser.add_argument(
        '--latency',
        type=float,
        default=0.0,
        help='Simulated seconds per evaluation',
    )

    # Outputs
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Write the summary as JSON to this path',
    )
    parser.add_argument(
        '--csv',
        type=str,
        default=None,
        help='Write the top results as CSV to this path',
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Verbose output',
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    settings = load_config(args.config)
    if args.max_iterations is not None:
        settings.search.max_iterations = args.max_iterations
    if args.depth is not None:
        settings.search.optimization_depth = args.depth
    if args.seed is not None:
        settings.search.random_seed = args.seed

    setup_logging(
        level=LogLevel.DEBUG if args.verbose else settings.logging.log_level,
        log_dir=settings.logging.log_dir,
        log_file=settings.logging.log_file,
        use_colors=settings.logging.use_colors,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
        use_utc=settings.logging.use_utc,
    )

    try:
        for warning in validate_config(settings):
            logger.warning(warning)

        definitions = load_parameter_definitions(args.parameters)
        summary = asyncio.run(run_optimization(definitions, settings, args.latency))
    except (OptimizationError, FileNotFoundError) as e:
        logger.error(f"Optimization failed: {e}")
        return 1

    print(summary.format_report())

    if args.output:
        save_summary(summary, args.output)

    if args.csv:
        rows = [
            {"score": r.score, "iteration": r.iteration, "phase": r.phase, **r.parameters}
            for r in summary.top_results
        ]
        csv_path = Path(args.csv)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows).to_csv(csv_path, index=False)
        logger.info(f"Top results saved to {csv_path}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
