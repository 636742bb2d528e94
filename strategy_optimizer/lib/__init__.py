"""
Shared utilities library for the optimizer.

This module provides common utilities used across the codebase:
- config: Settings loading from YAML and environment variables
  (import from strategy_optimizer.lib.config)
- logging: Structured logging with rotation and formatting
"""

from strategy_optimizer.lib.logging_utils import (
    setup_logging,
    get_logger,
    OptimizationLogger,
    OptimizerFormatter,
    LogLevel,
)


__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "OptimizationLogger",
    "OptimizerFormatter",
    "LogLevel",
]
