"""
Exceptions raised by the optimization engine.

All engine errors derive from OptimizationError so callers can catch the
whole family in one place. Cancellation is not an error and has no class
here: a stopped run still returns a summary.
"""

from typing import Any, Dict, Optional


class OptimizationError(Exception):
    """Base exception for optimization engine errors."""
    pass


class OptimizationInProgressError(OptimizationError):
    """A run was requested while another run is still active."""
    pass


class ParameterDefinitionError(OptimizationError, ValueError):
    """A parameter definition cannot be made searchable."""
    pass


class EvaluationError(OptimizationError):
    """The fitness evaluator failed or returned an unusable outcome."""

    def __init__(
        self,
        message: str,
        iteration: Optional[int] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.iteration = iteration
        self.parameters = parameters
        super().__init__(message)


class ConfigValidationError(OptimizationError):
    """Raised when configuration validation fails."""
    pass
