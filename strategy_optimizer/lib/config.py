"""
Unified configuration management.

This module provides a centralized way to load, validate, and access
configuration for the optimizer. It supports:
- YAML file loading
- Environment variable overrides
- Type validation via dataclasses
- Parameter definition files (YAML or JSON)

Configuration Hierarchy (highest to lowest priority):
1. Environment variables (STRATOPT_*)
2. User-provided config file
3. Dataclass defaults

Example usage:
    settings = load_config("config/optimizer.yaml")
    run_config = settings.to_run_config()
    definitions = load_parameter_definitions("config/parameters.yaml")
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from strategy_optimizer.lib.logging_utils import LogLevel
from strategy_optimizer.optimization.controller import (
    MAX_ITERATIONS,
    MIN_ITERATIONS,
    RECOMMENDED_ITERATIONS,
    OptimizationDepth,
    RunConfig,
)
from strategy_optimizer.optimization.errors import ConfigValidationError


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class SearchConfig:
    """Configuration for the search itself."""
    max_iterations: int = 100
    # 'basic', 'standard' or 'deep'
    optimization_depth: str = "standard"
    # Hint only; evaluations are sequential
    parallel_processing: bool = False
    random_seed: Optional[int] = None
    # Seconds to yield between evaluations
    pacing_delay: float = 0.0


@dataclass
class LoggingConfig:
    """Configuration for logging output."""
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_file: Optional[str] = None
    use_colors: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    use_utc: bool = False


@dataclass
class OptimizerSettings:
    """Main configuration container."""
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # Where the CLI writes summaries
    output_dir: str = "./results"

    def to_run_config(self) -> RunConfig:
        """Build the RunConfig for a single optimization run."""
        return RunConfig(
            max_iterations=self.search.max_iterations,
            optimization_depth=self.search.optimization_depth,
            parallel_processing=self.search.parallel_processing,
            random_seed=self.search.random_seed,
            pacing_delay=self.search.pacing_delay,
        )


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    override_env: bool = True
) -> OptimizerSettings:
    """
    Load configuration from YAML file with optional environment overrides.

    Args:
        config_path: Path to YAML config file (optional)
        override_env: If True, apply environment variable overrides

    Returns:
        OptimizerSettings instance

    Example:
        settings = load_config("config/optimizer.yaml")
        print(settings.search.max_iterations)  # 100
    """
    settings = OptimizerSettings()

    if config_path:
        settings = _load_from_yaml(config_path, settings)

    if override_env:
        settings = _apply_env_overrides(settings)

    return settings


def _load_from_yaml(config_path: str, base_settings: OptimizerSettings) -> OptimizerSettings:
    """Load configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        yaml_data = yaml.safe_load(f)

    if yaml_data is None:
        return base_settings

    if "search" in yaml_data:
        base_settings.search = _update_dataclass(base_settings.search, yaml_data["search"])

    if "logging" in yaml_data:
        base_settings.logging = _update_dataclass(base_settings.logging, yaml_data["logging"])

    if "output_dir" in yaml_data:
        base_settings.output_dir = yaml_data["output_dir"]

    # Top-level shortcut
    if "seed" in yaml_data:
        base_settings.search.random_seed = yaml_data["seed"]

    return base_settings


def _update_dataclass(instance: Any, data: dict) -> Any:
    """Update dataclass fields from dictionary (snake_case or camelCase keys)."""
    if not data:
        return instance

    field_names = {f.name for f in instance.__dataclass_fields__.values()}

    for key, value in data.items():
        normalized_key = _to_snake_case(key.replace(".", "_").replace("-", "_"))

        if normalized_key in field_names:
            setattr(instance, normalized_key, value)
        elif key in field_names:
            setattr(instance, key, value)

    return instance


def _to_snake_case(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key).lstrip("_")


def _apply_env_overrides(settings: OptimizerSettings) -> OptimizerSettings:
    """Apply environment variable overrides to settings."""
    if env_val := os.getenv("STRATOPT_MAX_ITERATIONS"):
        settings.search.max_iterations = int(env_val)

    if env_val := os.getenv("STRATOPT_DEPTH"):
        settings.search.optimization_depth = env_val.lower()

    if env_val := os.getenv("STRATOPT_RANDOM_SEED"):
        settings.search.random_seed = int(env_val)

    if env_val := os.getenv("STRATOPT_PACING_DELAY"):
        settings.search.pacing_delay = float(env_val)

    if env_val := os.getenv("STRATOPT_LOG_LEVEL"):
        settings.logging.log_level = env_val.upper()

    if env_val := os.getenv("STRATOPT_LOG_DIR"):
        settings.logging.log_dir = env_val

    if env_val := os.getenv("STRATOPT_OUTPUT_DIR"):
        settings.output_dir = env_val

    return settings


def load_parameter_definitions(path: str) -> List[Dict[str, Any]]:
    """
    Load parameter definitions from a YAML or JSON file.

    The file holds either a list of definitions or a mapping with a
    ``parameters`` list. Each definition uses the wire shape
    ``{name, type, min, max, step, current}``.

    Args:
        path: Path to a .yaml/.yml/.json file

    Returns:
        List of definition dicts
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    with open(file_path) as f:
        if file_path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("parameters")

    if not isinstance(data, list):
        raise ConfigValidationError(
            f"{path} must contain a list of parameters or a 'parameters' key"
        )
    return data


# =============================================================================
# Configuration Validation
# =============================================================================

def validate_config(settings: OptimizerSettings) -> List[str]:
    """
    Validate configuration values.

    Args:
        settings: OptimizerSettings to validate

    Returns:
        List of validation warnings (empty if valid)

    Raises:
        ConfigValidationError: If critical validation fails
    """
    warnings = []
    errors = []
    search = settings.search

    if not MIN_ITERATIONS <= search.max_iterations <= MAX_ITERATIONS:
        errors.append(
            f"max_iterations ({search.max_iterations}) must be between "
            f"{MIN_ITERATIONS} and {MAX_ITERATIONS}"
        )
    else:
        low, high = RECOMMENDED_ITERATIONS
        if not low <= search.max_iterations <= high:
            warnings.append(
                f"max_iterations ({search.max_iterations}) outside recommended "
                f"range [{low}, {high}]"
            )

    try:
        depth = OptimizationDepth.parse(search.optimization_depth)
    except ValueError as e:
        errors.append(str(e))
    else:
        if depth == OptimizationDepth.DEEP and search.max_iterations < 20:
            warnings.append(
                f"deep optimization with max_iterations ({search.max_iterations}) "
                f"below 20 leaves little budget for the genetic phase"
            )

    if search.pacing_delay < 0:
        errors.append("pacing_delay cannot be negative")

    if search.parallel_processing:
        warnings.append("parallel_processing is a hint only; evaluations run sequentially")

    if settings.logging.log_level.upper() not in LogLevel.__members__:
        errors.append(f"Unknown log_level: {settings.logging.log_level}")

    if settings.logging.backup_count < 0:
        errors.append("backup_count cannot be negative")

    if errors:
        raise ConfigValidationError("Configuration validation failed:\n" +
                                    "\n".join(f"  - {e}" for e in errors))

    return warnings


# =============================================================================
# Configuration Export
# =============================================================================

def config_to_dict(settings: OptimizerSettings) -> dict:
    """Convert OptimizerSettings to a YAML-safe dictionary."""
    return asdict(settings)


def save_config(settings: OptimizerSettings, path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        settings: Configuration to save
        path: Output file path
    """
    data = config_to_dict(settings)

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
