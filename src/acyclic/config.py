"""Configuration Management with Pydantic.

This module implements configuration models using Pydantic for parsing and
validation of YAML/JSON configuration files with environment variable overrides.
"""

import os
import threading
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

from acyclic.graph.traversal import TieBreak
from acyclic.log_config import configure_logging

# Initialize logger
logger = structlog.get_logger(__name__)

# Constants
DEFAULT_CONFIG_NAMES = ("acyclic.yaml", "acyclic.yml", "acyclic.json")
MAX_CONCURRENCY = 64
HIGH_CONCURRENCY_THRESHOLD = 32


class GraphConfig(BaseModel):
    """Graph construction settings.

    Attributes:
        tie_break: Ordering rule for simultaneously ready vertices in topological sorts
    """

    tie_break: TieBreak = Field(
        default=TieBreak.INSERTION,
        description="Tie-break rule for topological ordering",
    )

    @field_validator("tie_break", mode="before")
    @classmethod
    def normalize_tie_break(cls, v: Any) -> Any:
        """Accept tie-break names in any case.

        Args:
            v: The raw tie-break value

        Returns:
            The lower-cased value when given a string
        """
        if isinstance(v, str):
            return v.strip().lower()
        return v


class TraversalConfig(BaseModel):
    """Concurrent traversal settings.

    Attributes:
        max_concurrency: Maximum number of vertex visits in flight (1-64)
        timeout_seconds: Time budget for a whole traversal, or None for no limit
        reverse: Visit successors before predecessors (leaves first)
    """

    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=MAX_CONCURRENCY,
        description="Maximum concurrent vertex visits",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Traversal timeout in seconds",
    )
    reverse: bool = Field(
        default=False,
        description="Visit leaves first",
    )


class AcyclicConfig(BaseModel):
    """Top-level configuration combining all settings.

    Attributes:
        graph: Graph construction configuration
        traversal: Concurrent traversal configuration
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render logs as JSON instead of console output
    """

    graph: GraphConfig = Field(default_factory=GraphConfig)
    traversal: TraversalConfig = Field(default_factory=TraversalConfig)
    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON",
    )

    @field_validator("logging_level", mode="before")
    @classmethod
    def normalize_logging_level(cls, v: Any) -> Any:
        """Upper-case the logging level before pattern validation."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "AcyclicConfig":
        """Load configuration from a YAML (or JSON) file.

        Args:
            path: Path to the configuration file

        Returns:
            Parsed and validated AcyclicConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is empty, malformed or invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not config_data:
            msg = "Configuration file is empty"
            raise ValueError(msg)
        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))

        logger.info(
            "configuration_loaded",
            tie_break=config.graph.tie_break.value,
            max_concurrency=config.traversal.max_concurrency,
            logging_level=config.logging_level,
        )
        return config

    @classmethod
    def from_env(cls) -> "AcyclicConfig":
        """Build configuration from defaults and environment overrides only."""
        return cls(**cls._apply_env_overrides({}))

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: ACYCLIC_<SECTION>_<KEY>
        Example: ACYCLIC_GRAPH_TIE_BREAK, ACYCLIC_TRAVERSAL_MAX_CONCURRENCY

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("graph", "tie_break"): "ACYCLIC_GRAPH_TIE_BREAK",
            ("traversal", "max_concurrency"): "ACYCLIC_TRAVERSAL_MAX_CONCURRENCY",
            ("traversal", "timeout_seconds"): "ACYCLIC_TRAVERSAL_TIMEOUT",
            ("traversal", "reverse"): "ACYCLIC_TRAVERSAL_REVERSE",
            ("logging_level",): "ACYCLIC_LOGGING_LEVEL",
            ("json_logs",): "ACYCLIC_JSON_LOGS",
        }

        for path, env_var in env_overrides.items():
            value: Any = os.environ.get(env_var)
            if value is None:
                continue

            # Navigate to nested config section
            current = config_data
            for key in path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            # Convert string values to appropriate types
            if env_var.endswith("_CONCURRENCY"):
                value = int(value)
            elif env_var.endswith("_TIMEOUT"):
                value = float(value)
            elif env_var.endswith(("_REVERSE", "_JSON_LOGS")):
                value = value.lower() in ("true", "1", "yes")

            current[path[-1]] = value
            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if self.traversal.max_concurrency >= HIGH_CONCURRENCY_THRESHOLD:
            warnings.append(
                f"Traversal concurrency is high ({self.traversal.max_concurrency}) - "
                "synchronous visits each occupy a worker thread",
            )

        if self.graph.tie_break is TieBreak.SORTED:
            warnings.append(
                "Sorted tie-break requires mutually orderable vertex values",
            )

        if self.logging_level == "DEBUG":
            warnings.append("DEBUG logging records every graph mutation")

        return warnings

    def configure_logging(self) -> None:
        """Apply the logging settings of this configuration."""
        configure_logging(level=self.logging_level, json_logs=self.json_logs)


class ConfigManager:
    """Configuration manager using singleton pattern."""

    _instance: AcyclicConfig | None = None
    _init_lock: threading.Lock = threading.Lock()

    @classmethod
    def load_config(cls, config_path: str | Path | None = None) -> AcyclicConfig:
        """Load configuration from file.

        Args:
            config_path: Path to configuration file. If None, looks for acyclic.yaml,
                        acyclic.yml or acyclic.json in the current directory and falls
                        back to defaults with environment overrides.

        Returns:
            Loaded AcyclicConfig instance

        Raises:
            FileNotFoundError: If an explicit config file is not found
            ValueError: If config file is invalid
        """
        if config_path is None:
            for default_name in DEFAULT_CONFIG_NAMES:
                default_path = Path(default_name)
                if default_path.exists():
                    config_path = default_path
                    break
            else:
                logger.debug("no_configuration_file_using_defaults")
                return AcyclicConfig.from_env()

        return AcyclicConfig.from_yaml(config_path)

    @classmethod
    def get_config(
        cls,
        config_path: str | Path | None = None,
        reload: bool = False,
    ) -> AcyclicConfig:
        """Get configuration instance (singleton pattern).

        Uses double-checked locking so concurrent first calls load only once.

        Args:
            config_path: Path to configuration file. Only used on first call or when reload=True.
            reload: If True, force reload configuration from file.

        Returns:
            AcyclicConfig instance
        """
        if cls._instance is not None and not reload:
            return cls._instance

        with cls._init_lock:
            if cls._instance is None or reload:
                cls._instance = cls.load_config(config_path)

            return cls._instance

    @classmethod
    def reset_config(cls) -> None:
        """Reset the configuration instance."""
        cls._instance = None


def load_config(config_path: str | Path | None = None) -> AcyclicConfig:
    """Load configuration from file."""
    return ConfigManager.load_config(config_path)


def get_config(config_path: str | Path | None = None, reload: bool = False) -> AcyclicConfig:
    """Get configuration instance (singleton pattern)."""
    return ConfigManager.get_config(config_path, reload)


def reset_config() -> None:
    """Reset the configuration instance."""
    ConfigManager.reset_config()


__all__ = [
    "AcyclicConfig",
    "ConfigManager",
    "GraphConfig",
    "TraversalConfig",
    "get_config",
    "load_config",
    "reset_config",
]
