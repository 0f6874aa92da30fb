"""Configuration management for FROST ceremonies."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import toml

from .constants import CONTEXT
from .errors import ConfigurationError
from .rng import RandomSource, SeededRandomSource, SystemRandomSource

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(level: str = "INFO") -> None:
    """
    Setup logging configuration.

    Parameters:
    level (str): Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass
class CeremonyConfig:
    """Process-wide ceremony configuration."""

    log_level: str = "INFO"

    # Deterministic randomness, for tests and demonstrations only
    rng_seed: Optional[int] = None

    # Proof-of-knowledge context shared by every DKG participant
    context: str = CONTEXT.decode()

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "CeremonyConfig":
        """
        Load configuration from TOML file.

        Parameters:
        config_path (str | Path): Path to configuration file.

        Returns:
        CeremonyConfig: The loaded, validated configuration.

        Raises:
        ConfigurationError: If config is missing or invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}") from e

        config = cls(
            log_level=config_data.get("log_level", "INFO"),
            rng_seed=config_data.get("rng_seed"),
            context=config_data.get("context", CONTEXT.decode()),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
        ConfigurationError: If configuration is invalid.
        """
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )

        if self.rng_seed is not None and (
            isinstance(self.rng_seed, bool) or not isinstance(self.rng_seed, int)
        ):
            raise ConfigurationError(f"rng_seed must be an integer, got {self.rng_seed!r}")

        if not isinstance(self.context, str) or not self.context:
            raise ConfigurationError("context must be a non-empty string")

        logger.debug("Configuration validated successfully")

    @property
    def context_bytes(self) -> bytes:
        return self.context.encode()

    def random_source(self) -> RandomSource:
        if self.rng_seed is not None:
            return SeededRandomSource(self.rng_seed)
        return SystemRandomSource()
