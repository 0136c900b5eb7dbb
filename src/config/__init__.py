"""Configuration loading for the export pipeline.

Configuration is loaded from config/config.yaml (or the file named by the
TMDB_PIPELINE_CONFIG environment variable) with ${VAR} expansion against
the environment.

Main Functions
--------------

    - load_backfill_config(): Settings for the daily Bulk Exporter job
    - load_fanout_config(): Settings for the Detail Fan-out service

Usage Examples
--------------

    >>> from config import load_backfill_config
    >>>
    >>> config = load_backfill_config()
    >>> config.validate()
    >>> config.export_types[0]
    'movie'

Configuration Priority
---------------------

Settings are merged in the following priority (highest to lowest):

1. Explicit overrides passed to the loader (tests, CLI flags)
2. Environment variables referenced from the YAML file
3. YAML defaults
4. Dataclass defaults
"""

from config.config import (
    BackfillConfig,
    FanoutConfig,
    KafkaConfig,
    LoggingConfig,
    load_backfill_config,
    load_fanout_config,
)

__all__ = [
    "load_backfill_config",
    "load_fanout_config",
    "BackfillConfig",
    "FanoutConfig",
    "KafkaConfig",
    "LoggingConfig",
]
