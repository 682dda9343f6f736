"""
lending_config -- single public entrypoint for analytics configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Loads the packaged ``defaults.yaml``, merges an
    optional override file, applies the ``DATABASE_URL`` environment
    override, validates, and returns a frozen ``AnalyticsConfig``.

Architecture position:
    Configuration.  Sits above lending_kernel and lending_engines and below
    lending_services.  The kernel MUST NEVER import from lending_config;
    ``lending_config.bridges`` translates config into kernel inputs.

Invariants enforced:
    - Single entrypoint: runtime config flows through ``get_active_config()``.
    - Deterministic: the same files and environment give the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the override path does not exist.
    - ``ConfigurationError`` -- malformed YAML or failed validation; carries
      every error found.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LENDING_CONFIG_TRACE`` log entry with the version, checksum, source
    files and alert-rule count.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from lending_config.loader import (
    compute_checksum,
    load_yaml_file,
    merge_dicts,
    parse_config,
    validate_config,
)
from lending_config.schema import AnalyticsConfig
from lending_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("lending_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> AnalyticsConfig:
    """The only public configuration entrypoint.

    Args:
        config_path: Optional YAML file merged over the packaged defaults.

    Returns:
        AnalyticsConfig whose ``checksum`` identifies the effective values.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ConfigurationError: If parsing or validation fails.
    """
    sources = [DEFAULTS_PATH]
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        override_path = Path(config_path)
        data = merge_dicts(data, load_yaml_file(override_path))
        sources.append(override_path)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        data = merge_dicts(data, {"database": {"url": env_url}})

    config = parse_config(data)
    errors = validate_config(config)
    if errors:
        raise ConfigurationError(errors, source=str(sources[-1]))

    config = replace(config, checksum=compute_checksum(data))

    _logger.info(
        "LENDING_CONFIG_TRACE",
        extra={
            "trace_type": "LENDING_CONFIG_TRACE",
            "config_version": config.version,
            "checksum": config.checksum,
            "sources": [str(s) for s in sources],
            "database_url_from_env": bool(env_url),
            "alert_rule_count": len(config.alert_rules),
        },
    )
    return config


__all__ = ["AnalyticsConfig", "get_active_config"]
