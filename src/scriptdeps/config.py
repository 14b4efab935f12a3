"""YAML configuration overrides for runtime tunables.

Lookup order for the file: explicit path (``--config``), ``SCRIPTDEPS_CONFIG``,
then ``./scriptdeps.yml``. Values found there replace the defaults on
``Constants``; CLI flags applied afterwards win over both.

Example::

    scriptdeps:
      target_framework: net8.0
      cache_dir: ~/.cache/scriptdeps
      dotnet: /usr/share/dotnet/dotnet
      sources:
        - https://api.nuget.org/v3/index.json
      http:
        timeout: 15
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from scriptdeps.constants import Constants

logger = logging.getLogger(__name__)


def find_config_file(path: Optional[str] = None) -> Optional[str]:
    """Resolve the configuration file to use, or None."""
    if path:
        return path
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return env_path
    if os.path.isfile(Constants.CONFIG_FILE):
        return Constants.CONFIG_FILE
    return None


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the configuration mapping.

    A missing file yields an empty mapping (with a warning when the path was
    given explicitly). Malformed YAML is reported and ignored.
    """
    config_path = find_config_file(path)
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning("Failed to parse config file %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        return {}
    logger.debug("Loaded configuration from %s", config_path)
    section = data.get("scriptdeps", data)
    return section if isinstance(section, dict) else {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Copy recognized settings onto ``Constants``; unknown keys are ignored."""
    if cfg.get("target_framework"):
        Constants.DEFAULT_TARGET_FRAMEWORK = str(cfg["target_framework"])
    if cfg.get("cache_dir"):
        Constants.CACHE_ROOT = os.path.expanduser(str(cfg["cache_dir"]))
    if cfg.get("dotnet"):
        Constants.DOTNET_EXECUTABLE = str(cfg["dotnet"])
    sources = cfg.get("sources")
    if isinstance(sources, list):
        Constants.REGISTRY_SOURCES = [str(s) for s in sources]
    http = cfg.get("http")
    if isinstance(http, dict) and http.get("timeout") is not None:
        try:
            Constants.REQUEST_TIMEOUT = int(http["timeout"])
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid http.timeout value: %r", http["timeout"])


def apply_env_overrides() -> None:
    """Environment variables override the configuration file."""
    cache_dir = os.environ.get(Constants.ENV_CACHE_DIR)
    if cache_dir:
        Constants.CACHE_ROOT = cache_dir
