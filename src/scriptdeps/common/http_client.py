"""Shared HTTP helpers.

Encapsulates request/timeout error handling for remote script downloads so
callers deal with a single exception type.
"""
from __future__ import annotations

import hashlib
import logging
import os
from typing import Any

import requests

from scriptdeps.constants import Constants
from scriptdeps.errors import ScriptDownloadError
from scriptdeps.common.fileio import atomic_write_text
from scriptdeps.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def is_remote(target: str) -> bool:
    """Return True for http(s) load targets."""
    lowered = target.strip().lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces."""
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout as exc:
            raise ScriptDownloadError(
                f"{context} request timed out after {Constants.REQUEST_TIMEOUT} seconds: {safe_target}"
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            raise ScriptDownloadError(f"{context} connection error: {exc}") from exc
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return res


def download_script(url: str, cache_root: str) -> str:
    """Download a remote script into the cache and return its local path.

    The file name is derived from the URL so repeated runs reuse the same
    path, which keeps the generated manifest stable.
    """
    res = safe_get(url, context="script download")
    if res.status_code != 200:
        raise ScriptDownloadError(
            f"Unable to download {safe_url(url)} (HTTP {res.status_code})"
        )
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    target = os.path.join(cache_root, Constants.DOWNLOADS_DIR_NAME, f"{digest}{Constants.SCRIPT_EXTENSION}")
    atomic_write_text(target, res.text)
    logger.debug("Downloaded %s to %s", safe_url(url), target)
    return target
