"""Tests for remote script downloads."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from scriptdeps.common.http_client import download_script, is_remote, safe_get
from scriptdeps.common.logging_utils import safe_url
from scriptdeps.constants import Constants
from scriptdeps.errors import ScriptDownloadError


def _response(status=200, text=""):
    res = MagicMock()
    res.status_code = status
    res.text = text
    return res


class TestHelpers:
    """Test URL helpers."""

    def test_is_remote(self):
        """Only http and https targets are remote."""
        assert is_remote("https://example.com/a.csx")
        assert is_remote(" HTTP://example.com/a.csx")
        assert not is_remote("helpers/a.csx")
        assert not is_remote("nuget: Foo, 1.0.0")

    def test_safe_url_strips_secrets(self):
        """Credentials and query strings never reach the logs."""
        assert safe_url("https://user:pw@host:8443/a.csx?token=x") == "https://host:8443/a.csx"


class TestSafeGet:
    """Test request error handling."""

    @patch("scriptdeps.common.http_client.requests.get")
    def test_timeout(self, mock_get):
        """Timeouts become ScriptDownloadError."""
        mock_get.side_effect = requests.Timeout()
        with pytest.raises(ScriptDownloadError, match="timed out"):
            safe_get("https://example.com/a.csx", context="script download")

    @patch("scriptdeps.common.http_client.requests.get")
    def test_connection_error(self, mock_get):
        """Connection failures become ScriptDownloadError."""
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ScriptDownloadError, match="connection error"):
            safe_get("https://example.com/a.csx", context="script download")

    @patch("scriptdeps.common.http_client.requests.get")
    def test_uses_configured_timeout(self, mock_get):
        """The request timeout comes from Constants."""
        mock_get.return_value = _response()
        safe_get("https://example.com/a.csx", context="script download")
        assert mock_get.call_args.kwargs["timeout"] == Constants.REQUEST_TIMEOUT


class TestDownloadScript:
    """Test caching downloaded scripts."""

    @patch("scriptdeps.common.http_client.requests.get")
    def test_success(self, mock_get, tmp_path):
        """The body is written under downloads/ with a stable name."""
        mock_get.return_value = _response(text='#r "nuget: Foo, 1.0.0"\n')
        url = "https://example.com/scripts/a.csx"
        first = download_script(url, str(tmp_path))
        second = download_script(url, str(tmp_path))
        assert first == second
        assert os.path.dirname(first) == os.path.join(str(tmp_path), Constants.DOWNLOADS_DIR_NAME)
        assert first.endswith(".csx")
        with open(first, encoding="utf-8") as f:
            assert f.read() == '#r "nuget: Foo, 1.0.0"\n'

    @patch("scriptdeps.common.http_client.requests.get")
    def test_http_error(self, mock_get, tmp_path):
        """Non-200 responses are errors and nothing is cached."""
        mock_get.return_value = _response(status=404)
        with pytest.raises(ScriptDownloadError, match="HTTP 404"):
            download_script("https://example.com/missing.csx", str(tmp_path))
        assert not os.path.exists(os.path.join(str(tmp_path), Constants.DOWNLOADS_DIR_NAME))
