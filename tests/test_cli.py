"""Tests for the scriptdeps command line."""

import json
import os
from unittest.mock import MagicMock, patch

import pytest

from scriptdeps.args import parse_args
from scriptdeps.cli import main
from scriptdeps.constants import Constants, ExitCodes
from scriptdeps.errors import RestoreError


def _write(directory, name, content):
    path = os.path.join(str(directory), name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def _fake_restore(info, registry_sources=()):
    os.makedirs(os.path.dirname(info.resolution_result_path), exist_ok=True)
    with open(info.resolution_result_path, "w", encoding="utf-8") as f:
        json.dump({
            "targets": {"net8.0": {"Foo/1.0.0": {
                "type": "package",
                "compile": {"lib/net8.0/Foo.dll": {}},
                "runtime": {"lib/net8.0/Foo.dll": {}},
            }}},
            "libraries": {"Foo/1.0.0": {"type": "package", "path": "foo/1.0.0"}},
            "packageFolders": {"/packages": {}},
        }, f)


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Keep manifests inside the test directory and shield Constants from config changes."""
    monkeypatch.setattr(Constants, "CACHE_ROOT", str(tmp_path / "cache"))
    monkeypatch.setattr(Constants, "DEFAULT_TARGET_FRAMEWORK", Constants.DEFAULT_TARGET_FRAMEWORK)
    monkeypatch.setattr(Constants, "REGISTRY_SOURCES", list(Constants.REGISTRY_SOURCES))
    monkeypatch.delenv(Constants.ENV_CACHE_DIR, raising=False)
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def restorer():
    fake = MagicMock()
    fake.restore.side_effect = _fake_restore
    with patch("scriptdeps.cli.default_restorer", return_value=fake) as factory:
        fake.factory = factory
        yield fake


class TestArgs:
    """Test argument parsing."""

    def test_defaults(self):
        """Repeatable options default to empty lists."""
        args = parse_args(["deps", "main.csx"])
        assert args.action == "deps"
        assert args.scripts == ["main.csx"]
        assert args.SOURCES == []
        assert args.EXCLUDE == []
        assert args.NO_CACHE is False

    def test_invalid_action(self):
        """Unknown actions are rejected by argparse."""
        with pytest.raises(SystemExit):
            parse_args(["publish", "main.csx"])


class TestActions:
    """Test each action end to end with a fake restorer."""

    def test_restore(self, tmp_path, restorer, capsys):
        """restore reports the manifest location."""
        script = _write(tmp_path, "main.csx", '#r "nuget: Foo, 1.0.0"\n')
        assert main(["restore", script, "-s", "https://feed/index.json"]) == ExitCodes.SUCCESS.value
        payload = json.loads(capsys.readouterr().out)
        assert payload["manifest"].endswith("script.csproj")
        assert restorer.restore.call_args[0][1] == ["https://feed/index.json"]
        restorer.factory.assert_called_once_with(use_cache=True)

    def test_no_cache(self, tmp_path, restorer):
        """--no-cache asks for an uncached restorer."""
        script = _write(tmp_path, "main.csx", '#r "nuget: Foo, 1.0.0"\n')
        main(["restore", script, "--no-cache"])
        restorer.factory.assert_called_once_with(use_cache=False)

    def test_deps_to_file(self, tmp_path, restorer):
        """deps writes compile dependencies as JSON."""
        script = _write(tmp_path, "main.csx", '#r "nuget: Foo, 1.0.0"\n')
        out = str(tmp_path / "deps.json")
        assert main(["deps", script, "--rid", "linux-x64", "-o", out]) == ExitCodes.SUCCESS.value
        with open(out, encoding="utf-8") as f:
            payload = json.load(f)
        assert payload["targetFramework"] == "net8.0"
        assert [d["name"] for d in payload["dependencies"]] == ["Foo"]
        assert payload["dependencies"][0]["assemblyPaths"][0].endswith("Foo.dll")

    def test_runtime(self, tmp_path, restorer, capsys):
        """runtime lists assemblies per script."""
        script = _write(tmp_path, "main.csx", '#r "nuget: Foo, 1.0.0"\n')
        assert main(["runtime", script, "--rid", "linux-x64"]) == ExitCodes.SUCCESS.value
        payload = json.loads(capsys.readouterr().out)
        assert payload["runtimeIdentifier"] == "linux-x64"
        deps = payload["scripts"][os.path.abspath(script)]
        assert deps[0]["assemblies"][0].endswith("Foo.dll")


class TestExitCodes:
    """Test error mapping."""

    def test_missing_file(self, tmp_path, restorer):
        """A missing script is a file error."""
        assert main(["deps", str(tmp_path / "nope.csx")]) == ExitCodes.FILE_ERROR.value

    def test_directive_error(self, tmp_path, restorer):
        """Unsupported SDKs are directive errors."""
        script = _write(tmp_path, "main.csx", '#r "sdk: Nope.Sdk"\n')
        assert main(["restore", script]) == ExitCodes.DIRECTIVE_ERROR.value
        restorer.restore.assert_not_called()

    def test_restore_error(self, tmp_path, restorer):
        """A failing restore maps to the restore exit code."""
        restorer.restore.side_effect = RestoreError("failed", output="NU1101")
        script = _write(tmp_path, "main.csx", '#r "nuget: Nope, 1.0.0"\n')
        assert main(["restore", script]) == ExitCodes.RESTORE_ERROR.value

    def test_resolution_error(self, tmp_path, restorer):
        """A restore that leaves no result maps to the resolution exit code."""
        restorer.restore.side_effect = None
        script = _write(tmp_path, "main.csx", '#r "nuget: Foo, 1.0.0"\n')
        assert main(["deps", script]) == ExitCodes.RESOLUTION_ERROR.value

    def test_config_file_applies(self, tmp_path, restorer, capsys):
        """Settings from --config are used."""
        config = _write(tmp_path, "custom.yml", "scriptdeps:\n  target_framework: net6.0\n")
        script = _write(tmp_path, "main.csx", "")
        assert main(["restore", script, "-c", config]) == ExitCodes.SUCCESS.value
        payload = json.loads(capsys.readouterr().out)
        assert os.path.join("net6.0", "script.csproj") in payload["manifest"]
