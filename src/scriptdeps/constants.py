"""Constants used in the project."""

import os
import tempfile
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    DIRECTIVE_ERROR = 2
    RESTORE_ERROR = 3
    RESOLUTION_ERROR = 4


class AssetKind(Enum):
    """Asset sections of a resolution result that are understood."""

    COMPILE = "compile"
    RUNTIME = "runtime"
    NATIVE = "native"
    RESOURCE = "resource"
    CONTENT_FILES = "contentFiles"
    RUNTIME_TARGETS = "runtimeTargets"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_TARGET_FRAMEWORK = "net8.0"
    DEFAULT_SDK = "Microsoft.NET.Sdk"
    # Script SDK directive -> shared framework whose reference pack it pulls in
    SUPPORTED_SDKS = {
        "Microsoft.NET.Sdk.Web": "Microsoft.AspNetCore.App",
    }
    IMPLICIT_FRAMEWORK = "Microsoft.NETCore.App"

    NUGET_PREFIX = "nuget:"
    SDK_PREFIX = "sdk:"
    SCRIPT_EXTENSION = ".csx"

    PROJECT_FILE_NAME = "script.csproj"
    CACHE_FILE_SUFFIX = ".cache"
    ASSETS_FILE_NAME = "project.assets.json"
    ASSETS_DIR_NAME = "obj"
    NUGET_CONFIG_FILES = ["NuGet.Config", "nuget.config", "NuGet.config"]
    DIRECTORY_BUILD_PROPS_FILE = "Directory.Build.props"
    PACKAGES_CONFIG_FILE = "packages.config"
    PLACEHOLDER_ASSET = "_._"

    CACHE_ROOT = os.path.join(tempfile.gettempdir(), "scriptdeps")
    DOWNLOADS_DIR_NAME = "downloads"
    DOTNET_EXECUTABLE = "dotnet"
    RESTORE_NOWARN = "-nowarn:NU1701"
    REGISTRY_SOURCES: list = []

    CONFIG_FILE = "scriptdeps.yml"
    ENV_CONFIG = "SCRIPTDEPS_CONFIG"
    ENV_CACHE_DIR = "SCRIPTDEPS_CACHE_DIR"
    ENV_LOG_LEVEL = "SCRIPTDEPS_LOG_LEVEL"
    ENV_DOTNET_ROOT = "DOTNET_ROOT"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for remote script downloads
