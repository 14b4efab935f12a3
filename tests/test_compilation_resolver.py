"""Tests for compile-time dependency selection."""

import json
import os
from unittest.mock import MagicMock

import pytest

from scriptdeps.compilation.resolver import CompilationDependencyResolver, select_compile_assemblies
from scriptdeps.context.reader import PackageAsset, ResolutionResult, ResolvedPackage
from scriptdeps.environment import ScriptEnvironment
from scriptdeps.errors import RestoreError
from scriptdeps.project.manifest import ProjectManifest
from scriptdeps.project.provider import ScriptProjectProvider
from scriptdeps.versioning.models import PackageReference


def _asset(rel, rid=None, root="/pkgs/foo/1.0.0"):
    return PackageAsset(rel, os.path.join(root, rel), rid=rid)


def _environment(packs=None):
    env = MagicMock(spec=ScriptEnvironment)
    env.runtime_identifier = "linux-x64"
    env.target_framework = "net8.0"
    packs = packs or {}

    def find(framework, tfm=None):
        return packs.get(framework, (None, None))[0]

    def assemblies(framework, tfm=None):
        return packs.get(framework, (None, []))[1]

    env.find_reference_pack.side_effect = find
    env.reference_pack_assemblies.side_effect = assemblies
    return env


class TestSelectCompileAssemblies:
    """Test per-package compile asset choice."""

    def test_ref_shadows_lib(self):
        """A ref/ assembly hides the lib/ assembly with the same name."""
        package = ResolvedPackage("Foo", "1.0.0", has_compile_section=True, compile_assets=[
            _asset("lib/net8.0/Foo.dll"),
            _asset("ref/net8.0/Foo.dll"),
            _asset("lib/net8.0/Foo.Extra.dll"),
        ])
        paths = select_compile_assemblies(package)
        assert paths == [
            os.path.join("/pkgs/foo/1.0.0", "ref/net8.0/Foo.dll"),
            os.path.join("/pkgs/foo/1.0.0", "lib/net8.0/Foo.Extra.dll"),
        ]

    def test_falls_back_to_lib_runtime(self):
        """Without a compile section rid-neutral lib/ runtime assemblies are used."""
        package = ResolvedPackage("Foo", "1.0.0", has_compile_section=False, runtime_assets=[
            _asset("lib/net8.0/Foo.dll"),
            _asset("runtimes/win/lib/net8.0/Foo.dll", rid="win"),
        ])
        assert select_compile_assemblies(package) == [os.path.join("/pkgs/foo/1.0.0", "lib/net8.0/Foo.dll")]

    def test_placeholder_only_section_is_empty(self):
        """An explicitly empty compile section does not fall back."""
        package = ResolvedPackage("Meta", "1.0.0", has_compile_section=True, runtime_assets=[
            _asset("lib/net8.0/Meta.dll"),
        ])
        assert select_compile_assemblies(package) == []


class TestSelect:
    """Test turning a resolution result into dependencies."""

    def test_empty_dependencies_retained(self):
        """Packages contributing nothing still appear."""
        result = ResolutionResult("net8.0", packages=[ResolvedPackage("Meta", "1.0.0", has_compile_section=True)])
        deps = CompilationDependencyResolver(environment=_environment()).select(result)
        assert [(d.name, d.assembly_paths) for d in deps] == [("Meta", [])]

    def test_paths_deduplicated_across_packages(self):
        """An assembly delivered twice is listed once, under the first package."""
        shared = "/pkgs/shared/Shared.dll"
        result = ResolutionResult("net8.0", packages=[
            ResolvedPackage("A", "1.0.0", has_compile_section=True,
                            compile_assets=[PackageAsset("lib/net8.0/Shared.dll", shared)]),
            ResolvedPackage("B", "1.0.0", has_compile_section=True,
                            compile_assets=[PackageAsset("lib/net8.0/Shared.dll", shared)]),
        ])
        deps = CompilationDependencyResolver(environment=_environment()).select(result)
        assert deps[0].assembly_paths == [shared]
        assert deps[1].assembly_paths == []

    def test_direct_only(self):
        """Transitive packages are dropped when not requested."""
        manifest = ProjectManifest()
        manifest.add_package(PackageReference("Direct", "1.0.0"))
        result = ResolutionResult("net8.0", packages=[
            ResolvedPackage("Direct", "1.0.0"),
            ResolvedPackage("Transitive", "2.0.0"),
        ])
        resolver = CompilationDependencyResolver(environment=_environment())
        assert [d.name for d in resolver.select(result, manifest, include_transitive=False)] == ["Direct"]
        assert [d.name for d in resolver.select(result, manifest, include_transitive=True)] == [
            "Direct", "Transitive",
        ]

    def test_framework_reference_expanded(self):
        """Package framework references pull in the reference pack once."""
        ref_dir = "/dotnet/packs/Microsoft.AspNetCore.App.Ref/8.0.10/ref/net8.0"
        env = _environment({
            "Microsoft.AspNetCore.App": (ref_dir, [ref_dir + "/Microsoft.AspNetCore.dll"]),
        })
        result = ResolutionResult(
            "net8.0",
            framework_references=["Microsoft.NETCore.App"],
            packages=[
                ResolvedPackage("A", "1.0.0", framework_references=["Microsoft.AspNetCore.App"]),
                ResolvedPackage("B", "1.0.0", framework_references=["Microsoft.AspNetCore.App"]),
            ],
        )
        deps = CompilationDependencyResolver(environment=env).select(result)
        frameworks = [d for d in deps if d.name == "Microsoft.AspNetCore.App"]
        assert len(frameworks) == 1
        assert frameworks[0].version == "8.0.10"
        assert frameworks[0].assembly_paths == [ref_dir + "/Microsoft.AspNetCore.dll"]
        assert not any(d.name == "Microsoft.NETCore.App" for d in deps)

    def test_web_sdk_expanded(self):
        """The web SDK maps to the ASP.NET Core reference pack."""
        ref_dir = "/dotnet/packs/Microsoft.AspNetCore.App.Ref/8.0.10/ref/net8.0"
        env = _environment({"Microsoft.AspNetCore.App": (ref_dir, [ref_dir + "/A.dll"])})
        manifest = ProjectManifest(sdk="Microsoft.NET.Sdk.Web")
        deps = CompilationDependencyResolver(environment=env).select(ResolutionResult("net8.0"), manifest)
        assert [d.name for d in deps] == ["Microsoft.AspNetCore.App"]

    def test_get_framework_references_accepts_sdk_names(self):
        """Both SDK and framework names resolve to the pack."""
        env = _environment({"Microsoft.AspNetCore.App": ("/r", ["/r/A.dll"])})
        resolver = CompilationDependencyResolver(environment=env)
        assert resolver.get_framework_references("Microsoft.NET.Sdk.Web") == ["/r/A.dll"]
        assert resolver.get_framework_references("Microsoft.AspNetCore.App") == ["/r/A.dll"]


class TestGetDependencies:
    """Test the full create/restore/read pipeline with a fake restorer."""

    @pytest.fixture
    def scripts(self, tmp_path):
        directory = tmp_path / "scripts"
        directory.mkdir()
        return directory

    def test_pipeline(self, tmp_path, scripts):
        """Restore output is read back into dependencies."""
        script = os.path.join(str(scripts), "main.csx")
        with open(script, "w", encoding="utf-8") as f:
            f.write('#r "nuget: Newtonsoft.Json, 13.0.3"\n')
        packages = os.path.join(str(tmp_path), "packages")

        def fake_restore(info, registry_sources=()):
            os.makedirs(os.path.dirname(info.resolution_result_path), exist_ok=True)
            with open(info.resolution_result_path, "w", encoding="utf-8") as f:
                json.dump({
                    "targets": {"net8.0": {"Newtonsoft.Json/13.0.3": {
                        "type": "package",
                        "compile": {"lib/net6.0/Newtonsoft.Json.dll": {}},
                    }}},
                    "libraries": {"Newtonsoft.Json/13.0.3": {"type": "package", "path": "newtonsoft.json/13.0.3"}},
                    "packageFolders": {packages: {}},
                }, f)

        restorer = MagicMock()
        restorer.restore.side_effect = fake_restore
        resolver = CompilationDependencyResolver(
            provider=ScriptProjectProvider(cache_root=str(tmp_path / "cache")),
            restorer=restorer,
            environment=_environment(),
        )
        deps = resolver.get_dependencies(str(scripts), [script], True, "net8.0", registry_sources=["src"])
        assert [d.name for d in deps] == ["Newtonsoft.Json"]
        assert deps[0].assembly_paths == [
            os.path.join(packages, "newtonsoft.json", "13.0.3", "lib", "net6.0", "Newtonsoft.Json.dll")
        ]
        assert restorer.restore.call_args[0][1] == ["src"]

    def test_unavailable_restorer(self, tmp_path, scripts):
        """A restorer without its tool fails before restoring."""
        script = os.path.join(str(scripts), "main.csx")
        with open(script, "w", encoding="utf-8") as f:
            f.write('#r "nuget: Foo, 1.0.0"\n')
        restorer = MagicMock()
        restorer.can_restore = False
        resolver = CompilationDependencyResolver(
            provider=ScriptProjectProvider(cache_root=str(tmp_path / "cache")),
            restorer=restorer,
            environment=_environment(),
        )
        with pytest.raises(RestoreError):
            resolver.get_dependencies(str(scripts), [script], True, "net8.0")
        restorer.restore.assert_not_called()

    def test_no_scripts(self, tmp_path, scripts):
        """Nothing to resolve returns an empty list without restoring."""
        restorer = MagicMock()
        resolver = CompilationDependencyResolver(
            provider=ScriptProjectProvider(cache_root=str(tmp_path / "cache")),
            restorer=restorer,
            environment=_environment(),
        )
        assert resolver.get_dependencies(str(scripts), [], True, "net8.0") == []
        restorer.restore.assert_not_called()
