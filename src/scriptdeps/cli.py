"""scriptdeps command line entry point.

    Returns:
        int: Exit code (see ``ExitCodes``)
"""
import json
import logging
import os
import sys

from scriptdeps.args import parse_args
from scriptdeps.compilation.resolver import CompilationDependencyResolver
from scriptdeps.config import apply_config, apply_env_overrides, load_config
from scriptdeps.constants import Constants, ExitCodes
from scriptdeps.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from scriptdeps.environment import ScriptEnvironment
from scriptdeps.errors import DirectiveError, ResolutionResultError, RestoreError
from scriptdeps.project.provider import ScriptProjectProvider
from scriptdeps.restore.cached import default_restorer
from scriptdeps.restore.restorer import ensure_can_restore
from scriptdeps.runtime.resolver import RuntimeDependencyResolver

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        handler = logging.FileHandler(args.LOG_FILE, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def _write_output(payload, path) -> None:
    text = json.dumps(payload, indent=2)
    if path:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logging.info("Results written to %s", path)
    else:
        print(text)


def _script_inputs(scripts):
    """(script directory, script files or None for directory discovery)."""
    if len(scripts) == 1 and os.path.isdir(scripts[0]):
        return os.path.abspath(scripts[0]), None
    return os.path.dirname(os.path.abspath(scripts[0])), [os.path.abspath(s) for s in scripts]


def run(args) -> dict:
    """Execute the requested action and return a JSON-serializable result."""
    framework = args.FRAMEWORK or Constants.DEFAULT_TARGET_FRAMEWORK
    sources = args.SOURCES or list(Constants.REGISTRY_SOURCES)
    environment = ScriptEnvironment(framework, args.RID)
    provider = ScriptProjectProvider()
    restorer = default_restorer(use_cache=not args.NO_CACHE)
    script_directory, script_files = _script_inputs(args.scripts)

    if args.action == "restore":
        info = provider.create_project(script_directory, script_files, framework, args.EXCLUDE)
        if info is None:
            return {"manifest": None}
        ensure_can_restore(restorer)
        restorer.restore(info, sources)
        return {
            "manifest": info.path,
            "registryConfig": info.registry_config_path,
            "resolutionResult": info.resolution_result_path,
        }

    if args.action == "deps":
        resolver = CompilationDependencyResolver(provider, restorer, environment=environment)
        deps = resolver.get_dependencies(
            script_directory,
            script_files,
            not args.DIRECT_ONLY,
            framework,
            exclude=args.EXCLUDE,
            registry_sources=sources,
        )
        return {"targetFramework": framework, "dependencies": [d.to_dict() for d in deps]}

    resolver = RuntimeDependencyResolver(provider, restorer, environment=environment)
    results = {}
    for script in script_files or []:
        results[script] = [d.to_dict() for d in resolver.get_dependencies(script, sources, framework)]
    return {"runtimeIdentifier": environment.runtime_identifier, "scripts": results}


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    apply_config(load_config(args.CONFIG))
    apply_env_overrides()

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action),
        )

    for script in args.scripts:
        if not os.path.exists(script):
            logging.error("File not found: %s, aborting", script)
            return ExitCodes.FILE_ERROR.value
    if args.action == "runtime" and os.path.isdir(args.scripts[0]):
        logging.error("The runtime action needs script files, not a directory")
        return ExitCodes.FILE_ERROR.value

    try:
        payload = run(args)
    except DirectiveError as e:
        logging.error("%s", e)
        return ExitCodes.DIRECTIVE_ERROR.value
    except RestoreError as e:
        logging.error("%s", e)
        return ExitCodes.RESTORE_ERROR.value
    except ResolutionResultError as e:
        logging.error("%s", e)
        return ExitCodes.RESOLUTION_ERROR.value

    try:
        _write_output(payload, args.OUTPUT)
    except IOError as e:
        logging.error("Unable to write output: %s", e)
        return ExitCodes.FILE_ERROR.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
