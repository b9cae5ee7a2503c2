#!/usr/bin/env python3
import argparse
import functools
import os
import sys

from dlldeploy import __version__
from dlldeploy.lib.config import Config
from dlldeploy.lib.inspector import InspectionError, get_dependencies
from dlldeploy.lib.logger import Logger
from dlldeploy.lib.resolver import UnresolvedDependenciesError, deploy, resolve_closure
from dlldeploy.lib.search_path import build_search_path

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INSPECTION = 2

# Options whose value may itself look like an option, e.g. "--ldflags -L/opt/pkg/lib".
RAW_VALUE_OPTIONS = ("--ldflags",)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser."""

    parser = argparse.ArgumentParser(
        prog="dlldeploy",
        description="Copy an executable and all the DLLs it depends on to a destination.",
    )
    parser.add_argument("source", help="Executable or DLL to deploy")
    parser.add_argument("destination", help="Target directory, or target path for the renamed source")
    parser.add_argument("--objdump", help="objdump command used to list imports (default: from config, 'objdump')")
    parser.add_argument(
        "-L",
        "--search-dir",
        dest="search_dirs",
        action="append",
        default=[],
        metavar="DIR",
        help="Directory to search for DLLs; may be repeated",
    )
    parser.add_argument(
        "--ldflags",
        metavar="FLAGS",
        help="Linker flags, e.g. --ldflags -L/opt/pkg/lib; every -L<prefix>/lib adds <prefix>/bin to the search path",
    )
    parser.add_argument("-n", "--dry-run", action="store_true", help="Resolve and report, but copy nothing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.set_defaults(handler=cmd_deploy)

    return parser


def _attach_raw_values(argv: list[str]) -> list[str]:
    """Rewrite "--ldflags VALUE" as "--ldflags=VALUE" so argparse never reads VALUE as an option."""

    out = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            out.append(arg)
            out.extend(args)
            break

        value = next(args, None) if arg in RAW_VALUE_OPTIONS else None
        out.append(arg if value is None else f"{arg}={value}")

    return out


def _report_missing(err: UnresolvedDependenciesError) -> None:
    """Log the search path and every missing DLL, one per line."""

    Logger.error("Unable to resolve all dependencies.")
    Logger.error("Search path:")
    for directory in err.search_path:
        Logger.error(f"  {directory}")
    Logger.error("Missing:")
    for name in err.missing:
        Logger.error(f"  {name}")


def cmd_deploy(ns: argparse.Namespace) -> int:
    """
    Resolve the dependencies of `ns.source` and copy everything to `ns.destination`.

    Args:
        ns (argparse.Namespace): Parsed command line.

    Returns:
        int: Process exit code.
    """

    stack_traces = Config.get("dev", "stack_trace_errors", False)

    objdump = ns.objdump or Config.get("inspect", "objdump", "objdump")
    ldflags = ns.ldflags if ns.ldflags is not None else Config.get("search", "ldflags", "")
    search_path = build_search_path(Config.get("search", "dirs", []) + ns.search_dirs, ldflags)

    if not os.path.isfile(ns.source):
        Logger.error(f"Source file '{ns.source}' does not exist.")
        return EXIT_FAILURE

    Logger.debug(f"Search path: {os.pathsep.join(search_path)}")
    Logger.info(f"Resolving dependencies of {ns.source}...")

    try:
        result = resolve_closure(ns.source, search_path, functools.partial(get_dependencies, objdump=objdump))
    except InspectionError as e:
        if stack_traces:
            raise
        Logger.error(f"Inspection failed: {e}")
        return EXIT_INSPECTION

    if ns.dry_run:
        for dll_path in sorted(result.resolved):
            Logger.info(dll_path)
        if not result.ok:
            _report_missing(UnresolvedDependenciesError(result.missing, search_path))
            return EXIT_FAILURE
        Logger.success(f"{len(result.resolved)} dependencies resolved.")
        return EXIT_OK

    try:
        written = deploy(ns.source, ns.destination, result, search_path)
    except UnresolvedDependenciesError as e:
        _report_missing(e)
        return EXIT_FAILURE
    except OSError as e:
        if stack_traces:
            raise
        Logger.error(f"Copy failed: {e}")
        return EXIT_FAILURE

    Logger.success(f"Deployed {len(written)} files.")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the `dlldeploy` CLI.

    Initializes logging, loads configuration, and runs the deployment.

    Args:
        argv (list[str] | None): Arguments excluding the executable; if None, uses sys.argv[1:].

    Returns:
        int: Process exit code.
    """

    Logger.setup(Logger.INFO)

    Config.load()
    Logger.set_level(Config.get("dev", "log_level", Logger.INFO))

    parser = _build_parser()
    ns = parser.parse_args(_attach_raw_values(sys.argv[1:] if argv is None else argv))
    if ns.verbose:
        Logger.set_level(Logger.DEBUG)

    return ns.handler(ns)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        if Config.get("dev", "stack_trace_errors", False):
            raise
        Logger.error(f"Error: {e}")
        sys.exit(1)
