"""
Transitive dependency resolution and deployment.

`resolve_closure` walks the import graph of a root binary: every file it
finds is inspected once, each imported name is looked up in the search path,
and names that cannot be found are collected rather than raised so that a
single run reports all of them. `deploy` then copies the root binary and the
resolved files, and refuses to copy anything if a dependency is missing.
"""

import os
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from dlldeploy.lib.inspector import get_dependencies
from dlldeploy.lib.logger import Logger


class UnresolvedDependenciesError(RuntimeError):
    """Raised when deployment is attempted with dependencies still missing."""

    def __init__(self, missing: Iterable[str], search_path: Iterable[str] = ()):
        self.missing = sorted(missing, key=str.lower)
        self.search_path = list(search_path)
        super().__init__(f"{len(self.missing)} unresolved dependencies: {', '.join(self.missing)}")


@dataclass(frozen=True)
class ClosureResult:
    """Files required by a root binary, and the names that could not be found."""

    resolved: frozenset[str] = frozenset()
    missing: frozenset[str] = frozenset()

    @property
    def ok(self) -> bool:
        return not self.missing


def _key(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def find_dll(name: str, search_path: Iterable[str]) -> str | None:
    """
    Locate `name` in the first directory of `search_path` that holds it.

    An exact file name match is tried first; failing that, the directory is
    scanned for an entry equal to `name` ignoring case.

    Returns:
        str | None: The path of the file, or None if no directory has it.
    """

    lowered = name.lower()
    for directory in search_path:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return candidate

        try:
            entries = os.listdir(directory)
        except OSError:
            continue

        for entry in entries:
            candidate = os.path.join(directory, entry)
            if entry.lower() == lowered and os.path.isfile(candidate):
                return candidate

    return None


def resolve_closure(
    root: str,
    search_path: Iterable[str],
    inspect: Callable[[str], Iterable[str]] = get_dependencies,
) -> ClosureResult:
    """
    Compute the transitive set of DLLs needed by `root`.

    Args:
        root (str): The binary whose dependencies are resolved.
        search_path (Iterable[str]): Directories to search, in priority order.
        inspect (Callable): Returns the (already filtered) DLL names a file imports.

    Returns:
        ClosureResult: Resolved file paths and unresolved DLL names.

    Raises:
        InspectionError: Propagated from `inspect`; aborts the whole walk.
    """

    search_path = list(search_path)
    visited = {_key(root)}
    pending = [root]
    resolved: dict[str, str] = {}
    missing: dict[str, str] = {}

    while pending:
        binary = pending.pop()
        Logger.debug(f"-- {os.path.basename(binary)}")

        for name in sorted(inspect(binary), key=str.lower):
            lowered = name.lower()
            if lowered in missing:
                continue

            dll_path = find_dll(name, search_path)
            if dll_path is None:
                Logger.debug(f"  {name} not found")
                missing[lowered] = name
                continue

            key = _key(dll_path)
            if key in visited:
                continue

            Logger.debug(f"  {name} -> {dll_path}")
            visited.add(key)
            resolved[key] = dll_path
            pending.append(dll_path)

    return ClosureResult(resolved=frozenset(resolved.values()), missing=frozenset(missing.values()))


def deploy(root: str, destination: str, result: ClosureResult, search_path: Iterable[str] = ()) -> list[str]:
    """
    Copy `root` and every resolved dependency to `destination`.

    If `destination` is an existing directory the root keeps its name there;
    otherwise `destination` is the root's new path and dependencies are
    copied next to it.

    Returns:
        list[str]: Paths written, root first.

    Raises:
        UnresolvedDependenciesError: If `result` has missing names. Nothing is copied.
        OSError: If a copy fails. Files already copied are left in place.
    """

    if not result.ok:
        raise UnresolvedDependenciesError(result.missing, search_path)

    if os.path.isdir(destination):
        dest_dir = destination
        root_dest = os.path.join(destination, os.path.basename(root))
    else:
        dest_dir = os.path.dirname(destination) or os.curdir
        root_dest = destination

    written = [shutil.copy(root, root_dest)]
    Logger.info(f"Copied {root} -> {root_dest}")

    for dll_path in sorted(result.resolved):
        dll_dest = os.path.join(dest_dir, os.path.basename(dll_path))
        written.append(shutil.copy(dll_path, dll_dest))
        Logger.info(f"Copied {dll_path}")

    return written
