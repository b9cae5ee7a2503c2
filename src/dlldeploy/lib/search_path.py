"""
Search path construction.

The search path is an ordered list of directories consulted when turning a DLL
name into a file. Besides the directories given explicitly, linker flags are
mined for `-L<prefix>/lib` entries: MinGW style prefixes install their DLLs
into `<prefix>/bin`, next to the import libraries in `<prefix>/lib`.
"""

import os
import shlex
from collections.abc import Iterable

LIBRARY_PATH_FLAG = "-L"
LIB_DIR_NAME = "lib"
BIN_DIR_NAME = "bin"

# MinGW flags may use either separator, whatever the host.
SEPARATORS = "/\\"


def _tokenize(ldflags: str) -> list[str]:
    """
    Split a flag string like a shell would, keeping backslashes in Windows paths.

    Unbalanced quotes are not an error: the string is then split on whitespace.
    """

    posix = os.name != "nt" and "\\" not in ldflags
    try:
        tokens = shlex.split(ldflags, posix=posix)
    except ValueError:
        return ldflags.split()

    if posix:
        return tokens

    return [t[1:-1] if len(t) > 1 and t[0] == t[-1] and t[0] in "\"'" else t for t in tokens]


def dirs_from_ldflags(ldflags: str) -> list[str]:
    """
    Derive runtime directories from a string of linker flags.

    Args:
        ldflags (str): Flags as passed to the linker, e.g. "-L/opt/pkg/lib -lfoo".

    Returns:
        list[str]: Existing `bin` siblings of every `-L.../lib` directory.
    """

    dirs = []
    for token in _tokenize(ldflags):
        if not token.startswith(LIBRARY_PATH_FLAG):
            continue

        libdir = token[len(LIBRARY_PATH_FLAG) :].rstrip(SEPARATORS)
        cut = max(libdir.rfind(sep) for sep in SEPARATORS) + 1
        parent, last = libdir[:cut], libdir[cut:]
        if last != LIB_DIR_NAME:
            continue

        bindir = parent + BIN_DIR_NAME
        if os.path.isdir(bindir):
            dirs.append(bindir)

    return dirs


def build_search_path(dirs: Iterable[str], ldflags: str = "") -> list[str]:
    """Combine explicit and derived directories, dropping duplicates but keeping order."""

    combined = list(dirs) + dirs_from_ldflags(ldflags or "")
    return list(dict.fromkeys(combined))
