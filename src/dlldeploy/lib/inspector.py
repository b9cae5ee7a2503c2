"""
Dependency inspection for PE binaries.

Runs `objdump -p` against a single file and collects the names listed in its
import table ("DLL Name: foo.dll" lines). Libraries that ship with Windows
itself, and API set forwarders (`api-ms-win-*`, `ext-ms-*`), are dropped here
so that callers only ever see names that have to be deployed alongside the
binary.
"""

import re
import subprocess

from dlldeploy.lib.logger import Logger

DLL_NAME_RE = re.compile(r"^\s*DLL Name:\s*(\S+\.dll)\s*$", re.IGNORECASE)

# API set contracts resolved by the loader, never real files.
FORWARDER_PREFIXES = ("api-ms-win-", "ext-ms-")

# Base system libraries, lower-cased.
EXCLUDED_DLLS = frozenset(
    [
        "advapi32.dll",
        "bcrypt.dll",
        "cfgmgr32.dll",
        "comctl32.dll",
        "comdlg32.dll",
        "crypt32.dll",
        "d3d9.dll",
        "d3d11.dll",
        "dinput8.dll",
        "dnsapi.dll",
        "dsound.dll",
        "dwmapi.dll",
        "dxgi.dll",
        "gdi32.dll",
        "hid.dll",
        "imm32.dll",
        "iphlpapi.dll",
        "kernel32.dll",
        "kernelbase.dll",
        "msvcrt.dll",
        "mswsock.dll",
        "ntdll.dll",
        "ole32.dll",
        "oleaut32.dll",
        "opengl32.dll",
        "rpcrt4.dll",
        "secur32.dll",
        "setupapi.dll",
        "shell32.dll",
        "shlwapi.dll",
        "ucrtbase.dll",
        "user32.dll",
        "userenv.dll",
        "usp10.dll",
        "uxtheme.dll",
        "version.dll",
        "winmm.dll",
        "ws2_32.dll",
    ]
)


class InspectionError(RuntimeError):
    """Raised when the inspection command is missing or exits with an error."""

    def __init__(self, command: str, path: str, returncode: int | None = None, reason: str | None = None):
        self.command = command
        self.path = path
        self.returncode = returncode

        if reason is None:
            reason = f"exited with status {returncode}"
        super().__init__(f"'{command} -p {path}' {reason}")


def parse_dll_name(line: str) -> str | None:
    """
    Match one line of `objdump -p` output.

    Args:
        line (str): A single output line.

    Returns:
        str | None: The imported DLL name, or None if the line is not an import.
    """

    found = DLL_NAME_RE.match(line)
    if found is None:
        return None

    return found.group(1)


def is_excluded(name: str) -> bool:
    """Return True if `name` is a forwarder or a base system library."""

    lowered = name.lower()
    if lowered.startswith(FORWARDER_PREFIXES):
        return True

    return lowered in EXCLUDED_DLLS


def get_dependencies(path: str, objdump: str = "objdump") -> set[str]:
    """
    List the DLLs a binary imports, minus excluded system libraries.

    Args:
        path (str): The binary to inspect.
        objdump (str): Name or path of the objdump executable.

    Returns:
        set[str]: Imported DLL names as spelled in the binary.

    Raises:
        InspectionError: If objdump cannot be started or exits non-zero.
    """

    Logger.debug(f"Inspecting {path}")

    try:
        proc = subprocess.Popen(
            [objdump, "-p", path],
            stdout=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise InspectionError(objdump, path, reason=f"could not be started: {e}") from e

    deps = set()
    with proc:
        for line in proc.stdout:
            name = parse_dll_name(line)
            if name is None:
                continue
            if is_excluded(name):
                Logger.debug(f"  skipping system library {name}")
                continue
            deps.add(name)

    if proc.returncode != 0:
        raise InspectionError(objdump, path, returncode=proc.returncode)

    return deps
