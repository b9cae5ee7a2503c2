"""
# dlldeploy Technical Documentation

dlldeploy stages a Windows executable built with a MinGW toolchain together
with every DLL it needs. It inspects the executable's import table with
`objdump`, follows the imports of each DLL it finds, and copies the whole set
to a destination directory.

---

## How it works

- Imported DLL names are read from `objdump -p` output.
- Windows system libraries and API set forwarders are never deployed.
- Each name is looked up in a search path made of explicit directories and
  `bin` directories derived from `-L.../lib` linker flags.
- If any name cannot be found, every missing name is reported and nothing is
  copied.

---

## How to Use This Documentation

- `dlldeploy.cli` documents the command line interface.
- `dlldeploy.lib` holds the inspection, search path and resolution modules,
  as well as configuration and logging.
"""

from importlib.metadata import version

__version__ = version("dlldeploy")
