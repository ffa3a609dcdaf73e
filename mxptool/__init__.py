"""
mxptool: reader and writer for MXP extension archives.

Features:

- Entry table scan with path lookup; the first entry is always the MXI manifest.
- Lazy, per-entry decompression over a private read-only mmap view, so streams stay
  usable after the archive is closed and never share decompressor state.
- Writer that packs an MXI manifest plus the files it lists into 1 KiB
  independently deflated blocks.
- CLI helpers to create, list, extract, and dump archives.

See mxptool/records.py for the on-disk layout of an entry.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "writer",
    "reader",
    "stream",
    "manifest",
]

# Importable programmatic API is available via mxptool.writer/mxptool.reader and
# the CLI functions in mxptool.cli (cmd_create/cmd_extract) which take normal parameters.
