from __future__ import annotations

import os
import sys
import argparse
import time

from typing import List, Optional

from mxptool.constants import DEFAULT_MXP_VERSION, MAX_MXP_VERSION, MIN_MXP_VERSION
from mxptool.errors import FormatError, MxpError
from mxptool.reader import ArchiveReader, Entry
from mxptool.writer import ArchiveWriter


def _target_entries(reader: ArchiveReader, paths: Optional[List[str]]) -> List[Entry]:
    """Entries matching ``paths``; all entries when no paths are given.

    Requested paths that are not in the archive are reported on stderr
    and skipped.
    """
    wanted = [p for p in (paths or []) if p.strip()]
    if not wanted:
        return reader.list()
    entries: List[Entry] = []
    for p in wanted:
        e = reader.get_entry(p)
        if e is None:
            print(f"Warning: File '{p}' not present in MXP.", file=sys.stderr)
        else:
            entries.append(e)
    return entries


def cmd_create(archive: str, manifest: str, *, version: int = DEFAULT_MXP_VERSION, quiet: bool = False) -> bool:
    """Create an archive from an MXI file and the files it lists.

    Args:
        archive: Path of the .mxp file to write.
        manifest: Path of the .mxi file. Listed paths are relative to it.
        version: MXP version byte written into the header.
        quiet: Suppress per-file progress lines.
    """
    if os.path.isdir(archive):
        raise MxpError(f"Unable to create MXP file '{archive}': is a directory")
    t0 = time.time()
    writer = ArchiveWriter(manifest, version, quiet=quiet)
    results = writer.write(archive)
    dt = max(time.time() - t0, 1e-6)
    raw = sum(r.decompressed_size for r in results)
    packed = sum(r.compressed_size for r in results)
    print(f"Done: {len(results)} files; {raw} -> {packed} bytes in {dt:.1f}s")
    return True


def cmd_list(archive: str, *, paths: Optional[List[str]] = None) -> bool:
    """List archive entries, sorted by path.

    Args:
        archive: Path to an .mxp file.
        paths: Optional archive paths to restrict the listing to.
    """
    with ArchiveReader(archive) as r:
        entries = sorted(_target_entries(r, paths), key=lambda e: e.path)
        version = r.version
    total = 0
    print(f"MXP archive v{version}: {os.path.basename(archive)}")
    for e in entries:
        total += e.decompressed_size
        stamp = e.timestamp.strftime("%d-%m-%Y %H:%M")
        print(f"{e.decompressed_size}\t{e.compressed_size}\t{stamp}\t{e.path}")
    print(f"{total}\t{len(entries)} files")
    return True


def cmd_extract(archive: str, *, outdir: str = ".", paths: Optional[List[str]] = None, quiet: bool = False) -> bool:
    """Extract files from an archive into ``outdir``.

    Args:
        archive: Path to an .mxp file.
        outdir: Target directory; created when missing.
        paths: Optional archive paths to extract; default is everything.
        quiet: Suppress per-file progress lines.
    """
    os.makedirs(outdir, exist_ok=True)
    if not os.access(outdir, os.W_OK):
        raise MxpError(f"Unable to write to extraction target '{os.path.abspath(outdir)}'")
    out_root = os.path.abspath(outdir)
    with ArchiveReader(archive) as r:
        count = 0
        for e in _target_entries(r, paths):
            dst = os.path.abspath(os.path.join(out_root, e.path))
            if os.path.commonpath([out_root, dst]) != out_root:
                print(f"Warning: skipping '{e.path}': resolves outside {out_root}", file=sys.stderr)
                continue
            r.extract(e, dst)
            count += 1
            if not quiet:
                print(f"  inflating: {e.path}")
    print(f"Extracted {count} files to {out_root}")
    return True


def cmd_dump(archive: str, *, out=None) -> bool:
    """Write the archive's MXI manifest to ``out`` (stdout by default)."""
    out = out if out is not None else sys.stdout.buffer
    with ArchiveReader(archive) as r:
        stream = r.get_input_stream(r.manifest)
    # The stream owns its own mapping and outlives the reader
    with stream:
        while True:
            buf = stream.read(64 * 1024)
            if not buf:
                break
            out.write(buf)
    out.flush()
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="mxptool",
        description="Create, list, extract, and dump MXP extension archives",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Print tracebacks on errors")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create an MXP archive from an MXI file")
    ap_create.add_argument("archive", help="Output .mxp path")
    ap_create.add_argument("manifest", help="Input .mxi path; listed files are relative to it")
    ap_create.add_argument(
        "--mxp-version",
        type=int,
        default=DEFAULT_MXP_VERSION,
        choices=range(MIN_MXP_VERSION, MAX_MXP_VERSION + 1),
        help=f"MXP version written to the header (default {DEFAULT_MXP_VERSION})",
    )
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("paths", nargs="*", help="Specific archive paths to list")

    ap_extract = sub.add_parser("extract", help="Extract archive contents")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--dir", default=".", help="Target directory")
    ap_extract.add_argument("paths", nargs="*", help="Specific archive paths to extract")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_dump = sub.add_parser("dump", help="Print the MXI file of an archive")
    ap_dump.add_argument("archive", help="Archive path")

    # Paths may follow options (``extract ARCHIVE --dir D PATH...``), which a
    # single nargs="*" positional does not accept once an option intervenes.
    args, extra = ap.parse_known_args(argv)
    if extra:
        if args.cmd in ("list", "extract") and not any(x.startswith("-") for x in extra):
            args.paths.extend(extra)
        else:
            ap.error(f"unrecognized arguments: {' '.join(extra)}")
    try:
        if args.cmd == "create":
            cmd_create(args.archive, args.manifest, version=args.mxp_version, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive, paths=args.paths)
        elif args.cmd == "extract":
            cmd_extract(args.archive, outdir=args.dir, paths=args.paths, quiet=args.quiet)
        elif args.cmd == "dump":
            cmd_dump(args.archive)
        else:
            raise RuntimeError("Unknown command")
    except FormatError as e:
        if args.verbose:
            raise
        print(f"Error: invalid MXP archive: {e}", file=sys.stderr)
        sys.exit(2)
    except (MxpError, OSError, ValueError, RuntimeError) as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
