from __future__ import annotations

import os
import sys
from datetime import datetime
from typing import BinaryIO, List, Optional, Sequence

from .chunkemit import EmitResult, emit_file_blocks
from .codec import Codec
from .constants import DEFAULT_MXP_VERSION, MANIFEST_EXTENSION, ZERO_TYPE_TAG
from .errors import EmptySourceFileError, ManifestFormatError, MissingSourceFileError
from .header import pack_header
from .manifest import parse_manifest
from .records import pack_entry_header


class ArchiveWriter:
    """One-shot writer producing an MXP archive from an MXI manifest.

    The manifest is always the first entry (stored under its file name);
    the payload files follow in manifest order, resolved relative to the
    manifest's directory.
    """

    def __init__(
        self,
        manifest_path: str,
        version: int = DEFAULT_MXP_VERSION,
        file_paths: Optional[Sequence[str]] = None,
        *,
        quiet: bool = True,
    ):
        self.header = pack_header(version)
        if not os.path.isfile(manifest_path) or not os.access(manifest_path, os.R_OK):
            raise MissingSourceFileError(f"Unable to read MXI file '{os.path.abspath(manifest_path)}'")
        if not manifest_path.lower().endswith(MANIFEST_EXTENSION):
            raise ManifestFormatError(f"MXI file name must end with '{MANIFEST_EXTENSION}': {manifest_path}")
        self.version = version
        self.manifest_path = manifest_path
        self.file_paths: Optional[List[str]] = list(file_paths) if file_paths is not None else None
        self.quiet = quiet
        self.codec = Codec()

    @classmethod
    def create(cls, manifest_path: str, version: int = DEFAULT_MXP_VERSION) -> "ArchiveWriter":
        return cls(manifest_path, version)

    def parse_manifest(self) -> List[str]:
        result = parse_manifest(self.manifest_path)
        for w in result.warnings:
            print(f"Warning: {w}", file=sys.stderr)
        if result.errors:
            for err in result.errors:
                print(f"Error: {err}", file=sys.stderr)
            raise ManifestFormatError(
                f"The MXI file '{self.manifest_path}' has {len(result.errors)} parsing error(s); "
                "see the output above."
            )
        return result.files

    def write(self, out_path: str) -> List[EmitResult]:
        """Write the archive to ``out_path``.

        On error the partially written file is left in place; the caller
        decides whether to delete it.
        """
        if self.file_paths is None:
            self.file_paths = self.parse_manifest()
        if not self.file_paths:
            print("Warning: No file entries found, only file present will be MXI file", file=sys.stderr)

        working_dir = os.path.dirname(os.path.abspath(self.manifest_path))
        results: List[EmitResult] = []
        with open(out_path, "wb") as fh:
            fh.write(self.header)
            results.append(self._write_file(fh, os.path.basename(self.manifest_path), working_dir))
            for path in self.file_paths:
                results.append(self._write_file(fh, path, working_dir))
        return results

    def _write_file(self, fh: BinaryIO, path: str, working_dir: str) -> EmitResult:
        fs_path = os.path.join(working_dir, path.replace("\\", "/") if os.sep == "/" else path)
        try:
            src = open(fs_path, "rb")
        except OSError as exc:
            raise MissingSourceFileError(
                f"The file '{fs_path}' listed in the MXI could not be read ({exc.strerror}). "
                "Paths should be relative to the MXI file."
            ) from exc
        with src:
            st = os.fstat(src.fileno())
            if st.st_size == 0:
                raise EmptySourceFileError(f"The file '{fs_path}' is empty; MXP archives cannot store empty files")
            timestamp = datetime.fromtimestamp(st.st_mtime)
            fh.write(pack_entry_header(path, timestamp, ZERO_TYPE_TAG))
            result = emit_file_blocks(fh, src, codec=self.codec)
        if not self.quiet:
            print(f"  deflating: {path} ({result.decompressed_size} -> {result.compressed_size} bytes)")
        return result


def create_archive(out_path: str, manifest_path: str, version: int = DEFAULT_MXP_VERSION, *, quiet: bool = True) -> List[EmitResult]:
    return ArchiveWriter(manifest_path, version, quiet=quiet).write(out_path)
