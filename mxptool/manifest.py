from __future__ import annotations

import xml.sax
from dataclasses import dataclass, field
from typing import List
from xml.sax.handler import ContentHandler, ErrorHandler

from .errors import ManifestFormatError


@dataclass
class ManifestResult:
    files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _describe(exc: xml.sax.SAXParseException) -> str:
    msg = exc.getMessage()
    line = exc.getLineNumber()
    col = exc.getColumnNumber()
    if line is not None and line > -1:
        msg += f" Line:{line}"
    if col is not None and col > -1:
        msg += f" Col:{col}"
    return msg


class _MxiHandler(ContentHandler, ErrorHandler):
    """Collects the source attribute of every <file> inside <files>."""

    def __init__(self, result: ManifestResult):
        ContentHandler.__init__(self)
        self.result = result
        self._in_files = False

    def startElement(self, name, attrs):
        if name == "files":
            self._in_files = True
        elif name == "file" and self._in_files:
            source = attrs.get("source")
            if source is not None:
                self.result.files.append(source)

    def endElement(self, name):
        if name == "files":
            self._in_files = False

    def warning(self, exception):
        self.result.warnings.append(_describe(exception))

    def error(self, exception):
        self.result.errors.append(_describe(exception))

    def fatalError(self, exception):
        raise exception


def parse_manifest(path: str) -> ManifestResult:
    """Read the ordered list of payload paths from an MXI file.

    Paths are returned as written in the manifest (relative to the MXI's
    directory). Structural problems that stop parsing raise
    ManifestFormatError; anything the parser can continue past is returned
    in ``errors`` or ``warnings`` for the caller to report.
    """
    result = ManifestResult()
    handler = _MxiHandler(result)
    parser = xml.sax.make_parser()
    parser.setFeature(xml.sax.handler.feature_external_ges, False)
    parser.setFeature(xml.sax.handler.feature_external_pes, False)
    parser.setContentHandler(handler)
    parser.setErrorHandler(handler)
    try:
        parser.parse(path)
    except xml.sax.SAXParseException as exc:
        raise ManifestFormatError(
            f"Invalid MXI file '{path}': {_describe(exc)}. Make sure it contains valid XML "
            "and includes an XML declaration with the correct file encoding."
        ) from exc
    return result
