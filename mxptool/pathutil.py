from __future__ import annotations

import os

from .constants import ARCHIVE_SEP


def archive_to_local(path: str, sep: str = os.sep) -> str:
    """Translate an archive path (backslash separated) to the host form.

    Archives written by the Extension Manager and by this tool always use
    backslashes, so nothing is changed on hosts that already use them.
    A name containing a literal backslash on a '/' host comes back split;
    such paths cannot round-trip.
    """
    if sep == ARCHIVE_SEP:
        return path
    return path.replace(ARCHIVE_SEP, sep)


def local_to_archive(path: str, sep: str = os.sep) -> str:
    """Translate a host path (or a manifest '/' path) to archive form."""
    path = path.replace("/", ARCHIVE_SEP)
    if sep != ARCHIVE_SEP:
        path = path.replace(sep, ARCHIVE_SEP)
    return path
