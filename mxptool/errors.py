class MxpError(Exception):
    """Base class for mxptool-specific errors."""


# Container format (whole archive is unreadable)
class FormatError(MxpError):
    pass


class MissingManifestError(FormatError):
    pass


class ManifestNotFirstError(FormatError):
    pass


class UnexpectedEndOfArchiveError(FormatError):
    def __init__(self, message: str, offset: int = -1):
        if offset >= 0:
            message = f"{message} (offset {offset})"
        super().__init__(message)
        self.offset = offset


class OversizedFieldError(FormatError):
    pass


class InvalidPathLengthError(FormatError):
    pass


class InvalidPathError(FormatError):
    pass


class InvalidTimestampError(FormatError):
    pass


class EmptyEntryError(FormatError):
    pass


# Payload (scoped to one entry stream)
class BlockDecodeError(MxpError):
    pass


# Use after close
class ClosedArchiveError(MxpError, ValueError):
    pass


class ClosedStreamError(MxpError, ValueError):
    pass


# Writer side
class ManifestFormatError(MxpError):
    pass


class MissingSourceFileError(MxpError, FileNotFoundError):
    pass


class EmptySourceFileError(MxpError):
    pass


class FieldRangeError(MxpError, ValueError):
    pass
