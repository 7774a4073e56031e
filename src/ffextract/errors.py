"""Exception hierarchy for extraction failures."""


class ExtractionError(Exception):
    """Base class for failures that abort the processing of an entry.

    Attributes:
        path: Archive path of the offending entry, or None when the failure is not tied to an entry
        cause: Underlying operating-system or decoder error, if any
    """

    def __init__(self, message: str, path: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self):
        text = self.message
        if self.cause is not None:
            detail = getattr(self.cause, 'strerror', None) or str(self.cause)
            text = f"{text}: {detail}"
        if self.path is not None:
            text = f"{self.path}: {text}"
        return text


class ContainerDecodeError(ExtractionError):
    """The archive stream is malformed, truncated, or uses an unsupported encoding.

    Always fatal for the run: the stream position cannot be recovered.
    """


class StreamIOError(ExtractionError):
    """Reading entry data or writing destination data failed."""


class FilesystemError(ExtractionError):
    """A path could not be opened, created, stat-ed, unlinked, or linked."""
