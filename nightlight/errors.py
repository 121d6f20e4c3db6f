"""Exceptions raised while decoding, validating and writing Night Light blobs."""

from __future__ import annotations


class NightLightError(Exception):
    """Base class for every error raised by this package."""


class MalformedBlob(NightLightError, ValueError):
    """The bytes are not a blob of the expected family."""


class MalformedPrologue(MalformedBlob):
    pass


class MalformedVlq(MalformedBlob):
    pass


class MalformedField(MalformedBlob):
    """A known tag matched but its qualifier or payload did not decode."""


class ValidationError(NightLightError, ValueError):
    """An accessor received a value outside its domain; nothing was changed."""


class StaleWrite(NightLightError):
    def __init__(self, candidate: int, stored: int) -> None:
        super().__init__(
            f"candidate timestamp {candidate} is older than stored timestamp {stored}"
        )
        self.candidate = candidate
        self.stored = stored


class PreviewInProgress(NightLightError):
    pass


class IrreconcilableChanges(NightLightError):
    pass


class Expired(NightLightError):
    pass


class ExternalIoError(NightLightError, OSError):
    pass


class BlobNotFound(ExternalIoError):
    pass
