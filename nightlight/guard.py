"""Optimistic write protection for the Night Light blobs.

The registry offers no transactions and Windows itself rewrites both
values, so every write is a read-compare-write on the prologue timestamp:

1. re-read the stored blob and decode its timestamp;
2. refuse (:class:`StaleWrite`) a candidate whose timestamp is older;
3. otherwise hand the encoded candidate to the store.

Windows reverts writes that do not advance the timestamp and itself adds
at least two seconds per change, so :meth:`WriteGuard.stamp` moves a
candidate to ``max(now, read_timestamp + TIMESTAMP_STEP)``.

Preview mode must never be left on while anything else changes; the
:meth:`WriteGuard.preview` scope sets it and always clears it again.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import time
from typing import Callable, Generic, Iterator, Optional, Type, TypeVar

from .blob import Blob
from .errors import BlobNotFound, PreviewInProgress, StaleWrite
from .prologue import read_timestamp
from .settings import SettingsBlob
from .store import BlobLocation, BlobStore


logger = logging.getLogger(__name__)

TIMESTAMP_STEP = 2

B = TypeVar("B", bound=Blob)
Mutation = Callable[[B], None]


class WriteGuard(Generic[B]):
    def __init__(
        self,
        store: BlobStore,
        blob_type: Type[B],
        location: BlobLocation | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.blob_type = blob_type
        self.location = location if location is not None else blob_type.LOCATION  # type: ignore[attr-defined]
        self.clock = clock
        self._in_preview = False

    def read_bytes(self) -> bytes:
        return self.store.read(self.location.key, self.location.name)

    def read(self) -> B:
        return self.blob_type.from_bytes(self.read_bytes())

    def stored_timestamp(self) -> Optional[int]:
        """Timestamp of the stored blob, or None if nothing is stored yet."""
        try:
            data = self.read_bytes()
        except BlobNotFound:
            return None
        return read_timestamp(data)

    def next_timestamp(self, base: int) -> int:
        return max(int(self.clock()), base + TIMESTAMP_STEP)

    def stamp(self, candidate: B) -> B:
        """Advance ``candidate.timestamp`` past the timestamp it was read with."""
        candidate.timestamp = self.next_timestamp(candidate.timestamp)
        return candidate

    def write(self, candidate: B, *, expected: Optional[B] = None) -> bytes:
        """Encode ``candidate`` and store it unless that would regress the stored value.

        With ``expected``, the write is also refused when the stored blob no
        longer equals it, i.e. someone else changed it since it was read.
        Returns the bytes written.
        """
        if not isinstance(candidate, self.blob_type):
            raise TypeError(f"expected {self.blob_type.__name__}, got {type(candidate).__name__}")
        data = candidate.to_bytes()

        try:
            stored_data: Optional[bytes] = self.read_bytes()
        except BlobNotFound:
            stored_data = None

        if stored_data is not None:
            stored_ts = read_timestamp(stored_data)
            if candidate.timestamp < stored_ts:
                logger.warning(
                    "refusing stale write to %s: %d < %d",
                    self.location,
                    candidate.timestamp,
                    stored_ts,
                )
                raise StaleWrite(candidate.timestamp, stored_ts)
            if expected is not None and self.blob_type.from_bytes(stored_data) != expected:
                logger.warning("refusing write to %s: stored value changed since read", self.location)
                raise StaleWrite(candidate.timestamp, stored_ts)

        self.store.write(self.location.key, self.location.name, data)
        logger.debug("wrote %d bytes to %s (timestamp %d)", len(data), self.location, candidate.timestamp)
        return data

    def update(self, mutate: Mutation) -> B:
        """Run one read-mutate-stamp-write cycle; nothing is written if nothing changed."""
        original = self.read()
        candidate = original.copy()
        mutate(candidate)
        if candidate == original:
            logger.debug("no change to %s, skipping write", self.location)
            return original
        self.stamp(candidate)
        self.write(candidate, expected=original)
        return candidate

    # -- preview bracketing ------------------------------------------------

    @property
    def in_preview(self) -> bool:
        return self._in_preview

    def _require_settings(self) -> None:
        if not issubclass(self.blob_type, SettingsBlob):
            raise TypeError("preview mode is a settings blob flag")

    @contextmanager
    def preview(
        self,
        on_enter: Optional[Mutation] = None,
        on_exit: Optional[Mutation] = None,
    ) -> Iterator["WriteGuard[B]"]:
        """Hold preview mode for the duration of the ``with`` block.

        ``on_enter``/``on_exit`` are applied in the same writes that set and
        clear the flag.  The flag is cleared on every exit path.
        """
        self._require_settings()
        if self._in_preview:
            raise PreviewInProgress("preview scope already entered")
        if self.read().preview_active:  # type: ignore[attr-defined]
            raise PreviewInProgress("stored settings already have preview active")

        def enter(settings: B) -> None:
            if on_enter is not None:
                on_enter(settings)
            settings.preview_active = True  # type: ignore[attr-defined]

        def leave(settings: B) -> None:
            if on_exit is not None:
                on_exit(settings)
            settings.preview_active = False  # type: ignore[attr-defined]

        self._in_preview = True
        try:
            self.update(enter)
            try:
                yield self
            except BaseException:
                logger.warning("clearing preview on %s after an error", self.location)
                raise
            finally:
                self.update(leave)
        finally:
            self._in_preview = False

    def run_in_preview(self, mutate: Mutation) -> B:
        """Set preview, apply ``mutate`` in its own write, then clear preview."""
        with self.preview():
            return self.update(mutate)

    def clear_preview(self) -> B:
        """Recovery write for a preview flag left behind by a crashed process."""
        self._require_settings()
        if self._in_preview:
            raise PreviewInProgress("cannot clear preview from inside the preview scope")

        def clear(settings: B) -> None:
            settings.preview_active = False  # type: ignore[attr-defined]

        return self.update(clear)
