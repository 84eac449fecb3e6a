"""
Naming module: correlation token slot, archive rename policy, and the
download interceptor that applies it.

The portal names every "save all" archive after the message metadata only,
so two messages sent on the same day to the same court collide. While a
message is being processed its UUID sits in the CorrelationSlot, and every
archive downloaded in that window is saved as <stem>_<uuid>.zip.
"""

import logging
import re
from contextlib import contextmanager
from datetime import date

logger = logging.getLogger("mjp_export")

FALLBACK_PREFIX = "Nachweis"
_UNSAFE_CHARS = re.compile(r"[\/\\\:\*\?\"\<\>\|]+")


def rename_archive(filename: str, token: str | None, extension: str = ".zip") -> str:
    """
    Insert ``_<token>`` before the archive extension.

    Passes the name through unchanged when no token is active, when the name
    does not end in *extension*, or when it already carries the token.
    One trailing "_" is stripped from the stem first, so
    "Report_.zip" + "abc123" → "Report_abc123.zip".
    """
    if not token or not filename:
        return filename
    if not filename.lower().endswith(extension.lower()) or token in filename:
        return filename

    stem = filename[: len(filename) - len(extension)]
    if stem.endswith("_"):
        stem = stem[:-1]
    return f"{stem}_{token}{filename[len(filename) - len(extension):]}"


def build_base_name(record: dict | None, today: date) -> str:
    """
    Base name for the proof document of one message.

    Uses the creation date and transmitter label read off the message
    component when available ("MJP_<date><transmitter>"), otherwise
    "Nachweis_<today>".
    """
    fallback = f"{FALLBACK_PREFIX}_{today.isoformat()}"
    if not record:
        return fallback
    try:
        creation = record.get("creationTime")
        transmitter = record.get("transmitter") or ""
    except AttributeError:
        return fallback
    date_part = str(creation).split("T")[0] if creation else ""
    if not date_part:
        return fallback
    base = "MJP_" + date_part + str(transmitter)
    if base.endswith("_"):
        base = base[:-1]
    return _UNSAFE_CHARS.sub("_", base)


class CorrelationSlot:
    """
    Holds the token of the message currently in flight, or None.

    Exactly one token may be active at a time; activating a second one
    without clearing the first is a programming error.
    """

    def __init__(self, extension: str = ".zip"):
        self.extension = extension
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def activate(self, token: str) -> None:
        assert self._token is None, (
            f"Correlation token {self._token!r} still active while activating {token!r}"
        )
        self._token = token

    def clear(self) -> None:
        self._token = None

    def rename(self, filename: str) -> str:
        return rename_archive(filename, self._token, self.extension)


class DownloadInterceptor:
    """
    Routes every download of *page* through the sink under the
    slot-renamed filename.

    Installed once for the whole batch; restore() detaches it again. Use
    installed() so the page is restored on every exit path.
    """

    def __init__(self, page, slot: CorrelationSlot, sink):
        self.page = page
        self.slot = slot
        self.sink = sink
        self._active = False

    def _on_download(self, download) -> None:
        original = download.suggested_filename
        renamed = self.slot.rename(original)
        if renamed != original:
            logger.info(f"   ✂ Renaming ZIP: {original} -> {renamed}")
        else:
            logger.debug(f"   Download kept as: {original}")
        try:
            self.sink.save_download(download, renamed)
        except Exception as e:
            logger.error(f"   ❌ Could not save download {renamed}: {e}")

    def install(self) -> None:
        if self._active:
            return
        self.page.on("download", self._on_download)
        self._active = True
        logger.debug("Download interceptor installed")

    def restore(self) -> None:
        if not self._active:
            return
        self.page.remove_listener("download", self._on_download)
        self._active = False
        logger.debug("Download interceptor removed")

    @contextmanager
    def installed(self):
        self.install()
        try:
            yield self
        finally:
            self.restore()
