"""
Artifact Capturer: harvest the proof document the portal opens in a popup.

Clicking "Prüfvermerk" / "Eingangsbestätigung" opens a new window that
renders the proof as HTML. We listen for that window for one attempt only,
poll it until it looks rendered, take its markup and close it.
"""

import html
import logging
from typing import Callable, Optional

from playwright.sync_api import Error as PlaywrightError

from mjp_export.models import WorkItem

logger = logging.getLogger("mjp_export")

# A rendered proof has a heading and more than a skeleton body.
MIN_BODY_LENGTH = 100

_JS_BODY_LENGTH = "() => document.body ? document.body.innerHTML.length : 0"


def placeholder_document(item: WorkItem) -> str:
    """Stand-in proof for an outgoing message the portal never confirmed."""
    return (
        "<html><body><h1>Versand fehlgeschlagen</h1>"
        f"<p>Message UUID: {html.escape(item.id)}</p></body></html>"
    )


class PopupHarvester:
    """
    open_and_harvest(trigger) → popup markup, or None.

    The popup subscription on the BrowserContext only lives for one call and
    is always removed again. *sleep_ms* must be the main page's
    wait_for_timeout so Playwright delivers the "page" event while we wait.
    """

    def __init__(
        self,
        context,
        sleep_ms: Callable[[int], None],
        *,
        poll_interval_ms: int = 500,
        open_timeout_ms: int = 30_000,
    ):
        self.context = context
        self._sleep_ms = sleep_ms
        self.poll_interval_ms = poll_interval_ms
        self.open_timeout_ms = open_timeout_ms

    def open_and_harvest(self, trigger: Callable[[], None]) -> Optional[str]:
        opened: list = []

        def _on_page(popup) -> None:
            opened.append(popup)

        self.context.on("page", _on_page)
        try:
            trigger()
            waited = 0
            while not opened:
                if waited >= self.open_timeout_ms:
                    logger.warning(f"   ⚠ No proof window opened within {self.open_timeout_ms}ms.")
                    return None
                self._sleep_ms(self.poll_interval_ms)
                waited += self.poll_interval_ms
            return self._harvest(opened[0])
        finally:
            self.context.remove_listener("page", _on_page)

    def _is_ready(self, popup) -> bool:
        if popup.query_selector("h1") is None:
            return False
        return (popup.evaluate(_JS_BODY_LENGTH) or 0) > MIN_BODY_LENGTH

    def _harvest(self, popup) -> Optional[str]:
        """Poll *popup* until ready (→ markup) or closed (→ None)."""
        while True:
            if popup.is_closed():
                logger.info("   Proof window closed before it finished rendering.")
                return None
            try:
                if self._is_ready(popup):
                    content = popup.content()
                    popup.close()
                    return content
            except PlaywrightError as e:
                # Navigating or closing underneath us; the next tick decides
                logger.debug(f"   Proof window not readable yet: {e}")
            self._sleep_ms(self.poll_interval_ms)
