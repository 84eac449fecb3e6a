"""
Navigator module: every selector and every Playwright call against the
MJP single-page app.

The portal is hash-routed (#/postausgang, #/posteingang/detail/<uuid>), so
moving between list and detail views is a location.hash assignment, not a
page load. Each message detail renders inside a component carrying
data-uuid="<messageUuid>", and all per-message lookups are scoped to it.
"""

import logging
from playwright.sync_api import Page

from mjp_export.utils import capture_diagnostics
from mjp_export.waiter import MutationSignal, PollSignal

logger = logging.getLogger("mjp_export")

SUCCESS_TEXT = "Ihre Dateien sind erfolgreich heruntergeladen worden"
# Proof popups, in priority order
PROOF_TITLES = ("Prüfvermerk", "Eingangsbestätigung")

_SUCCESS_ALERT = f'ozg-alert[data-message*="{SUCCESS_TEXT}"]'
_SUCCESS_SPAN = f'.alert-message span:has-text("{SUCCESS_TEXT}")'

# Reads the record bound to the message component, if the app exposes it.
_JS_INSPECT_RECORD = """
uuid => {
    const comp = document.querySelector(`[data-uuid="${uuid}"]`);
    if (!comp || !comp.messageData || typeof comp.getTransmitter !== 'function') return null;
    return {
        creationTime: comp.messageData.ozgppCreationTime,
        transmitter: comp.getTransmitter(),
    };
}
"""

_SIMULATED_CLICK = ("mousedown", "mouseup", "click")


def _scope(uuid: str) -> str:
    return f'[data-uuid="{uuid}"]'


class PortalNavigator:
    """Thin wrapper around the one Page the batch runs in."""

    def __init__(self, page: Page):
        self.page = page

    # ── Routing ──────────────────────────────────────────────────────
    def current_location(self) -> str:
        return self.page.evaluate("() => window.location.hash")

    def go_to(self, location: str) -> None:
        logger.debug(f"  → {location}")
        self.page.evaluate("h => { window.location.hash = h; }", location)

    def settle(self, ms: int) -> None:
        """Fixed pause. Playwright keeps dispatching download/popup events meanwhile."""
        if ms > 0:
            self.page.wait_for_timeout(ms)

    # ── Per-message affordances ──────────────────────────────────────
    def save_all_button(self, uuid: str):
        """The enabled "save all" button of the message, or None while it is loading."""
        return self.page.query_selector(f"{_scope(uuid)} .btn.save-all-action:not([disabled])")

    def success_notice(self):
        """The "files downloaded" alert, or None."""
        return self.page.query_selector(_SUCCESS_ALERT) or self.page.query_selector(_SUCCESS_SPAN)

    def proof_button(self, uuid: str):
        """The first proof popup trigger found in PROOF_TITLES order, or None."""
        for title in PROOF_TITLES:
            el = self.page.query_selector(f'{_scope(uuid)} ozg-popupwindow[data-pagetitle="{title}"]')
            if el:
                logger.debug(f"  Proof affordance: {title}")
                return el
        return None

    def inspect_record(self, uuid: str) -> dict | None:
        """Creation time and transmitter of the bound message record, if readable."""
        try:
            return self.page.evaluate(_JS_INSPECT_RECORD, uuid)
        except Exception as e:
            logger.debug(f"  Record inspection failed for {uuid}: {e}")
            return None

    def click(self, element) -> None:
        """Dispatch mousedown, mouseup and click on *element*, in that order."""
        for event in _SIMULATED_CLICK:
            element.dispatch_event(event)

    # ── Wait signals ─────────────────────────────────────────────────
    def mutation_signal(self) -> MutationSignal:
        return MutationSignal(self.page)

    def poll_signal(self, interval_ms: int = 500) -> PollSignal:
        return PollSignal(self.page.wait_for_timeout, interval_ms)

    # ── Diagnostics ──────────────────────────────────────────────────
    def capture_diagnostics(self, label: str) -> str | None:
        return capture_diagnostics(self.page, label)
