"""
Condition Waiter: "wait until check() returns something, or give up after
timeout_ms".

The check is re-run whenever a signal fires. Two signal sources:
  MutationSignal — a MutationObserver inside the page (DOM changes)
  PollSignal     — a fixed interval, for conditions with no DOM hook

A timeout is not an error: wait() returns None and the caller decides.
"""

import logging
import time
from typing import Callable, Optional

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeout

logger = logging.getLogger("mjp_export")


_JS_ATTACH_OBSERVER = """
() => {
    if (!window.__mjpObserver) {
        window.__mjpMutationSeq = 0;
        window.__mjpObserver = new MutationObserver(() => { window.__mjpMutationSeq += 1; });
        window.__mjpObserver.observe(document.body, {
            childList: true,
            subtree: true,
            attributes: true,
            attributeFilter: ['disabled', 'class'],
        });
    }
    return window.__mjpMutationSeq;
}
"""

_JS_DETACH_OBSERVER = """
() => {
    if (window.__mjpObserver) {
        window.__mjpObserver.disconnect();
        delete window.__mjpObserver;
        delete window.__mjpMutationSeq;
    }
}
"""

_JS_SEQ_ADVANCED = "seen => (window.__mjpMutationSeq || 0) > seen"
_JS_SEQ = "() => window.__mjpMutationSeq || 0"


class PollSignal:
    """Fires every *interval_ms*. *sleep_ms* should be page.wait_for_timeout."""

    def __init__(self, sleep_ms: Callable[[int], None], interval_ms: int = 500):
        self._sleep_ms = sleep_ms
        self.interval_ms = interval_ms

    def attach(self) -> None:
        pass

    def wait_for_signal(self, remaining_ms: int) -> bool:
        self._sleep_ms(max(1, min(self.interval_ms, remaining_ms)))
        return True

    def detach(self) -> None:
        pass


class MutationSignal:
    """Fires whenever the page's DOM changes (child list, subtree, disabled/class)."""

    def __init__(self, page: Page):
        self.page = page
        self._seen = 0

    def attach(self) -> None:
        self._seen = self.page.evaluate(_JS_ATTACH_OBSERVER) or 0

    def wait_for_signal(self, remaining_ms: int) -> bool:
        try:
            self.page.wait_for_function(
                _JS_SEQ_ADVANCED, arg=self._seen, timeout=max(1, remaining_ms)
            )
        except PlaywrightTimeout:
            return False
        self._seen = self.page.evaluate(_JS_SEQ) or 0
        return True

    def detach(self) -> None:
        try:
            self.page.evaluate(_JS_DETACH_OBSERVER)
        except Exception as e:
            logger.debug(f"  Observer detach skipped: {e}")


class ConditionWaiter:
    """
    Race a check against a timeout.

    If the check already holds, wait() returns at once without attaching
    anything. Otherwise the signal is attached, the check re-run once right
    after attaching and then on every signal, and the signal detached again
    however the wait ends.
    """

    def __init__(self, signal, *, clock: Callable[[], float] = time.monotonic):
        self.signal = signal
        self._clock = clock

    def wait(self, check: Callable[[], object], timeout_ms: int) -> Optional[object]:
        match = check()
        if match:
            return match

        deadline = self._clock() + timeout_ms / 1000
        self.signal.attach()
        try:
            # The condition may have flipped before the signal was listening
            match = check()
            if match:
                return match
            while True:
                remaining_ms = int((deadline - self._clock()) * 1000)
                if remaining_ms <= 0:
                    return None
                self.signal.wait_for_signal(remaining_ms)
                match = check()
                if match:
                    return match
        finally:
            self.signal.detach()
