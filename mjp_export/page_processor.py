"""
Page Processor: one message, start to finish.

State machine:
  IDLE → AWAITING_LOAD → TRIGGERING → AWAITING_COMPLETION → CAPTURING_ARTIFACT → DONE
                 └──────────── load timeout (skip) ─────────────────────────────┘

  AWAITING_LOAD        : correlation token set; wait for the enabled
                         "save all" button inside the message component
  TRIGGERING           : compute the proof filename; click "save all"
  AWAITING_COMPLETION  : wait for the "files downloaded" alert (soft timeout),
                         then let the archive download/rename finish
  CAPTURING_ARTIFACT   : harvest the proof popup, or write the placeholder
                         (outgoing) / nothing (incoming) when there is none
  DONE                 : token cleared, whatever happened before

Nothing is retried; every message gets exactly one attempt per run.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from mjp_export.capturer import placeholder_document
from mjp_export.models import CapturedArtifact, Direction, WorkItem
from mjp_export.naming import CorrelationSlot, build_base_name
from mjp_export.waiter import ConditionWaiter

logger = logging.getLogger("mjp_export")

HTML_MIME = "text/html"

# Proof outcomes
PROOF_PENDING     = "pending"       # never got that far (skipped)
PROOF_CAPTURED    = "captured"      # popup markup saved
PROOF_CLOSED      = "closed"        # popup closed / never opened before it was ready
PROOF_PLACEHOLDER = "placeholder"   # outgoing, no proof button → failure note saved
PROOF_NONE        = "none"          # incoming, no proof button → nothing expected


@dataclass
class ItemResult:
    """Outcome and state history of one Page Processor run."""

    IDLE               = "idle"
    AWAITING_LOAD      = "awaiting_load"
    TRIGGERING         = "triggering"
    AWAITING_COMPLETION = "awaiting_completion"
    CAPTURING_ARTIFACT = "capturing_artifact"
    DONE               = "done"

    item: WorkItem
    status: str = IDLE
    skipped: bool = False
    completion_seen: bool = False
    proof: str = PROOF_PENDING
    artifact_path: str | None = None
    history: list = field(default_factory=list)   # [(state, message, seconds in previous state)]
    _entered_at: float = field(default_factory=time.monotonic, repr=False)

    def transition(self, new_status: str, message: str = "") -> None:
        now = time.monotonic()
        elapsed = now - self._entered_at
        old = self.status
        self.status = new_status
        self._entered_at = now
        self.history.append((new_status, message or f"from {old}", round(elapsed, 2)))
        logger.debug(f"   [{self.item.id[:8]}] {old} → {new_status} ({elapsed:.1f}s) {message}")


class PageProcessor:
    """
    Runs the per-message state machine against the current detail view.

    Collaborators are injected: the navigator (all page access), the
    correlation slot, the sink, and a popup harvester exposing
    open_and_harvest(trigger).
    """

    def __init__(
        self,
        navigator,
        slot: CorrelationSlot,
        sink,
        harvester,
        *,
        load_timeout_ms: int = 15_000,
        completion_timeout_ms: int = 60_000,
        poll_interval_ms: int = 500,
        completion_settle_ms: int = 800,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.navigator = navigator
        self.slot = slot
        self.sink = sink
        self.harvester = harvester
        self.load_timeout_ms = load_timeout_ms
        self.completion_timeout_ms = completion_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.completion_settle_ms = completion_settle_ms
        self._today = today
        self._clock = clock

    def process(self, item: WorkItem) -> ItemResult:
        result = ItemResult(item)
        self.slot.activate(item.id)
        try:
            # ── Wait for the message to load ─────────────────────────
            result.transition(ItemResult.AWAITING_LOAD)
            load_waiter = ConditionWaiter(self.navigator.mutation_signal(), clock=self._clock)
            save_all = load_waiter.wait(
                lambda: self.navigator.save_all_button(item.id), self.load_timeout_ms
            )
            if not save_all:
                logger.error(f"   ❌ Timeout loading {item.id}. Skipping.")
                self.navigator.capture_diagnostics(f"load_timeout_{item.id[:8]}")
                result.skipped = True
                result.transition(ItemResult.DONE, "load timeout")
                return result

            # ── Trigger the archive ──────────────────────────────────
            result.transition(ItemResult.TRIGGERING)
            record = self.navigator.inspect_record(item.id)
            html_filename = f"{build_base_name(record, self._today())}_{item.id}.html"
            logger.info("   ⬇ Triggering ZIP... (interceptor will add UUID)")
            self.navigator.click(save_all)

            # ── Wait for the success alert ───────────────────────────
            result.transition(ItemResult.AWAITING_COMPLETION)
            poll_waiter = ConditionWaiter(
                self.navigator.poll_signal(self.poll_interval_ms), clock=self._clock
            )
            notice = poll_waiter.wait(self.navigator.success_notice, self.completion_timeout_ms)
            result.completion_seen = bool(notice)
            if not notice:
                logger.warning(
                    f"   ⚠ ZIP timeout ({self.completion_timeout_ms / 1000:.0f}s). Proceeding anyway."
                )
            self.navigator.settle(self.completion_settle_ms)

            # ── Proof document ───────────────────────────────────────
            result.transition(ItemResult.CAPTURING_ARTIFACT)
            self._capture_proof(item, html_filename, result)

            result.transition(ItemResult.DONE)
            return result
        finally:
            self.slot.clear()

    def _capture_proof(self, item: WorkItem, html_filename: str, result: ItemResult) -> None:
        proof_button = self.navigator.proof_button(item.id)

        if proof_button:
            logger.info("   ⬇ Generating HTML proof...")
            content = self.harvester.open_and_harvest(lambda: self.navigator.click(proof_button))
            if content is None:
                result.proof = PROOF_CLOSED
                return
            result.artifact_path = self.sink.save(
                CapturedArtifact(content=content, filename=html_filename, mime_type=HTML_MIME)
            )
            result.proof = PROOF_CAPTURED
            return

        if item.direction is Direction.OUTGOING:
            logger.warning("   ⚠ No proof button. Generating 'Versand fehlgeschlagen' note.")
            result.artifact_path = self.sink.save(
                CapturedArtifact(
                    content=placeholder_document(item),
                    filename=html_filename,
                    mime_type=HTML_MIME,
                )
            )
            result.proof = PROOF_PLACEHOLDER
        else:
            logger.info("   (Skipping HTML for incoming message with no proof button)")
            result.proof = PROOF_NONE
