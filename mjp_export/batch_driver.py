"""
Batch Driver: walk the queue, one message at a time.

Flow per item:
  1. If the app is not on the item's list view, go there and settle so the
     listing context is primed before the detail opens
  2. Go to the item's detail view
  3. Run the Page Processor
  4. Settle before the next item, whatever the outcome
"""

import logging
from dataclasses import dataclass, field

from mjp_export.errors import EmptyQueueError
from mjp_export.models import Feed, WorkItem, build_queue
from mjp_export.page_processor import (
    PROOF_CAPTURED,
    PROOF_PLACEHOLDER,
    ItemResult,
)

logger = logging.getLogger("mjp_export")


@dataclass
class BatchSummary:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    completion_timeouts: int = 0
    proofs_captured: int = 0
    placeholders: int = 0
    failed: list = field(default_factory=list)   # [(item_id, error), ...]

    def record(self, result: ItemResult) -> None:
        self.processed += 1
        if result.skipped:
            self.skipped += 1
            return
        if not result.completion_seen:
            self.completion_timeouts += 1
        if result.proof == PROOF_CAPTURED:
            self.proofs_captured += 1
        elif result.proof == PROOF_PLACEHOLDER:
            self.placeholders += 1

    def record_failure(self, item: WorkItem, error: Exception) -> None:
        self.processed += 1
        self.failed.append((item.id, f"{error.__class__.__name__}: {error}"))


def build_work_queue(lister, outgoing: Feed, incoming: Feed) -> list[WorkItem]:
    """List both feeds and queue outgoing before incoming. Raises EmptyQueueError if both are empty."""
    outgoing_records = lister.fetch_all(outgoing)
    incoming_records = lister.fetch_all(incoming)
    logger.info(f"Listed {len(outgoing_records)} outgoing, {len(incoming_records)} incoming message(s)")

    queue = build_queue(outgoing, outgoing_records, incoming, incoming_records)
    if not queue:
        raise EmptyQueueError("Queue empty. Stopping.")
    return queue


def run_batch(
    navigator,
    queue: list[WorkItem],
    processor,
    *,
    list_settle_ms: int = 600,
    item_settle_ms: int = 1_500,
) -> BatchSummary:
    """Process every queued item in order. Raises EmptyQueueError for an empty queue."""
    if not queue:
        raise EmptyQueueError("Queue empty. Nothing to process.")

    summary = BatchSummary(total=len(queue))
    logger.info(f"Ready to process {len(queue)} items.")

    for index, item in enumerate(queue, start=1):
        logger.info(f"\n[{index}/{len(queue)}] Processing {item.id} ({item.direction.value})")

        try:
            if navigator.current_location() != item.list_location:
                navigator.go_to(item.list_location)
                navigator.settle(list_settle_ms)

            navigator.go_to(item.detail_location)
            summary.record(processor.process(item))
        except Exception as e:
            # One broken message must not end the batch
            logger.error(f"   ❌ Unexpected error on {item.id}: {e}")
            navigator.capture_diagnostics(f"item_error_{item.id[:8]}")
            summary.record_failure(item, e)

        navigator.settle(item_settle_ms)

    logger.info("=" * 60)
    logger.info("BATCH JOB COMPLETE")
    logger.info(f"  Items:               {summary.processed}/{summary.total}")
    logger.info(f"  Skipped (no load):   {summary.skipped}")
    logger.info(f"  ZIP alert timeouts:  {summary.completion_timeouts}")
    logger.info(f"  Proofs captured:     {summary.proofs_captured}")
    logger.info(f"  Failure notes:       {summary.placeholders}")
    logger.info(f"  Errors:              {len(summary.failed)}")
    logger.info("=" * 60)
    return summary
