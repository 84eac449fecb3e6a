"""
Mein Justizpostfach Batch Export — Entry Point

Exports every outgoing and incoming message: "save all" ZIP archive,
renamed to carry the message UUID, plus the HTML proof document.

Usage:
    python main.py
    python main.py --config path/to/config.yaml
"""

import argparse
import os
import signal
import sys

from playwright.sync_api import sync_playwright

from mjp_export.utils import setup_logging, load_config, get_session_path, adaptive_timeout, capture_diagnostics
from mjp_export.auth import authenticate
from mjp_export.batch_driver import build_work_queue, run_batch
from mjp_export.capturer import PopupHarvester
from mjp_export.lister import RemoteLister, session_from_context
from mjp_export.errors import EmptyQueueError
from mjp_export.models import build_feeds
from mjp_export.naming import CorrelationSlot, DownloadInterceptor
from mjp_export.navigator import PortalNavigator
from mjp_export.page_processor import PageProcessor
from mjp_export.sink import ArtifactSink


def main() -> int:
    # ── Parse arguments ──────────────────────────────────────────────
    parser = argparse.ArgumentParser(
        description="Export all Mein Justizpostfach messages with their proof documents"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config.yaml (default: ./config.yaml)"
    )
    args = parser.parse_args()

    # ── Setup ────────────────────────────────────────────────────────
    logger = setup_logging()
    config = load_config(args.config)

    logger.info("Configuration loaded:")
    logger.info(f"  Portal:           {config['portal_url']}")
    logger.info(f"  API:              {config['api_base']}")
    logger.info(f"  Download dir:     {config['download_dir']}")
    logger.info(f"  Headless:         {config['headless']}")
    logger.info(f"  Timeout x:        {config['timeout_multiplier']}")

    session_path = get_session_path()

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=bool(config["headless"]))
        page = None
        try:
            ctx_opts: dict = {"accept_downloads": True}
            if os.path.exists(session_path):
                logger.info("Loading saved session...")
                ctx_opts["storage_state"] = session_path
            context = browser.new_context(**ctx_opts)

            page = authenticate(context, portal_url=config["portal_url"])

            # ── Build the queue ──────────────────────────────────────
            lister = RemoteLister(
                session_from_context(context),
                probe_page_size=config["probe_page_size"],
                sort_by=config["sort_by"],
                timeout=config["request_timeout"],
            )
            outgoing, incoming = build_feeds(config["api_base"])
            queue = build_work_queue(lister, outgoing, incoming)

            # ── Wire the engine ──────────────────────────────────────
            navigator = PortalNavigator(page)
            sink = ArtifactSink(config["download_dir"])
            slot = CorrelationSlot(extension=config["archive_extension"])
            harvester = PopupHarvester(
                context,
                page.wait_for_timeout,
                poll_interval_ms=config["poll_interval_ms"],
                open_timeout_ms=adaptive_timeout(config["popup_open_timeout_ms"], config),
            )
            processor = PageProcessor(
                navigator,
                slot,
                sink,
                harvester,
                load_timeout_ms=adaptive_timeout(config["load_timeout_ms"], config),
                completion_timeout_ms=adaptive_timeout(config["completion_timeout_ms"], config),
                poll_interval_ms=config["poll_interval_ms"],
                completion_settle_ms=config["completion_settle_ms"],
            )

            # ── Run ──────────────────────────────────────────────────
            with DownloadInterceptor(page, slot, sink).installed():
                summary = run_batch(
                    navigator,
                    queue,
                    processor,
                    list_settle_ms=config["list_settle_ms"],
                    item_settle_ms=config["item_settle_ms"],
                )

            logger.info(f"\n✅ Batch job complete! {len(sink.saved)} file(s) in {config['download_dir']}")
            return 0 if not summary.failed else 2
        except EmptyQueueError as e:
            # Nothing listed: stop before the interceptor is installed
            logger.warning(f"⚠️  {e}")
            return 1
        except Exception as e:
            logger.error(f"Batch execution error: {e}")
            if page is not None:
                capture_diagnostics(page, "batch_execution_error")
            return 1
        finally:
            logger.info("Closing browser...")
            try:
                browser.close()
            except Exception:
                pass


# Handle Ctrl+C at the top level too
signal.signal(signal.SIGINT, lambda *_: (print("\n⚠ Ctrl+C pressed. Exiting..."), os._exit(1)))

if __name__ == "__main__":
    sys.exit(main())
