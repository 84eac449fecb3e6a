"""
Utility functions: config loading, logging setup, and helpers.

  - setup_logging()        : console + timestamped file log under logs/
  - load_config()          : config.yaml with safe defaults for every key
  - adaptive_timeout()     : scale a wait by the configured timeout_multiplier
  - capture_diagnostics()  : screenshot, falling back to an HTML dump
"""

import os
import re
import logging
import yaml
from datetime import datetime


ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.path.join(ROOT_DIR, "logs")
SCREENSHOT_DIR = os.path.join(LOG_DIR, "screenshots")
HTMLDUMP_DIR   = os.path.join(LOG_DIR, "htmldumps")

LOGGER_NAME = "mjp_export"


def setup_logging() -> logging.Logger:
    """Configure and return the project logger."""
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(LOG_DIR, f"run_{timestamp}.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    # Console handler
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(message)s", datefmt="%H:%M:%S")
    ch.setFormatter(ch_fmt)

    # File handler
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh_fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(name)s — %(message)s")
    fh.setFormatter(fh_fmt)

    logger.addHandler(ch)
    logger.addHandler(fh)

    logger.info(f"Log file: {log_file}")
    return logger


def default_config_path() -> str:
    return os.path.join(ROOT_DIR, "config.yaml")


def load_config(config_path: str = None) -> dict:
    """Load and validate config.yaml, applying safe defaults for all keys.

    When no path is given and the default config.yaml is missing, the run
    continues on built-in defaults. An explicit path that does not exist is
    an error.
    """
    logger = logging.getLogger(LOGGER_NAME)
    config: dict = {}

    if config_path is None:
        config_path = default_config_path()
        if not os.path.exists(config_path):
            logger.info(f"No config file at {config_path} — using built-in defaults")
            config_path = None
    elif not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is not None:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ValueError(f"Config file must contain a mapping, got: {type(config).__name__}")

    # Service endpoints
    config.setdefault("portal_url", "https://mein-justizpostfach.bund.de/")
    config.setdefault("api_base", "https://api.mjp.justiz.de/api/v1/public/messages/ebo")
    for key in ("portal_url", "api_base"):
        if not isinstance(config[key], str) or not config[key].startswith("http"):
            raise ValueError(f"{key} must be an http(s) URL, got: {config[key]!r}")

    # Output
    config.setdefault("download_dir", os.path.join(ROOT_DIR, "downloads"))
    ext = config.setdefault("archive_extension", ".zip")
    if not isinstance(ext, str) or not ext.startswith("."):
        raise ValueError(f"archive_extension must start with '.', got: {ext!r}")

    # Listing
    probe = config.setdefault("probe_page_size", 10)
    if not isinstance(probe, int) or probe < 1:
        raise ValueError(f"probe_page_size must be int >= 1, got: {probe!r}")
    config.setdefault("sort_by", "ozgppCreationTime")
    rt = config.setdefault("request_timeout", 30)
    if not isinstance(rt, (int, float)) or rt <= 0:
        raise ValueError(f"request_timeout must be a positive number, got: {rt!r}")

    # Waits and settle delays (milliseconds)
    config.setdefault("load_timeout_ms", 15_000)
    config.setdefault("completion_timeout_ms", 60_000)
    config.setdefault("poll_interval_ms", 500)
    config.setdefault("popup_open_timeout_ms", 30_000)
    config.setdefault("completion_settle_ms", 800)
    config.setdefault("list_settle_ms", 600)
    config.setdefault("item_settle_ms", 1_500)
    for key in (
        "load_timeout_ms", "completion_timeout_ms", "poll_interval_ms",
        "popup_open_timeout_ms", "completion_settle_ms", "list_settle_ms",
        "item_settle_ms",
    ):
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"{key} must be int >= 0, got: {value!r}")
    if config["poll_interval_ms"] < 50:
        raise ValueError(f"poll_interval_ms must be >= 50, got: {config['poll_interval_ms']!r}")

    # Timeout multiplier
    multiplier = config.setdefault("timeout_multiplier", 1.0)
    if not isinstance(multiplier, (int, float)) or multiplier < 0.1:
        raise ValueError(
            f"timeout_multiplier must be a number >= 0.1, got: {multiplier!r}"
        )

    # Browser
    config.setdefault("headless", False)

    return config


def adaptive_timeout(base_ms: int, config: dict) -> int:
    """
    Scale a wait by the configured timeout_multiplier.

    Returns an int in milliseconds, rounded up to the nearest 100ms.

    Examples:
        adaptive_timeout(15_000, cfg)                       → 15_000ms
        adaptive_timeout(15_000, cfg with multiplier=2.0)   → 30_000ms
    """
    multiplier = config.get("timeout_multiplier", 1.0)
    scaled = int(base_ms * multiplier)
    return ((scaled + 99) // 100) * 100


def get_session_path() -> str:
    """Return the path to the session storage file."""
    return os.path.join(ROOT_DIR, "session.json")


def capture_diagnostics(page, label: str = "error") -> str | None:
    """
    Capture maximum diagnostic data even when the page is broken.

    Chain:
      1. Always log page.url and page.title()
      2. page.screenshot() with a hard 5s timeout
      3. On failure → page.content() → save as .html dump

    Returns the file path of the saved screenshot or HTML dump, or None.
    """
    logger = logging.getLogger(LOGGER_NAME)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_label = re.sub(r"[^\w\-]", "_", label)[:80]

    # Always log URL + title first (works even on stuck pages)
    try:
        current_url = page.url
    except Exception:
        current_url = "<unavailable>"
    try:
        current_title = page.title()
    except Exception:
        current_title = "<unavailable>"
    logger.debug(f"[diag] url={current_url}  title={current_title}")

    # Screenshot (5 second timeout; don't hang on broken pages)
    try:
        os.makedirs(SCREENSHOT_DIR, exist_ok=True)
        filepath = os.path.join(SCREENSHOT_DIR, f"{timestamp}_{safe_label}.png")
        page.screenshot(path=filepath, full_page=False, timeout=5_000)
        logger.info(f"📸 Screenshot saved: {filepath}")
        return filepath
    except Exception as ss_err:
        logger.debug(f"Screenshot failed ({ss_err}) — falling back to HTML dump")

    # HTML dump (always works even when the page is stuck)
    try:
        os.makedirs(HTMLDUMP_DIR, exist_ok=True)
        html_filepath = os.path.join(HTMLDUMP_DIR, f"{timestamp}_{safe_label}.html")
        html_content = page.content()
        with open(html_filepath, "w", encoding="utf-8") as f:
            f.write(html_content)
        logger.info(f"📄 HTML dump saved: {html_filepath}")
        return html_filepath
    except Exception as html_err:
        logger.warning(f"HTML dump also failed: {html_err}")
        return None
