"""
Remote Lister: fetch the complete message list of one feed from the MJP API.

Two requests per feed:
  1. Probe page 0 with a small page size to learn ``total``.
  2. Fetch page 0 again with a page size covering all ``total`` messages,
     rounded up to the probe size.

Sorted ascending by creation time, which is the processing order.
"""

import logging
import math

import requests as _requests

from mjp_export.errors import ListingError
from mjp_export.models import Feed

logger = logging.getLogger("mjp_export")


def session_from_context(context) -> _requests.Session:
    """
    Build a requests.Session that shares the browser's login.

    Copies every cookie of the Playwright BrowserContext into the session's
    cookie jar, so API calls carry the same credentials the page does.
    """
    session = _requests.Session()
    for cookie in context.cookies():
        session.cookies.set(
            cookie["name"],
            cookie["value"],
            domain=cookie.get("domain", ""),
            path=cookie.get("path", "/"),
        )
    session.headers.update({"Accept": "application/json"})
    return session


class RemoteLister:
    """Paginated listing client for the outgoing/incoming message feeds."""

    def __init__(
        self,
        session: _requests.Session,
        *,
        probe_page_size: int = 10,
        sort_by: str = "ozgppCreationTime",
        timeout: float = 30,
    ):
        self.session = session
        self.probe_page_size = probe_page_size
        self.sort_by = sort_by
        self.timeout = timeout

    def _get(self, url: str, items_per_page: int) -> dict:
        params = {
            "page": 0,
            "itemsPerPage": items_per_page,
            "ascending": "true",
            "sortBy": self.sort_by,
        }
        try:
            resp = self.session.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except _requests.RequestException as e:
            raise ListingError(f"Request to {url} failed: {e}") from e

        if not resp.ok:
            raise ListingError(f"HTTP {resp.status_code} from {url}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise ListingError(f"Invalid JSON from {url}: {e}") from e
        if not isinstance(payload, dict):
            raise ListingError(f"Unexpected payload from {url}: {type(payload).__name__}")
        return payload

    def fetch_all(self, feed: Feed) -> list[dict]:
        """
        Return every record of *feed* in ascending creation order.

        Any transport or status failure is logged and yields an empty list;
        the batch then simply has nothing to do for this feed.
        """
        logger.info(f"[{feed.name}] Checking total count...")
        try:
            probe = self._get(feed.url, self.probe_page_size)
            total = int(probe.get("total") or 0)
            if total == 0:
                logger.info(f"[{feed.name}] No messages.")
                return []

            limit = math.ceil(total / self.probe_page_size) * self.probe_page_size
            logger.info(f"[{feed.name}] Total: {total}. Fetching {limit} items...")

            full = self._get(feed.url, limit)
            records = full.get("eboMessages") or []
        except (ListingError, ValueError, TypeError) as e:
            logger.error(f"[{feed.name}] Error: {e}")
            return []

        logger.info(f"[{feed.name}] ✔ Loaded {len(records)} messages.")
        return records
