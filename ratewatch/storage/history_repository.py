# ratewatch/storage/history_repository.py

"""Get-or-fetch store of per-lender history logs and current catalogues.

Documents are read from a local directory or, when the configured
source is an ``http(s)`` URL, fetched over HTTP.  Concurrent requests
for the same lender share one in-flight task.  Missing or malformed
documents are logged and reported as ``None``; they never raise.
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from curl_cffi import requests as curl_requests

from ratewatch.config.settings import Settings
from ratewatch.models.history import HistoryLog
from ratewatch.models.product import Lender, Product
from ratewatch.storage.history_codec import (
    HistoryFormatError,
    parse_catalogue,
    parse_history,
    parse_lenders,
)

logger = logging.getLogger("ratewatch.repository")


class HistoryRepository:
    """Owns the lender id -> history log cache and its in-flight fetches."""

    def __init__(self, source: str | Path | None = None) -> None:
        raw = str(source) if source is not None else Settings.HISTORY_SOURCE
        self._remote: bool = raw.startswith(("http://", "https://"))
        self._base: str = raw.rstrip("/")
        self._logs: dict[str, HistoryLog] = {}
        self._catalogues: dict[str, list[Product]] = {}
        self._in_flight: dict[str, asyncio.Task[HistoryLog | None]] = {}
        logger.debug(
            "HistoryRepository using %s source %s",
            "remote" if self._remote else "local",
            self._base,
        )

    # ── Raw document access ──────────────────────────────

    def _read_local(self, relative: str) -> Any:
        """Load a JSON document from the local data directory."""
        path = Path(self._base) / relative
        if not path.exists():
            logger.debug("No document at %s", path)
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return None

    def _fetch_remote(self, relative: str) -> Any:
        """GET a JSON document with retries; ``None`` on 404 or failure."""
        url = f"{self._base}/{relative}"
        for attempt in range(Settings.MAX_RETRIES):
            try:
                resp = curl_requests.get(
                    url,
                    headers=Settings.DEFAULT_HEADERS,
                    impersonate=Settings.IMPERSONATE_BROWSER,
                    timeout=Settings.REQUEST_TIMEOUT,
                )
                if resp.status_code == 200:
                    return resp.json()
                if resp.status_code == 404:
                    logger.debug("No document at %s", url)
                    return None
                logger.warning(
                    "HTTP %d for %s on attempt %d",
                    resp.status_code,
                    url,
                    attempt + 1,
                )
            except json.JSONDecodeError as exc:
                logger.warning("Invalid JSON from %s: %s", url, exc)
                return None
            except Exception as exc:
                logger.warning(
                    "Request error for %s on attempt %d: %s",
                    url,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
            time.sleep(Settings.REQUEST_DELAY * (attempt + 1))

        logger.error(
            "Giving up on %s after %d attempts", url, Settings.MAX_RETRIES,
        )
        return None

    async def _read_json(self, relative: str) -> Any:
        reader = self._fetch_remote if self._remote else self._read_local
        return await asyncio.to_thread(reader, relative)

    async def _decode(
        self,
        relative: str,
        parser: Callable[[object], Any],
    ) -> Any:
        """Read and parse one document, logging (not raising) bad shapes."""
        document = await self._read_json(relative)
        if document is None:
            return None
        try:
            return parser(document)
        except HistoryFormatError as exc:
            logger.warning("Rejected %s: %s", relative, exc)
            return None

    # ── History logs ─────────────────────────────────────

    async def _load_history(self, lender_id: str) -> HistoryLog | None:
        log: HistoryLog | None = await self._decode(
            f"history/{lender_id}.json", parse_history,
        )
        if log is not None:
            self._logs[lender_id] = log
            logger.info(
                "Loaded history for %s: %d baseline products, "
                "%d changesets",
                lender_id,
                len(log.baseline.products),
                len(log.changesets),
            )
        return log

    async def get(self, lender_id: str) -> HistoryLog | None:
        """Return the cached log for *lender_id*, fetching it if needed."""
        cached = self._logs.get(lender_id)
        if cached is not None:
            return cached

        task = self._in_flight.get(lender_id)
        if task is None:
            task = asyncio.create_task(self._load_history(lender_id))
            self._in_flight[lender_id] = task
            task.add_done_callback(
                lambda _t: self._in_flight.pop(lender_id, None)
            )
        return await task

    async def get_many(
        self, lender_ids: Iterable[str],
    ) -> dict[str, HistoryLog]:
        """Fetch several logs concurrently, omitting lenders without one."""
        ids = list(dict.fromkeys(lender_ids))
        logs = await asyncio.gather(*(self.get(i) for i in ids))
        return {
            lender_id: log
            for lender_id, log in zip(ids, logs, strict=True)
            if log is not None
        }

    def cached(self, lender_id: str) -> HistoryLog | None:
        """Return an already-loaded log without fetching."""
        return self._logs.get(lender_id)

    def clear(self) -> int:
        """Drop every cached document; returns the number of logs dropped."""
        count = len(self._logs)
        self._logs.clear()
        self._catalogues.clear()
        logger.info("History cache purged (%d logs removed)", count)
        return count

    # ── Current catalogues and lenders ───────────────────

    async def get_current(self, lender_id: str) -> list[Product] | None:
        """Return the live catalogue of *lender_id*, if published."""
        cached = self._catalogues.get(lender_id)
        if cached is not None:
            return cached
        products: list[Product] | None = await self._decode(
            f"{lender_id}.json", parse_catalogue,
        )
        if products is not None:
            self._catalogues[lender_id] = products
        return products

    async def get_current_many(
        self, lender_ids: Iterable[str],
    ) -> list[Product]:
        """Concatenate the live catalogues of several lenders."""
        catalogues = await asyncio.gather(
            *(self.get_current(i) for i in dict.fromkeys(lender_ids))
        )
        return [p for c in catalogues if c for p in c]

    async def get_lenders(self) -> list[Lender]:
        """Return the lender registry (empty when unavailable)."""
        lenders: list[Lender] | None = await self._decode(
            "lenders.json", parse_lenders,
        )
        return lenders or []

    async def load_all(
        self, include_discontinued: bool = False,
    ) -> dict[str, HistoryLog]:
        """Fetch the logs of every registered lender."""
        lenders = await self.get_lenders()
        ids = [
            lender.id
            for lender in lenders
            if include_discontinued or not lender.discontinued
        ]
        return await self.get_many(ids)
