from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from exosystem.constants import (
    EXOPLANET_ARCHIVE_TAP_SYNC,
    PLANET_COLUMNS,
    PLANET_TABLE,
    STAR_COLUMNS,
    STAR_IDENTIFIER,
    STAR_TABLE,
)
from exosystem.errors import ArchiveQueryError
from exosystem.reduction import dedupe_str_list

logger = logging.getLogger(__name__)


def _error_summary(error: Exception) -> str:
    message = str(error).strip()
    if message:
        return f"{error.__class__.__name__}: {message}"
    return error.__class__.__name__


def quote_literal(value: str) -> str:
    """ADQL string literal with embedded quotes doubled."""
    return "'" + str(value).replace("'", "''") + "'"


def equals_condition(column: str, value: str) -> str:
    return f"{column}={quote_literal(value)}"


def build_query(columns: list[str] | str, table: str, condition: str) -> str:
    column_text = columns if isinstance(columns, str) else ",".join(columns)
    return f"select {column_text} from {table} where {condition}"


class JsonCache:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        if path.exists():
            try:
                self._data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable cache file %s", path)
                self._data = {}

    def get(self, source: str, key: str) -> Any:
        with self._lock:
            return self._data.get(source, {}).get(key)

    def set(self, source: str, key: str, value: Any) -> None:
        with self._lock:
            self._data.setdefault(source, {})[key] = value

    def flush(self) -> None:
        with self._lock:
            payload = json.dumps(self._data, ensure_ascii=True, sort_keys=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(payload, encoding="utf-8")


class ExoplanetArchiveClient:
    """Synchronous TAP client for the NASA Exoplanet Archive.

    Queries are rate limited and retried with exponential back-off. A query
    that still fails raises ArchiveQueryError; an empty result is an empty list.
    """

    cache_key = "exoplanet_archive"

    def __init__(
        self,
        timeout_s: float = 30.0,
        requests_per_second: float = 2.0,
        cache: JsonCache | None = None,
        retries: int = 2,
        retry_backoff_s: float = 0.4,
        endpoint: str = EXOPLANET_ARCHIVE_TAP_SYNC,
    ) -> None:
        self.timeout_s = timeout_s
        self.endpoint = endpoint
        self.min_interval_s = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self._last_call = 0.0
        self._rate_lock = threading.Lock()
        self._cache = cache
        self._retries = max(0, retries)
        self._retry_backoff_s = max(0.0, retry_backoff_s)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "exosystem-builder/0.1", "Accept": "application/json"})

    def _rate_limit(self) -> None:
        with self._rate_lock:
            if self.min_interval_s <= 0:
                return
            now = time.monotonic()
            wait = self.min_interval_s - (now - self._last_call)
            if wait > 0:
                time.sleep(wait)
            self._last_call = time.monotonic()

    def _fetch(self, adql: str) -> requests.Response:
        params = {"query": adql, "format": "json"}
        last_error: Exception | None = None
        for attempt in range(self._retries + 1):
            try:
                self._rate_limit()
                response = self.session.get(self.endpoint, params=params, timeout=self.timeout_s)
                response.raise_for_status()
                return response
            except requests.RequestException as exc:
                last_error = exc
                logger.debug("Archive query attempt %d failed: %s", attempt + 1, _error_summary(exc))
                if attempt >= self._retries:
                    break
                sleep_s = self._retry_backoff_s * (2**attempt)
                if sleep_s > 0:
                    time.sleep(sleep_s)
        if last_error is None:
            raise ArchiveQueryError("Archive query failed without an explicit error", query=adql)
        raise ArchiveQueryError(f"Archive query failed: {_error_summary(last_error)}", query=adql) from last_error

    def run_query(self, adql: str) -> list[dict[str, Any]]:
        if self._cache is not None:
            cached = self._cache.get(self.cache_key, adql)
            if cached is not None:
                return cached

        response = self._fetch(adql)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ArchiveQueryError(f"Archive returned a non-JSON body: {_error_summary(exc)}", query=adql) from exc
        if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
            raise ArchiveQueryError("Archive returned JSON that is not a list of rows", query=adql)

        logger.debug("Archive returned %d rows for %s", len(payload), adql)
        if self._cache is not None:
            self._cache.set(self.cache_key, adql, payload)
        return payload

    def query(self, columns: list[str] | str, table: str, condition: str) -> list[dict[str, Any]]:
        return self.run_query(build_query(columns, table, condition))


def fetch_system_rows(
    client: ExoplanetArchiveClient,
    system_name: str,
    workers: int = 1,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Raw star rows of a system and the raw planet rows of all its hosts.

    One planet query is issued per host; every query finishes before this
    returns, so callers always reduce a complete row set.
    """
    star_rows = client.query(STAR_COLUMNS, STAR_TABLE, equals_condition("sy_name", system_name))
    host_names = dedupe_str_list([str(row.get(STAR_IDENTIFIER) or "") for row in star_rows])
    logger.info("System %r: %d star rows across %d hosts", system_name, len(star_rows), len(host_names))

    def _planet_rows(host_name: str) -> list[dict[str, Any]]:
        return client.query(PLANET_COLUMNS, PLANET_TABLE, equals_condition(STAR_IDENTIFIER, host_name))

    if workers > 1 and len(host_names) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(host_names))) as pool:
            per_host = list(pool.map(_planet_rows, host_names))
    else:
        per_host = [_planet_rows(host_name) for host_name in host_names]

    planet_rows = [row for rows in per_host for row in rows]
    logger.info("System %r: %d planet rows", system_name, len(planet_rows))
    return star_rows, planet_rows


def load_rows_csv(path: Path) -> list[dict[str, Any]]:
    """Rows of an archive CSV export, blank cells as None.

    The `#` comment lines that open archive downloads are skipped.
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog CSV not found: {path}")
    frame = pd.read_csv(path, comment="#")
    frame.columns = [str(column).strip().lower() for column in frame.columns]
    frame = frame.astype(object).where(pd.notna(frame), None)
    return frame.to_dict(orient="records")
