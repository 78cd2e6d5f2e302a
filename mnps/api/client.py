"""HTTP client and rate limiter for the Sleeper API.

This module centralizes HTTP concerns:
- Simple monotonically-timed rate limiting (min interval between calls)
- A requests.Session with a fixed retry policy for transient errors
- Small typed helpers for the league endpoints the dashboard reads
"""

from __future__ import annotations

import os
import threading
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from mnps.constants import DEFAULT_MIN_INTERVAL_SEC, REQUEST_TIMEOUT_SEC

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"


class RateLimiter:
    """Wall-clock based rate limiter using a minimum interval between calls.

    Guarantees at least ``min_interval_sec`` seconds between consecutive
    ``wait()`` calls, across the threads of one batch fetch.
    """

    def __init__(self, min_interval_sec: float | None = None) -> None:
        self.min_interval = (
            float(min_interval_sec) if min_interval_sec else DEFAULT_MIN_INTERVAL_SEC
        )
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            now = time.monotonic()
            if self._last:
                elapsed = now - self._last
                if elapsed < self.min_interval:
                    time.sleep(self.min_interval - elapsed)
            self._last = time.monotonic()


class SleeperClient:
    """Thin wrapper around requests.Session for the Sleeper API.

    - base_url: defaults to $SLEEPER_BASE_URL or https://api.sleeper.app/v1
    - rpm_limit: translated to a minimum interval of 60 / rpm seconds
    - min_interval_ms: explicit minimum interval in milliseconds (wins if larger)

    Only GET + JSON is implemented.
    """

    def __init__(
        self,
        base_url: str | None = None,
        rpm_limit: float | None = None,
        min_interval_ms: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or os.environ.get("SLEEPER_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        min_interval = None
        if rpm_limit and rpm_limit > 0:
            min_interval = max(min_interval or 0.0, 60.0 / rpm_limit)
        if min_interval_ms and min_interval_ms > 0:
            ms = float(min_interval_ms) / 1000.0
            min_interval = max(min_interval or 0.0, ms)
        self.rate = RateLimiter(min_interval)

        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "mnps-dashboard/1.0"})
        retry = Retry(
            total=5,
            connect=3,
            read=3,
            backoff_factor=0.5,
            status_forcelist=(408, 429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_json(self, path: str, *, allow_missing: bool = False) -> Any:
        """GET ``base_url + path`` and return decoded JSON.

        With ``allow_missing`` a 404 returns None instead of raising. Other
        non-2xx responses raise requests.HTTPError (after retries).
        """
        if not path.startswith("/"):
            path = "/" + path
        self.rate.wait()
        r = self.session.get(self.base_url + path, timeout=REQUEST_TIMEOUT_SEC)
        if allow_missing and r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()

    def league(self, league_id: str) -> dict:
        return self.get_json(f"/league/{league_id}")

    def users(self, league_id: str) -> list[dict]:
        return self.get_json(f"/league/{league_id}/users")

    def rosters(self, league_id: str) -> list[dict]:
        return self.get_json(f"/league/{league_id}/rosters")

    def matchups(self, league_id: str, week: int) -> list[dict] | None:
        """Raw matchup rows for ``week``; None when the week does not exist."""
        return self.get_json(f"/league/{league_id}/matchups/{week}", allow_missing=True)

    def state(self, sport: str = "nfl") -> dict:
        return self.get_json(f"/state/{sport}")
