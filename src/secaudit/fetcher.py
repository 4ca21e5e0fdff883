"""EDGAR filing fetcher.

Resolves a ticker to a CIK, finds the 10-K filed for (or just after) the
requested fiscal year, and downloads the primary document. Outbound
requests are throttled by a ``RateLimiter`` owned by the fetcher instance.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from secaudit.errors import StepError
from secaudit.html_utils import decode_bytes
from secaudit.io_utils import loads_json
from secaudit.workflow_types import ContentKind, FetchResult, RunOptions

log = logging.getLogger(__name__)

USER_AGENT_ENV_VAR = "SECAUDIT_USER_AGENT"
DEFAULT_USER_AGENT = "secaudit-cli admin@example.com"
SEC_RATE_LIMIT_SEC = 0.120
REQUEST_TIMEOUT_SEC = 30.0

TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"
SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik}.json"
ARCHIVES_URL = "https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{document}"

_TEN_K_FORMS = ("10-K", "10-K/A")

type HttpGet = Callable[[str, dict[str, str]], bytes]


class RateLimiter:
    """Minimum-interval throttle between consecutive requests."""

    def __init__(
        self,
        min_interval_sec: float = SEC_RATE_LIMIT_SEC,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval = min_interval_sec
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> None:
        now = self._clock()
        if self._last is not None:
            remaining = self._min_interval - (now - self._last)
            if remaining > 0:
                self._sleep(remaining)
                now = self._clock()
        self._last = now


def urllib_get(url: str, headers: dict[str, str]) -> bytes:
    req = urllib.request.Request(url, headers=headers, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT_SEC) as resp:
            return resp.read()
    except urllib.error.HTTPError as exc:
        raise StepError(f"SEC request failed: {exc.code} {exc.reason} for {url}") from exc
    except urllib.error.URLError as exc:
        raise StepError(f"SEC request failed: {exc.reason} for {url}") from exc


@dataclass(frozen=True, slots=True)
class FilingRef:
    accession_number: str
    primary_document: str
    filing_date: str


def detect_content_kind(content: str | bytes, url: str = "") -> ContentKind:
    head = content[:1024]
    if isinstance(head, bytes):
        head = head.decode("latin-1")
    if url.lower().endswith(".pdf") or head.startswith("%PDF"):
        return "pdf"
    sample = content if isinstance(content, str) else decode_bytes(content)
    if "<html" in sample or "<HTML" in sample or "<DOCUMENT>" in sample:
        return "html"
    return "text"


def _payload_for(raw: bytes, kind: ContentKind) -> str | bytes:
    return raw if kind == "pdf" else decode_bytes(raw)


def load_local_filing(path: Path) -> FetchResult:
    """Read a filing from disk (no network)."""
    raw = path.read_bytes()
    kind = detect_content_kind(raw, str(path))
    return FetchResult(content=_payload_for(raw, kind), content_kind=kind, source=str(path))


class FilingFetcher:
    def __init__(
        self,
        *,
        user_agent: str | None = None,
        rate_limiter: RateLimiter | None = None,
        http_get: HttpGet = urllib_get,
    ) -> None:
        self._user_agent = user_agent or os.getenv(USER_AGENT_ENV_VAR, DEFAULT_USER_AGENT)
        self._limiter = rate_limiter or RateLimiter()
        self._http_get = http_get

    def fetch(self, options: RunOptions) -> FetchResult:
        if options.file is not None:
            return load_local_filing(options.file)
        if options.url:
            return self.fetch_url(options.url)
        return self.fetch_from_edgar(options.ticker, options.year)

    def fetch_url(self, url: str) -> FetchResult:
        raw = self._get(url)
        kind = detect_content_kind(raw, url)
        return FetchResult(content=_payload_for(raw, kind), content_kind=kind, source=url)

    def fetch_from_edgar(self, ticker: str, year: int) -> FetchResult:
        cik = self.resolve_cik(ticker)
        log.info("CIK: %s", cik)
        filing = self.find_filing(cik, year)
        log.info("Filing: %s (%s)", filing.accession_number, filing.filing_date)
        url = build_doc_url(cik, filing.accession_number, filing.primary_document)
        log.info("URL: %s", url)
        return self.fetch_url(url)

    def resolve_cik(self, ticker: str) -> str:
        data = loads_json(self._get(TICKERS_URL))
        wanted = ticker.upper()
        for entry in data.values():
            if str(entry.get("ticker", "")).upper() == wanted:
                return str(entry["cik_str"]).zfill(10)
        raise StepError(f'Ticker "{ticker}" not found in SEC company tickers')

    def find_filing(self, cik: str, year: int) -> FilingRef:
        data = loads_json(self._get(SUBMISSIONS_URL.format(cik=cik)))
        recent = data.get("filings", {}).get("recent", {})
        forms = recent.get("form", [])
        for i, form in enumerate(forms):
            if form not in _TEN_K_FORMS:
                continue
            filing_date = str(recent["filingDate"][i])
            filing_year = int(filing_date[:4])
            # Fiscal-year 10-Ks are usually filed early the following year.
            if filing_year in (year, year + 1):
                return FilingRef(
                    accession_number=str(recent["accessionNumber"][i]),
                    primary_document=str(recent["primaryDocument"][i]),
                    filing_date=filing_date,
                )
        raise StepError(
            f"No 10-K filing found for CIK {cik} around year {year}. "
            "Try a different --year or use --url with a direct filing URL."
        )

    def _get(self, url: str) -> bytes:
        self._limiter.wait()
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/json",
        }
        return self._http_get(url, headers)


def build_doc_url(cik: str, accession: str, primary_document: str) -> str:
    return ARCHIVES_URL.format(
        cik=cik,
        accession=accession.replace("-", ""),
        document=primary_document,
    )
