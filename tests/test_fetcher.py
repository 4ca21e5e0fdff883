"""Tests for secaudit.fetcher module (no network)."""
from collections.abc import Callable
from pathlib import Path

import orjson
import pytest
from _samples import build_filing_html

from secaudit.errors import StepError
from secaudit.fetcher import (
    DEFAULT_USER_AGENT,
    SUBMISSIONS_URL,
    TICKERS_URL,
    USER_AGENT_ENV_VAR,
    FilingFetcher,
    RateLimiter,
    build_doc_url,
    detect_content_kind,
    load_local_filing,
)
from secaudit.workflow_types import RunOptions

CIK = "0000320193"
DOC_URL = (
    "https://www.sec.gov/Archives/edgar/data/0000320193/"
    "000032019323000106/aapl-20230930.htm"
)

TICKERS = {
    "0": {"cik_str": 789019, "ticker": "MSFT", "title": "MICROSOFT CORP"},
    "1": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."},
}

SUBMISSIONS = {
    "filings": {
        "recent": {
            "form": ["10-Q", "8-K", "10-K", "10-K"],
            "filingDate": ["2024-02-02", "2023-12-01", "2023-11-03", "2022-10-28"],
            "accessionNumber": [
                "0000320193-24-000006",
                "0000320193-23-000110",
                "0000320193-23-000106",
                "0000320193-22-000108",
            ],
            "primaryDocument": [
                "aapl-20231230.htm",
                "aapl-8k.htm",
                "aapl-20230930.htm",
                "aapl-20220924.htm",
            ],
        }
    }
}


class FakeHttp:
    """Canned responses keyed by URL; records every request."""

    def __init__(self, responses: dict[str, bytes]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, dict[str, str]]] = []

    def __call__(self, url: str, headers: dict[str, str]) -> bytes:
        self.calls.append((url, headers))
        if url not in self.responses:
            raise StepError(f"SEC request failed: 404 Not Found for {url}")
        return self.responses[url]


def _edgar_http() -> FakeHttp:
    return FakeHttp({
        TICKERS_URL: orjson.dumps(TICKERS),
        SUBMISSIONS_URL.format(cik=CIK): orjson.dumps(SUBMISSIONS),
        DOC_URL: build_filing_html().encode("utf-8"),
    })


def _no_wait_limiter() -> RateLimiter:
    return RateLimiter(0.0, sleep=lambda _: None)


def _options(**kwargs: object) -> RunOptions:
    base: dict[str, object] = {
        "ticker": "AAPL", "year": 2023, "mode": "command", "invocation_id": "inv_test",
    }
    base.update(kwargs)
    return RunOptions(**base)  # type: ignore[arg-type]


class TestRateLimiter:
    def _clock(self, values: list[float]) -> Callable[[], float]:
        it = iter(values)
        return lambda: next(it)

    def test_first_call_does_not_sleep(self) -> None:
        sleeps: list[float] = []
        limiter = RateLimiter(0.12, clock=self._clock([0.0]), sleep=sleeps.append)
        limiter.wait()
        assert sleeps == []

    def test_sleeps_for_remaining_interval(self) -> None:
        sleeps: list[float] = []
        limiter = RateLimiter(0.12, clock=self._clock([0.0, 0.05, 0.12]), sleep=sleeps.append)
        limiter.wait()
        limiter.wait()
        assert sleeps == [pytest.approx(0.07)]

    def test_no_sleep_after_interval(self) -> None:
        sleeps: list[float] = []
        limiter = RateLimiter(0.12, clock=self._clock([0.0, 1.0]), sleep=sleeps.append)
        limiter.wait()
        limiter.wait()
        assert sleeps == []

    def test_limiters_are_independent(self) -> None:
        sleeps: list[float] = []
        a = RateLimiter(0.12, clock=self._clock([0.0]), sleep=sleeps.append)
        b = RateLimiter(0.12, clock=self._clock([0.01]), sleep=sleeps.append)
        a.wait()
        b.wait()
        assert sleeps == []


class TestDetectContentKind:
    def test_pdf_by_magic(self) -> None:
        assert detect_content_kind(b"%PDF-1.7\n...") == "pdf"

    def test_pdf_by_extension(self) -> None:
        assert detect_content_kind(b"binary", "https://example.com/10k.PDF") == "pdf"

    def test_html(self) -> None:
        assert detect_content_kind("<html><body></body></html>") == "html"
        assert detect_content_kind(b"<HTML>") == "html"

    def test_sgml_document(self) -> None:
        assert detect_content_kind("<SEC-DOCUMENT>\n<DOCUMENT>\n<TYPE>10-K") == "html"

    def test_plain_text(self) -> None:
        assert detect_content_kind("ITEM 1A. RISK FACTORS\n...") == "text"


class TestLocalFiling:
    def test_html_file(self, write_filing: Callable[..., Path]) -> None:
        path = write_filing()
        result = load_local_filing(path)
        assert result.content_kind == "html"
        assert isinstance(result.content, str)
        assert result.source == str(path)

    def test_text_file(self, write_filing: Callable[..., Path]) -> None:
        result = load_local_filing(write_filing(name="filing.txt"))
        assert result.content_kind == "text"

    def test_pdf_kept_as_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "filing.pdf"
        path.write_bytes(b"%PDF-1.7 body")
        result = load_local_filing(path)
        assert result.content_kind == "pdf"
        assert result.content == b"%PDF-1.7 body"


class TestFilingFetcher:
    def test_resolve_cik_pads_to_ten_digits(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=_edgar_http())
        assert fetcher.resolve_cik("aapl") == CIK

    def test_unknown_ticker(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=_edgar_http())
        with pytest.raises(StepError, match='Ticker "ZZZZ" not found'):
            fetcher.resolve_cik("ZZZZ")

    def test_find_filing_skips_other_forms(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=_edgar_http())
        filing = fetcher.find_filing(CIK, 2023)
        assert filing.accession_number == "0000320193-23-000106"
        assert filing.primary_document == "aapl-20230930.htm"

    def test_find_filing_accepts_following_year(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=_edgar_http())
        assert fetcher.find_filing(CIK, 2022).filing_date == "2023-11-03"

    def test_find_filing_none(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=_edgar_http())
        with pytest.raises(StepError, match="No 10-K filing found"):
            fetcher.find_filing(CIK, 2018)

    def test_fetch_from_edgar(self) -> None:
        http = _edgar_http()
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=http)
        result = fetcher.fetch(_options())
        assert result.content_kind == "html"
        assert result.source == DOC_URL
        assert [url for url, _ in http.calls] == [
            TICKERS_URL, SUBMISSIONS_URL.format(cik=CIK), DOC_URL,
        ]

    def test_every_request_is_throttled(self) -> None:
        waits: list[int] = []

        class CountingLimiter(RateLimiter):
            def wait(self) -> None:
                waits.append(1)

        fetcher = FilingFetcher(rate_limiter=CountingLimiter(), http_get=_edgar_http())
        fetcher.fetch(_options())
        assert len(waits) == 3

    def test_user_agent_header(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(USER_AGENT_ENV_VAR, "Example Corp ops@example.com")
        http = _edgar_http()
        FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=http).resolve_cik("AAPL")
        assert http.calls[0][1]["User-Agent"] == "Example Corp ops@example.com"

    def test_default_user_agent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(USER_AGENT_ENV_VAR, raising=False)
        http = _edgar_http()
        FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=http).resolve_cik("AAPL")
        assert http.calls[0][1]["User-Agent"] == DEFAULT_USER_AGENT

    def test_url_overrides_edgar(self) -> None:
        http = _edgar_http()
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=http)
        result = fetcher.fetch(_options(url=DOC_URL))
        assert result.content_kind == "html"
        assert [url for url, _ in http.calls] == [DOC_URL]

    def test_file_overrides_url(self, write_filing: Callable[..., Path]) -> None:
        http = _edgar_http()
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=http)
        result = fetcher.fetch(_options(url=DOC_URL, file=write_filing()))
        assert result.content_kind == "html"
        assert http.calls == []

    def test_http_failure_propagates(self) -> None:
        fetcher = FilingFetcher(rate_limiter=_no_wait_limiter(), http_get=FakeHttp({}))
        with pytest.raises(StepError, match="404"):
            fetcher.fetch(_options())


def test_build_doc_url() -> None:
    assert build_doc_url(CIK, "0000320193-23-000106", "aapl-20230930.htm") == DOC_URL
