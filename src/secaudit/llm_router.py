"""Model-driven intent router over the OpenAI chat-completions API.

Returns the same ``IntentRoute`` contract as the heuristic router; the
orchestrator cannot tell which router produced a plan.
"""
from __future__ import annotations

import logging
import os
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import Any

from secaudit.errors import StepError
from secaudit.intent_router import IntentRoute, resolve_ticker_and_year
from secaudit.io_utils import dumps_json, loads_json
from secaudit.workflow_types import ALL_STEPS, DEFAULT_REQUIRED_SECTIONS, StepName

log = logging.getLogger(__name__)

API_KEY_ENV_VAR = "OPENAI_API_KEY"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
REQUEST_TIMEOUT_SEC = 60.0

SYSTEM_PROMPT = """You are a workflow planner for a SEC 10-K filing analyzer.

Given a user's natural language request, decide which workflow steps to execute.

Available steps:
- fetch: Download the 10-K filing from SEC EDGAR
- extract: Parse the HTML/PDF document into text
- locate_sections: Find required sections (Risk Factors, MD&A, Financial Statements)
- validate: Verify that all required sections were found with sufficient confidence
- generate: Produce extractive summaries for each section
- emit_ledger: Write an audit record of what ran

Respond with ONLY a JSON object in this exact format:
{
  "ticker": "AAPL",
  "year": 2023,
  "steps": ["fetch", "extract", ...],
  "sections": ["risk-factors", "mdna", "financials"],
  "reasoning": "brief explanation of your choices"
}

Select only the steps needed to produce the requested output.
Not every request requires every step."""

type HttpPost = Callable[[str, bytes, dict[str, str]], bytes]


def urllib_post(url: str, body: bytes, headers: dict[str, str]) -> bytes:
    req = urllib.request.Request(url, data=body, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT_SEC) as resp:
            return resp.read()
    except urllib.error.HTTPError as exc:
        raise StepError(f"LLM request failed: {exc.code} {exc.reason}") from exc
    except urllib.error.URLError as exc:
        raise StepError(f"LLM request failed: {exc.reason}") from exc


def _message_content(response: Any) -> str | None:
    """``choices[0].message.content`` of a chat-completions payload, or None."""
    if not isinstance(response, dict):
        raise StepError("LLM returned malformed response")
    choices = response.get("choices") or []
    if not isinstance(choices, list):
        raise StepError("LLM returned malformed response")
    if not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise StepError("LLM returned malformed response")
    content = message.get("content")
    if content is not None and not isinstance(content, str):
        raise StepError("LLM returned malformed response")
    return content


def _parse_plan(raw: str) -> dict[str, Any]:
    try:
        parsed = loads_json(raw)
    except ValueError as exc:
        raise StepError(f"LLM returned invalid JSON: {raw[:200]}") from exc
    if not isinstance(parsed, dict):
        raise StepError(f"LLM returned invalid JSON: {raw[:200]}")
    return parsed


def route_intent_with_llm(
    text: str,
    *,
    ticker: str | None = None,
    year: int | None = None,
    model: str = DEFAULT_MODEL,
    api_key: str | None = None,
    api_url: str = DEFAULT_API_URL,
    http_post: HttpPost = urllib_post,
) -> IntentRoute:
    key = api_key or os.getenv(API_KEY_ENV_VAR, "")
    if not key:
        raise StepError(
            f"{API_KEY_ENV_VAR} environment variable is required for --llm mode."
        )

    log.info("[llm] Sending intent to %s", model)
    body = dumps_json({
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ],
        "response_format": {"type": "json_object"},
    }).encode("utf-8")
    response = loads_json(http_post(
        api_url,
        body,
        {"Content-Type": "application/json", "Authorization": f"Bearer {key}"},
    ))

    raw = _message_content(response)
    if not raw:
        raise StepError("LLM returned empty response")
    parsed = _parse_plan(raw)

    resolved_ticker, resolved_year = resolve_ticker_and_year(
        text,
        ticker=ticker or (str(parsed["ticker"]) if parsed.get("ticker") else None),
        year=year or (int(parsed["year"]) if parsed.get("year") else None),
    )

    chosen = {str(s) for s in parsed.get("steps") or []}
    skipped: frozenset[StepName] = frozenset(s for s in ALL_STEPS if s not in chosen)
    sections = tuple(str(s) for s in parsed.get("sections") or ()) or DEFAULT_REQUIRED_SECTIONS
    reasoning = str(parsed.get("reasoning", ""))

    log.info("[llm] Resolved: ticker=%s year=%s", resolved_ticker, resolved_year)
    log.info("[llm] Steps chosen: %s", ", ".join(sorted(chosen)) or "(none)")
    if skipped:
        log.info("[llm] Skipped by model: %s", ", ".join(sorted(skipped)))
    log.info("[llm] Reasoning: %s", reasoning)

    return IntentRoute(
        ticker=resolved_ticker,
        year=resolved_year,
        required_sections=sections,
        skipped_steps=skipped,
        reasoning=reasoning,
    )
