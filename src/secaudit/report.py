"""Analysis artifact: JSON payload and Markdown rendering."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from secaudit.io_utils import save_json, save_text
from secaudit.workflow_types import WORKFLOW_ID, OutputFormat, RunContext

SECTION_TITLES: dict[str, str] = {
    "risk_factors": "Risk Factors (Item 1A)",
    "mdna": "Management's Discussion & Analysis (Item 7)",
    "financials": "Financial Statements (Item 8)",
}


def build_analysis_output(ctx: RunContext) -> dict[str, Any]:
    options = ctx.options
    return {
        "invocationId": options.invocation_id,
        "mode": options.mode,
        "workflow": WORKFLOW_ID,
        "input": {"ticker": options.ticker, "year": options.year},
        "sections": [a.as_dict() for a in ctx.analyses],
        "overallSummary": list(ctx.overall_summary),
    }


def render_markdown(analysis: dict[str, Any]) -> str:
    lines: list[str] = [
        f"# 10-K Analysis: {analysis['input']['ticker']} ({analysis['input']['year']})",
        "",
        f"**Mode:** {analysis['mode']}",
        f"**Workflow:** {analysis['workflow']}",
        f"**Invocation ID:** {analysis['invocationId']}",
        "",
    ]

    for section in analysis["sections"]:
        lines.append(f"## {SECTION_TITLES.get(section['name'], section['name'])}")
        lines.append("")
        found = "true" if section["found"] else "false"
        lines.append(f"**Found:** {found} | **Confidence:** {section['confidence']}")
        lines.append("")
        if section["summary"]:
            lines.append("### Summary")
            lines.extend(f"- {s}" for s in section["summary"])
            lines.append("")
        if section["evidence"]:
            lines.append("### Evidence")
            lines.extend(f"> {e}" for e in section["evidence"])
            lines.append("")

    if analysis["overallSummary"]:
        lines.append("## Overall Summary")
        lines.append("")
        lines.extend(f"- {s}" for s in analysis["overallSummary"])

    return "\n".join(lines)


def write_analysis(analysis: dict[str, Any], out_dir: Path, fmt: OutputFormat) -> Path:
    """Write ``<out_dir>/<invocationId>-analysis.{json,md}``."""
    path = out_dir / f"{analysis['invocationId']}-analysis.{fmt}"
    if fmt == "md":
        save_text(render_markdown(analysis), path)
    else:
        save_json(analysis, path, pretty=True)
    return path
