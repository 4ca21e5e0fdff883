"""Command-line entry point.

    secaudit analyze-10k --ticker AAPL --year 2023 [--mode command|intent]
    secaudit intent "summarize apple 2023 risk factors" [--llm] [--seed N]

Exit codes: 0 success, 1 general error (including a lenient run whose
ledger did not pass), 2 required-step failure in command mode.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from secaudit.errors import RequiredStepFailure, SecAuditError
from secaudit.intent_router import IntentRoute, route_intent
from secaudit.ledger import generate_invocation_id
from secaudit.llm_router import DEFAULT_MODEL, route_intent_with_llm
from secaudit.orchestrator import remediation_hints, run_workflow
from secaudit.policy import WorkflowPolicy, load_policy
from secaudit.workflow import build_workflow
from secaudit.workflow_types import DEFAULT_REQUIRED_SECTIONS, RunOptions

log = logging.getLogger("secaudit")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VALIDATION_FAILURE = 2


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--format", choices=("json", "md"), default="json", help="Output format")
    parser.add_argument("--out", type=Path, default=Path("out"), help="Output directory")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--url", help="Direct filing URL (overrides ticker/year lookup)")
    source.add_argument("--file", type=Path, help="Local filing (HTML, PDF or text)")
    parser.add_argument("--invocation-id", help="Explicit invocation ID")
    parser.add_argument("--policy", type=Path, help="Policy JSON overriding thresholds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secaudit",
        description=(
            "Deterministic 10-K filing analyzer. Contrasts command-driven "
            "(deterministic) with intent-based (best-effort) invocation and "
            "writes an audit ledger for every run."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze-10k", help="Analyze a 10-K with full workflow enforcement")
    analyze.add_argument("--ticker", required=True, help="Company ticker symbol (e.g. AAPL)")
    analyze.add_argument("--year", type=int, required=True, help="Filing year")
    analyze.add_argument("--mode", choices=("command", "intent"), default="command")
    analyze.add_argument(
        "--require",
        type=_split_csv,
        default=DEFAULT_REQUIRED_SECTIONS,
        help="Required sections (comma-separated)",
    )
    analyze.add_argument(
        "--no-strict",
        dest="strict",
        action="store_false",
        help="Lower the confidence threshold in command mode",
    )
    _add_common_args(analyze)

    intent = sub.add_parser("intent", help="Analyze a filing from a natural language request")
    intent.add_argument("text", help='Request, e.g. "analyze apple 10-k 2023 risks"')
    intent.add_argument("--llm", action="store_true", help="Route with an OpenAI model")
    intent.add_argument("--model", default=DEFAULT_MODEL, help="Model used with --llm")
    intent.add_argument("--ticker", help="Ticker override")
    intent.add_argument("--year", type=int, help="Year override")
    intent.add_argument("--seed", type=int, help="Seed for the probabilistic skip policy")
    _add_common_args(intent)

    return parser


def _route(args: argparse.Namespace, policy: WorkflowPolicy) -> IntentRoute:
    ticker = args.ticker.upper() if args.ticker else None
    if args.llm:
        return route_intent_with_llm(args.text, ticker=ticker, year=args.year, model=args.model)
    return route_intent(args.text, ticker=ticker, year=args.year, policy=policy, seed=args.seed)


def _run(args: argparse.Namespace) -> int:
    policy = load_policy(args.policy)
    invocation_id = args.invocation_id or generate_invocation_id()

    if args.command == "analyze-10k":
        options = RunOptions(
            ticker=args.ticker.upper(),
            year=args.year,
            mode=args.mode,
            invocation_id=invocation_id,
            require=tuple(args.require),
            strict=args.strict,
            format=args.format,
            out_dir=args.out,
            url=args.url,
            file=args.file,
        )
        plan = build_workflow(options, policy=policy)
    else:
        route = _route(args, policy)
        options = RunOptions(
            ticker=route.ticker,
            year=route.year,
            mode="intent",
            invocation_id=invocation_id,
            require=route.required_sections,
            strict=False,
            format=args.format,
            out_dir=args.out,
            url=args.url,
            file=args.file,
        )
        plan = build_workflow(options, policy=policy).with_skipped(route.skipped_steps)

    try:
        outcome = run_workflow(options, plan)
    except RequiredStepFailure as exc:
        print(f'\nsecaudit: FATAL: required step "{exc.step}" failed in command mode', file=sys.stderr)
        print(f"secaudit: ledger written to {exc.ledger_path}", file=sys.stderr)
        hints = remediation_hints(exc.step, exc.message)
        if hints:
            print("\nRemediation suggestions:", file=sys.stderr)
            for hint in hints:
                print(f"  - {hint}", file=sys.stderr)
        return EXIT_VALIDATION_FAILURE

    if not outcome.ledger.passed:
        print(f"secaudit: run did not pass: {outcome.ledger.failure_reason}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        return _run(args)
    except (SecAuditError, OSError, ValueError) as exc:
        print(f"secaudit: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
