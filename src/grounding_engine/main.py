"""Entrypoint: run the grounding engine over a single draft reply from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from grounding_engine.config.settings import Settings
from grounding_engine.engine import GroundingEngine
from grounding_engine.models.schemas import PreventionOptions
from grounding_engine.observability.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grounding-engine",
        description="Verify, detect and correct hallucinations in a conversational reply.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Run the full prevention pipeline on a reply")
    _add_turn_args(check)
    check.add_argument("--no-rag", action="store_true", help="Skip background grounding")
    check.add_argument("--no-reasoning", action="store_true", help="Skip claim verification")
    check.add_argument("--no-detection", action="store_true", help="Skip hallucination detection")

    detect = sub.add_parser("detect", help="Report hallucination flags without correcting")
    _add_turn_args(detect)

    retrieve = sub.add_parser("retrieve", help="Show grounding candidates for a query")
    retrieve.add_argument("query")
    retrieve.add_argument("--topic", action="append", default=[], dest="topics")
    retrieve.add_argument("--limit", type=int, default=5)
    return parser


def _add_turn_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("reply", help="Draft reply text")
    parser.add_argument("--input", required=True, dest="user_input", help="User message the reply answers")
    parser.add_argument(
        "--history", action="append", default=[], help="Prior conversation turn, oldest first (repeatable)"
    )


async def run(args: argparse.Namespace, settings: Settings) -> dict:
    engine = GroundingEngine(settings)
    await engine.init()
    try:
        if args.command == "detect":
            return engine.detect_hallucinations(args.reply, args.user_input, args.history).to_dict()
        if args.command == "retrieve":
            candidates = await engine.retrieve_enhanced(
                args.query, args.topics, PreventionOptions(limit=args.limit)
            )
            return {
                "query": args.query,
                "candidates": [
                    {"content": c.content, "score": round(c.score, 4), "metadata": c.metadata}
                    for c in candidates
                ],
            }
        options = PreventionOptions(
            enable_rag=not args.no_rag,
            enable_reasoning=not args.no_reasoning,
            enable_detection=not args.no_detection,
        )
        result = await engine.prevent_hallucinations(args.reply, args.user_input, args.history, options)
        return result.model_dump()
    finally:
        await engine.close()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = Settings()
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    output = asyncio.run(run(args, settings))
    json.dump(output, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
