"""
Command-line runner: bootstrap configuration and logging, load the pipeline
config file, then list pipelines or run one and print the result as JSON.

    python -m agentflow --list
    python -m agentflow "Customer Support Pipeline" "How do I reset my password?"
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from agentflow.orchestrator.engine import create_engine
from agentflow.shared.config import load_config
from agentflow.shared.errors import PipelineError
from agentflow.shared.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agentflow", description="Run a configured pipeline")
    parser.add_argument("pipeline", nargs="?", help="Pipeline name (case-insensitive)")
    parser.add_argument("input", nargs="?", default="", help="User input passed to the pipeline")
    parser.add_argument("--config", help="Pipeline config JSON (default: PIPELINE_CONFIG_PATH)")
    parser.add_argument("--list", action="store_true", help="List configured pipelines and exit")
    return parser


async def _run(args: argparse.Namespace) -> int:
    config = load_config()
    configure_logging(config)

    engine = create_engine(config)
    await engine.load_config_file(args.config)

    if args.list:
        print(json.dumps(await engine.get_status(), indent=2))
        return 0

    try:
        result = await engine.run_pipeline(args.pipeline, args.input)
    except PipelineError as e:
        print(json.dumps({"error": type(e).__name__, "message": str(e)}), file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.list and not args.pipeline:
        parser.error("a pipeline name is required unless --list is given")
    return asyncio.run(_run(args))
