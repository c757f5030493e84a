# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""promptlab CLI: generate, judge and rank prompt variations from the terminal."""
import argparse
import asyncio
import json
import logging
import math
import sys


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="promptlab",
        description="Expand a base prompt into variations, judge them with several LLMs, and rank them.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    sub = parser.add_subparsers(dest="command")

    # promptlab run "a patient boxing coach"
    run_p = sub.add_parser("run", help="Run the full workflow and print the leaderboard")
    run_p.add_argument("prompt", nargs="+", help="Base prompt to expand")
    run_p.add_argument("--provider", "-p", help="Generation provider (openai, anthropic, ollama)")
    run_p.add_argument("--model", "-m", help="Generation model name")
    run_p.add_argument("--api-key", "-k", help="API key for the generation provider (or use env vars)")
    run_p.add_argument("--criteria", "-c", help="YAML file with evaluation criteria")
    run_p.add_argument("--pacing", type=float, help="Seconds to wait between cells")
    run_p.add_argument("--json", action="store_true", help="Output raw JSON")

    # promptlab criteria
    crit_p = sub.add_parser("criteria", help="List evaluation criteria")
    crit_p.add_argument("--file", "-f", help="YAML file with evaluation criteria")

    # promptlab version
    sub.add_parser("version", help="Show version and optional dependency status")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "version":
        _cmd_version()
    elif args.command == "criteria":
        _cmd_criteria(args)
    elif args.command == "run":
        _cmd_run(args)
    else:
        parser.print_help()


_RESET = "\033[0m"
_DIM = "\033[90m"
_BOLD = "\033[1m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"


def _cmd_version():
    from promptlab import __version__

    print("  {}{}promptlab v{}{}".format(_BOLD, _CYAN, __version__, _RESET))

    for label, module in (("openai", "openai"), ("anthropic", "anthropic")):
        try:
            mod = __import__(module)
            ver = getattr(mod, "__version__", "") or ""
            print("  {}✔{} {} {}{}{}".format(_GREEN, _RESET, label, _DIM, ver, _RESET))
        except ImportError:
            print("  {}✘{} {} {}(not installed){}".format(_YELLOW, _RESET, label, _DIM, _RESET))


def _cmd_criteria(args):
    import yaml
    from pydantic import ValidationError

    from promptlab.evaluation.criteria import load_criteria

    try:
        criteria = load_criteria(args.file)
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    for c in criteria:
        print("  {}{}{} (weight {:g}, {}/{})".format(
            _BOLD, c.name, _RESET, c.weight, c.llm_config.provider.value, c.llm_config.model,
        ))
        if c.description:
            print("    {}{}{}".format(_DIM, c.description, _RESET))


def _progress_line(percent: float) -> None:
    sys.stderr.write("\r  {}Evaluating... {:5.1f}%{}".format(_DIM, percent, _RESET))
    if percent >= 100:
        sys.stderr.write("\n")
    sys.stderr.flush()


def _cmd_run(args):
    import yaml
    from pydantic import ValidationError

    from promptlab.config import LabConfig
    from promptlab.errors import PromptLabError
    from promptlab.evaluation.criteria import load_criteria
    from promptlab.workflow import PromptWorkflow

    config = LabConfig.from_env()
    if args.provider:
        config.provider = args.provider
    if args.model:
        config.model = args.model
    if args.pacing is not None:
        config.pacing_delay = args.pacing
    config.__post_init__()
    if args.api_key:
        if config.provider == "anthropic":
            config.anthropic_api_key = args.api_key
        else:
            config.openai_api_key = args.api_key

    try:
        criteria = load_criteria(args.criteria) if args.criteria else None
        workflow = PromptWorkflow.from_config(config)
        board = asyncio.run(workflow.run(
            " ".join(args.prompt), criteria=criteria, on_progress=_progress_line,
        ))
    except (PromptLabError, FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps([entry.model_dump(mode="json") for entry in board], indent=2, ensure_ascii=False))
        return

    print(format_leaderboard(board))


def format_leaderboard(board) -> str:
    """Human-readable leaderboard table."""
    if not board:
        return "No variations."
    lines = []
    for rank, entry in enumerate(board, 1):
        avg = "  n/a" if math.isnan(entry.average_score) else "{:5.2f}".format(entry.average_score)
        first_line = entry.content.strip().splitlines()[0] if entry.content.strip() else ""
        lines.append("{:>2}. {}  variation {}  {}".format(rank, avg, entry.variation_id, first_line[:70]))
        if entry.scores:
            lines.append("      " + "  ".join(
                "{}={:.1f}".format(name, score) for name, score in entry.scores.items()))
        if entry.degraded_count:
            lines.append("      {} fallback judgment(s) included".format(entry.degraded_count))
    return "\n".join(lines)


if __name__ == "__main__":
    main()
