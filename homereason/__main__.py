"""CLI entry point for Home Reasoner.

Usage:
    # Start the API server
    python -m homereason serve
    HOMEREASON_PORT=9000 python -m homereason serve

    # Run forward chaining over a facts file (or stdin with "-")
    python -m homereason forward --facts facts.json

    # Prove a goal
    python -m homereason prove "TurnOn(Heater)" --facts facts.json

    # List the loaded rules
    python -m homereason --rules my_rules.json rules

The facts file holds the same object the API accepts under "facts".
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from homereason.errors import ReasonerError


def _load_rules(args: argparse.Namespace):
    from .logic import KBLoader
    from .service import get_settings, load_rules

    if args.rules:
        return KBLoader.load_file(args.rules)
    return load_rules(get_settings())


def _load_facts(path: str):
    from .schema import SensorFacts

    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    return SensorFacts.model_validate(data)


def _cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server."""
    import uvicorn

    from .service import create_app, get_settings

    settings = get_settings()
    app = create_app(settings, rules=_load_rules(args) if args.rules else None)

    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def _cmd_forward(args: argparse.Namespace) -> None:
    """Run forward chaining and print the result as JSON."""
    from .logic import ForwardChainer
    from .schema import ForwardResponse
    from .service import get_settings

    rules = _load_rules(args)
    facts = _load_facts(args.facts).to_fact_base()
    result = ForwardChainer(rules, max_passes=get_settings().max_forward_passes).run(facts)
    print(ForwardResponse.from_result(result).model_dump_json(indent=2))


def _cmd_prove(args: argparse.Namespace) -> None:
    """Prove a goal and print the result."""
    from .logic import BackwardChainer, parse_literal
    from .schema import BackwardResponse
    from .service import get_settings

    rules = _load_rules(args)
    goal = parse_literal(args.goal)
    facts = _load_facts(args.facts).to_fact_base()
    result = BackwardChainer(rules, max_depth=get_settings().max_proof_depth).prove(goal, facts)

    if args.tree:
        print(result.proof_tree.render())
        print(f"provable: {str(result.provable).lower()}")
    else:
        print(BackwardResponse.from_result(result).model_dump_json(indent=2))


def _cmd_rules(args: argparse.Namespace) -> None:
    """Print the loaded rules."""
    rules = _load_rules(args)
    print(f"# {len(rules)} rules from {rules.source}")
    for rule in rules:
        marker = " [action]" if rules.is_action(rule.consequent) else ""
        print(f"{rule.id}: {rule}{marker}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="homereason",
        description="Rule-based reasoning over smart-home sensor facts",
    )
    parser.add_argument("--rules", help="JSON rule file (default: configured modules)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Start the API server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_cmd_serve)

    forward = sub.add_parser("forward", help="Run forward chaining")
    forward.add_argument("--facts", default="-", help="Facts JSON file, '-' for stdin")
    forward.set_defaults(func=_cmd_forward)

    prove = sub.add_parser("prove", help="Prove a goal with backward chaining")
    prove.add_argument("goal", help="Ground goal, e.g. TurnOn(Heater)")
    prove.add_argument("--facts", default="-", help="Facts JSON file, '-' for stdin")
    prove.add_argument("--tree", action="store_true", help="Print an indented proof tree")
    prove.set_defaults(func=_cmd_prove)

    rules = sub.add_parser("rules", help="List the loaded rules")
    rules.set_defaults(func=_cmd_rules)

    args = parser.parse_args(argv)

    from .service import get_settings

    logging.basicConfig(
        level=(args.log_level or get_settings().log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        args.func(args)
    except (ReasonerError, ValidationError, json.JSONDecodeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
