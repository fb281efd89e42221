"""
Model Registry Server CLI
Command-line interface for serving the registry and querying it locally
"""

import argparse
import asyncio
import json
import logging

from src.config.settings import settings, configure_logging
from src.services.llm import ModelHint, ModelSelectionPreferences, ensure_model_registry

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    logger.info(f"Starting Model Registry Server on {args.host}:{args.port}")

    uvicorn.run(
        "src.app_factory:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level
    )
    return 0


def _list(args: argparse.Namespace) -> int:
    registry = asyncio.run(ensure_model_registry(settings))

    if args.provider:
        models = registry.get_models_by_provider(args.provider, include_hidden=args.include_hidden)
    else:
        models = registry.get_all_models(include_hidden=args.include_hidden)

    if args.json:
        print(json.dumps([model.to_dict() for model in models], indent=2))
        return 0

    for model in models:
        flags = []
        if model.hidden:
            flags.append("hidden")
        if model.local_only:
            flags.append("local")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{model.provider:<10} {model.id:<36} {model.display_name}{suffix}")
    return 0


def _select(args: argparse.Namespace) -> int:
    registry = asyncio.run(ensure_model_registry(settings))

    if args.prefer:
        registry.set_preferred_providers(args.prefer)

    preferences = None
    if args.hint or args.cost is not None or args.speed is not None or args.intelligence is not None:
        preferences = ModelSelectionPreferences(
            cost_priority=args.cost,
            speed_priority=args.speed,
            intelligence_priority=args.intelligence,
            hints=[ModelHint(name=hint) for hint in args.hint or []],
        )

    print(registry.select_model_by_preferences(preferences))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Model Registry Server - LLM model registry and selection")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"], help="Log level")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.HOST, help=f"Host to bind (default: {settings.HOST})")
    serve.add_argument("--port", type=int, default=settings.PORT, help=f"Port to bind (default: {settings.PORT})")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.set_defaults(handler=_serve)

    list_cmd = subparsers.add_parser("list", help="List registered models")
    list_cmd.add_argument("--provider", help="Only models of this provider")
    list_cmd.add_argument("--include-hidden", action="store_true", help="Include hidden models")
    list_cmd.add_argument("--json", action="store_true", help="Print JSON records")
    list_cmd.set_defaults(handler=_list)

    select = subparsers.add_parser("select", help="Select a model for preferences")
    select.add_argument("--hint", action="append", help="Model hint; may be repeated, tried in order")
    select.add_argument("--cost", type=float, help="Cost priority in [0, 1]")
    select.add_argument("--speed", type=float, help="Speed priority in [0, 1]")
    select.add_argument("--intelligence", type=float, help="Intelligence priority in [0, 1]")
    select.add_argument("--prefer", action="append", help="Preferred provider; may be repeated")
    select.set_defaults(handler=_select)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if not getattr(args, "handler", None):
        parser.print_help()
        return 1

    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
