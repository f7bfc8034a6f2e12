"""
homeagent.cli - Command-Line Interface

Runs natural-language home commands and inspects the available tools.

Usage:
    python -m homeagent.cli run "Turn on the kitchen lights" --device "Kitchen lights" --device TV
    python -m homeagent.cli run "Is it going to rain?" --validate --attempts 3
    python -m homeagent.cli run "Dinner is ready" --json-actions
    python -m homeagent.cli tools --device TV
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from homeagent.core.context import ExecutionContext
from homeagent.core.engine import CommandEngine
from homeagent.core.planner import JsonActionPlanner, LLMPlanner, LLMValidator
from homeagent.core.tools import LocalToolProvider, ToolRegistry
from homeagent.core.tools.mcp_bridge import MCPBridge
from homeagent.core.trace import TraceEventKind
from homeagent.llm import LLMService
from homeagent.models import Device
from homeagent.settings import HomeAgentSettings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_DEVICES = ["TV", "Kitchen lights", "A/C", "Speaker"]


def _devices(args: argparse.Namespace) -> list[Device]:
    return [Device(name=name) for name in (args.device or DEFAULT_DEVICES)]


async def _run_command(args: argparse.Namespace, settings: HomeAgentSettings) -> int:
    """Execute one command and print the CommandResponse as JSON."""
    devices = _devices(args)
    llm = LLMService(settings.build_llm_config())
    planner = JsonActionPlanner(llm) if args.json_actions else LLMPlanner(llm)
    policy = settings.build_policy(
        max_attempts=args.attempts,
        enable_validation=True if args.validate else None,
    )

    async with MCPBridge() as bridge:
        connections = await bridge.connect_all(settings.mcp_servers)
        registry = ToolRegistry(
            LocalToolProvider(devices),
            connections,
            concurrent=settings.mcp_concurrent_enumeration,
        )
        engine = CommandEngine(registry, planner, LLMValidator(llm), policy)
        response = await engine.execute_command(args.text, devices, system_prompt=args.system_prompt)

    print(response.model_dump_json(indent=2))
    return 1 if response.error else 0


async def _list_tools(args: argparse.Namespace, settings: HomeAgentSettings) -> int:
    """Print the merged tool list."""
    devices = _devices(args)

    async with MCPBridge() as bridge:
        connections = await bridge.connect_all(settings.mcp_servers)
        registry = ToolRegistry(
            LocalToolProvider(devices),
            connections,
            concurrent=settings.mcp_concurrent_enumeration,
        )
        context = ExecutionContext(devices=devices)
        tools = await registry.enumerate(context)

    listing = [
        {"name": t.name, "provider": t.provider_id, "description": t.description} for t in tools
    ]
    errors = [e.model_dump(mode="json") for e in context.trace.of_kind(TraceEventKind.ERROR)]
    print(json.dumps({"tools": listing, "errors": errors}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="homeagent",
        description="homeagent - Tool-Orchestrating Home Assistant",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: HOMEAGENT_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    device_help = "Device name (repeatable; defaults to a demo household)"

    # run
    run_p = subparsers.add_parser("run", help="Execute a natural-language command")
    run_p.add_argument("text", help="Command text, e.g. 'Turn on the TV'")
    run_p.add_argument("--device", action="append", metavar="NAME", help=device_help)
    run_p.add_argument("--validate", action="store_true", help="Enable yes/no self-validation")
    run_p.add_argument("--attempts", type=int, default=None, help="Maximum attempts (default: 3)")
    run_p.add_argument("--system-prompt", default=None, help="Override the system prompt")
    run_p.add_argument(
        "--json-actions",
        action="store_true",
        help="Ask for a JSON list of actions instead of using tool calling",
    )
    run_p.set_defaults(func=_run_command)

    # tools
    tools_p = subparsers.add_parser("tools", help="List local and MCP tools")
    tools_p.add_argument("--device", action="append", metavar="NAME", help=device_help)
    tools_p.set_defaults(func=_list_tools)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    level = args.log_level or settings.log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        sys.exit(asyncio.run(args.func(args, settings)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
