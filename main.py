"""
ADP Actor Bridge — Main CLI Entrypoint.

Wires the transport and the orchestrator and runs one command:
  discover <actor>           show the actor's ADP handler table
  execute  <actor> <text>    translate free text and dispatch it
  inspect  <actor> <text>    show every extraction strategy side by side
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from intent.handler_matcher import HandlerMatcher
from orchestrator.orchestrator import Orchestrator
from protocol.adp import find_handler
from shared.config import EngineConfig, load_engine_config
from shared.models import ActorMetadata, CommunicationResult, TranslationInspection
from transport.base import Transport
from transport.http_gateway import HttpGatewayTransport

# ─── Configuration ──────────────────────────────────────────────

logger = logging.getLogger(__name__)

# Ensure local .env is loaded before reading runtime configuration.
load_dotenv(override=False)

ADP_GATEWAY_URL = os.getenv("ADP_GATEWAY_URL", "https://cu.ao-testnet.xyz")
ADP_MESSAGE_URL = os.getenv("ADP_MESSAGE_URL", "").strip() or None
ADP_GATEWAY_TIMEOUT_SECONDS = float(os.getenv("ADP_GATEWAY_TIMEOUT_SECONDS", "30"))
ADP_CREDENTIAL = os.getenv("ADP_CREDENTIAL", "").strip() or None
LOG_LEVEL = logging.INFO

# ─── Rich Console ───────────────────────────────────────────────

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_orchestrator(
    config: EngineConfig | None = None,
    transport: Transport | None = None,
) -> Orchestrator:
    """Wire the gateway transport into an Orchestrator."""
    if transport is None:
        transport = HttpGatewayTransport(
            ADP_GATEWAY_URL,
            message_url=ADP_MESSAGE_URL,
            timeout=ADP_GATEWAY_TIMEOUT_SECONDS,
        )
    return Orchestrator(transport, config=config or load_engine_config())


# ─── Rendering ──────────────────────────────────────────────────


def render_metadata(actor_id: str, metadata: ActorMetadata) -> None:
    table = Table(title=f"ADP handlers of {metadata.name or actor_id}", box=box.ROUNDED)
    table.add_column("Action", style="bold cyan")
    table.add_column("Category")
    table.add_column("Parameters")
    table.add_column("Description", style="dim")
    for handler in metadata.handlers:
        params = ", ".join(
            f"{p.name}:{p.type}{'*' if p.required else ''}" for p in handler.parameters
        ) or "-"
        table.add_row(handler.action, handler.category, params, handler.description)
    console.print(table)


def render_result(result: CommunicationResult) -> None:
    if result.success:
        table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
        table.add_row("Handler", result.handler_used or "-")
        table.add_row("Method", result.method_used or "-")
        table.add_row("Parameters", json.dumps(result.parameters_used, default=str))
        table.add_row("Confidence", f"{result.confidence:.2f}" if result.confidence is not None else "-")
        if result.fallback_used:
            table.add_row("Fallback", f"{result.fallback_method} ({result.parameter_format})")
        table.add_row("Transmission", result.transmission_strategy or "-")
        console.print(Panel(table, title="✅ Dispatched", border_style="green", box=box.ROUNDED))
        data = result.data if isinstance(result.data, str) else json.dumps(result.data, indent=2, default=str)
        console.print(Panel(Text(data or ""), title="Response", border_style="dim", box=box.ROUNDED))
        for warning in result.warnings:
            console.print(f"[yellow]⚠ {warning}[/yellow]")
        return

    lines = [f"[bold red]{result.error}[/bold red]", f"Category: {result.error_category}"]
    if result.available_handlers:
        lines.append(f"Available handlers: {', '.join(result.available_handlers)}")
    lines.extend(f"• {fix}" for fix in result.suggested_fixes)
    if result.suggested_alternatives:
        lines.append("")
        lines.append("[bold]Try instead:[/bold]")
        lines.extend(f"  {alt}" for alt in result.suggested_alternatives)
    console.print(Panel("\n".join(lines), title="❌ Request failed", border_style="red", box=box.ROUNDED))


def render_inspection(inspection: TranslationInspection) -> None:
    table = Table(title=f"Extraction strategies for {inspection.handler}", box=box.ROUNDED)
    table.add_column("Strategy", style="bold")
    table.add_column("Success")
    table.add_column("Parameters")
    table.add_column("Errors", style="dim")
    for attempt in inspection.attempts:
        marker = "★ " if attempt.strategy == inspection.best_strategy else ""
        table.add_row(
            f"{marker}{attempt.strategy}",
            "[green]yes[/green]" if attempt.success else "[red]no[/red]",
            json.dumps(attempt.parameters, default=str),
            "\n".join(attempt.errors),
        )
    console.print(table)

    validation = inspection.validation
    status = "[green]valid[/green]" if validation.valid else "[red]invalid[/red]"
    body = [f"Validation: {status}"]
    body.extend(f"[red]✗ {e}[/red]" for e in validation.errors)
    body.extend(f"[yellow]⚠ {w}[/yellow]" for w in validation.warnings)
    body.append("")
    body.extend(f"• {tip}" for tip in inspection.troubleshooting)
    console.print(Panel("\n".join(body), title="🔎 Verdict", border_style="cyan", box=box.ROUNDED))


# ─── Commands ───────────────────────────────────────────────────


async def cmd_discover(orchestrator: Orchestrator, actor_id: str) -> int:
    metadata = await orchestrator.discover(actor_id, ADP_CREDENTIAL)
    if metadata is None:
        console.print(f"[red]Actor {actor_id} did not answer with an ADP document[/red]")
        return 1
    render_metadata(actor_id, metadata)
    return 0


async def cmd_execute(orchestrator: Orchestrator, actor_id: str, text: str) -> int:
    result = await orchestrator.execute_request(actor_id, text, ADP_CREDENTIAL)
    render_result(result)
    return 0 if result.success else 1


async def cmd_inspect(orchestrator: Orchestrator, actor_id: str, text: str, action: str | None) -> int:
    metadata = await orchestrator.discover(actor_id, ADP_CREDENTIAL)
    if metadata is None:
        console.print(f"[red]Actor {actor_id} did not answer with an ADP document[/red]")
        return 1

    if action:
        handler = find_handler(metadata, action)
    else:
        match = HandlerMatcher().match(text, metadata.handlers)
        handler = match.handler if match else None
    if handler is None:
        console.print(f"[red]No handler for this request. Available: {', '.join(metadata.handler_names)}[/red]")
        return 1

    render_inspection(await orchestrator.inspect_translation(text, handler))
    guidance = orchestrator.guidance(text, handler)
    console.print(Panel(
        "\n".join([guidance.primary_suggestion, *guidance.examples]),
        title="💡 Suggestion",
        border_style="yellow",
        box=box.ROUNDED,
    ))
    return 0


def main() -> None:
    """Entrypoint with CLI args."""
    parser = argparse.ArgumentParser(description="ADP Actor Bridge")
    parser.add_argument("--verbose", action="store_true", help="Verbose diagnostics and debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    discover_parser = subparsers.add_parser("discover", help="Show an actor's ADP handlers")
    discover_parser.add_argument("actor", help="Actor (process) id")

    execute_parser = subparsers.add_parser("execute", help="Translate a request and dispatch it")
    execute_parser.add_argument("actor", help="Actor (process) id")
    execute_parser.add_argument("text", help="Free-text request, e.g. 'add 5 and 3'")

    inspect_parser = subparsers.add_parser("inspect", help="Show how a request would be translated")
    inspect_parser.add_argument("actor", help="Actor (process) id")
    inspect_parser.add_argument("text", help="Free-text request")
    inspect_parser.add_argument("--handler", default=None, help="Handler action to inspect (default: best match)")

    args = parser.parse_args()
    setup_logging(args.verbose)

    orchestrator = build_orchestrator()
    if args.verbose:
        orchestrator.set_verbose(True)

    if args.command == "discover":
        code = asyncio.run(cmd_discover(orchestrator, args.actor))
    elif args.command == "execute":
        code = asyncio.run(cmd_execute(orchestrator, args.actor, args.text))
    elif args.command == "inspect":
        code = asyncio.run(cmd_inspect(orchestrator, args.actor, args.text, args.handler))
    else:
        parser.print_help()
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
