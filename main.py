#!/usr/bin/env python3
"""
SuperAgent - Tool-Orchestrated Coding Agent
===========================================

Main entry point.

Usage:
    python main.py --list-tools             # Show registered tools
    python main.py --task "Add a README"    # Run one task and exit
    python main.py --mock-llm               # Interactive mode with a scripted model
    python main.py --help                   # Show help
"""

import argparse
import asyncio
import itertools
import logging
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from api.client import MockModelClient, ModelReply
from bridge.browser import AutonomousBridge, BrowserConfig
from core.errors import ConfigError
from core.orchestrator import SuperAgent, Task, TaskResult
from core.prompt_compiler import PromptCompiler
from core.providers import LLMProviderRouter, ProviderConfig
from infra.config import AgentConfig, load_config
from infra.logging import configure_logging
from tools.builtin import CommandRunner, create_default_tools
from workspace.engine import WorkspaceEngine
from workspace.patch import PatchDiffEngine


console = Console()


def build_agent(config: AgentConfig, use_mock: bool = False) -> SuperAgent:
    """Wire the registry, helpers and model client from configuration."""
    router = LLMProviderRouter()
    for provider in config.providers:
        router.configure_provider(provider.name, ProviderConfig(
            name=provider.name,
            api_key=provider.resolve_api_key(),
            base_url=provider.base_url,
            model=provider.model,
        ))

    if use_mock:
        client = MockModelClient([ModelReply(text="(mock model: no tool calls)")])
    else:
        client = router.create_client(config.default_provider, config.default_model)

    workspace = WorkspaceEngine(config.workspace_path)
    patcher = PatchDiffEngine()
    bridge = AutonomousBridge(BrowserConfig(
        headless=config.browser.headless,
        user_agent=config.browser.user_agent,
        timeout_seconds=config.browser.timeout_seconds,
    ))
    registry = create_default_tools(
        workspace,
        patcher=patcher,
        bridge=bridge,
        runner=CommandRunner(
            cwd=str(workspace.root),
            timeout_seconds=config.tools.command_timeout_seconds
        ),
        strict=config.tools.strict_validation,
        search_results=config.tools.search_results,
    )
    if config.tools.definitions_path:
        # Declared schemas replace the defaults of the same name
        handlers = {schema.name: registry.get_handler(schema.name) for schema in registry.list_tools()}
        count = registry.load_from_yaml(config.tools.definitions_path, handlers)
        console.print(f"[dim]Loaded {count} tool definitions from {config.tools.definitions_path}[/dim]")

    compiler = PromptCompiler(client, temperature=config.temperature, max_tokens=config.max_tokens)
    return SuperAgent(
        config,
        registry,
        compiler,
        workspace=workspace,
        bridge=bridge,
        patcher=patcher,
        router=router,
    )


def print_tools(agent: SuperAgent) -> None:
    table = Table(title="Registered tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Description")
    table.add_column("Required", style="yellow")
    for schema in agent.list_tools():
        table.add_row(schema.name, schema.description, ", ".join(schema.required) or "-")
    console.print(table)


def print_result(result: TaskResult) -> None:
    for record in result.tool_calls:
        mark = "[green]✓[/green]" if record.success else "[red]✗[/red]"
        detail = record.result if record.success else record.error
        console.print(f"  {mark} {record.tool_name} [dim]{record.call_id}[/dim]: {detail}")

    if result.success:
        console.print(f"[bold green]Result:[/bold green] {result.result}")
    else:
        console.print(f"[bold red]Error:[/bold red] {result.error}")


async def run_text_mode(agent: SuperAgent) -> None:
    """Read tasks from the console until quit."""
    console.print(Panel(
        "Type a task to run it. Commands: tools, status, quit",
        title="SuperAgent",
        border_style="blue"
    ))

    for number in itertools.count(1):
        try:
            text = console.input("\n[bold cyan]>[/bold cyan] ").strip()
        except (KeyboardInterrupt, EOFError):
            break

        if not text:
            continue
        if text.lower() in ("quit", "exit", "q"):
            break
        if text.lower() == "tools":
            print_tools(agent)
            continue
        if text.lower() == "status":
            console.print(agent.get_status())
            continue

        print_result(await agent.execute_task(Task(id=f"task-{number}", description=text)))


async def run(args: argparse.Namespace, config: AgentConfig) -> int:
    # Listing tools never calls the model, so it needs no provider credentials
    agent = build_agent(config, use_mock=args.mock_llm or args.list_tools)

    if args.list_tools:
        print_tools(agent)
        return 0

    await agent.initialize()
    try:
        if args.task:
            result = await agent.execute_task(Task(id="task-1", description=args.task))
            print_result(result)
            return 0 if result.success else 1

        await run_text_mode(agent)
        return 0
    finally:
        await agent.shutdown()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SuperAgent - Tool-Orchestrated Coding Agent"
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--task", "-t",
        help="Run a single task and exit"
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="List registered tools and exit"
    )
    parser.add_argument(
        "--mock-llm",
        action="store_true",
        help="Use a scripted model (no API key needed)"
    )
    parser.add_argument(
        "--log-level", "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    args = parser.parse_args()

    logger = logging.getLogger("superagent.main")

    try:
        config = load_config(args.config)
        configure_logging(level=getattr(logging, args.log_level), log_dir=config.log_dir)
        return asyncio.run(run(args, config))
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return 2
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
