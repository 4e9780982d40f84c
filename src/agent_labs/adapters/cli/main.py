"""
agent_labs.adapters.cli.main - CLI adapter for the agent backend.

Mirrors agent_labs.adapters.rest but for terminal use. Uses the same
ServiceFactory and agents as the REST API, so behaviour is identical.

Commands
--------
  serve        Run the REST/A2A API with uvicorn
  agents       List the agents of the catalogue
  ask          One-shot question to an agent
  chat         Interactive session with an agent (approval prompts included)
  thread       Show the stored messages of a thread
  memories     Show or forget what agents remember about a user
  sign         Issue a signed context id for a username
  index        Build/rebuild the policy vector stores
  workflow     Run the sequential or concurrent demo workflow

Usage
-----
  agent-labs agents
  agent-labs ask translation "Bonjour tout le monde"
  agent-labs chat customer-support
  agent-labs workflow sequential data/meeting-transcript.txt
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from agent_labs import __version__
from agent_labs.application.context import RequestContext
from agent_labs.application.dto import AgentRunResult, ApprovalDecision
from agent_labs.domain.exceptions import DomainError
from agent_labs.factory import ServiceFactory
from agent_labs.infrastructure.config import Settings, load_agents_config
from agent_labs.infrastructure.logging_setup import configure_logging

console = Console()
app = typer.Typer(
    help="Agent Labs CLI",
    add_completion=False,
    no_args_is_help=True,
)
workflow_app = typer.Typer(
    help="Run the multi-agent demo workflows.",
    no_args_is_help=True,
)
app.add_typer(workflow_app, name="workflow")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _settings() -> Settings:
    config = Settings.from_env()
    configure_logging(config.log_level, console=console)
    return config


async def _make_factory(*, rebuild_indexes: bool = False) -> ServiceFactory:
    """Create and fully initialise a ServiceFactory (spinner while loading)."""
    factory = ServiceFactory(_settings())
    with console.status(
        "[bold cyan]Loading agents and vector stores (first run may take a minute)…",
        spinner="dots",
    ):
        await factory.initialize(rebuild_indexes=rebuild_indexes)
    return factory


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(code=1)


def _print_result(result: AgentRunResult, title: str) -> None:
    if result.structured is not None:
        console.print(Panel(
            json.dumps(result.structured, indent=2, ensure_ascii=False),
            title=title,
            border_style="green",
        ))
    elif result.text:
        console.print(Panel(Markdown(result.text), title=title, border_style="green"))
    console.print(f"[dim]context: {result.context_id}[/dim]")


async def _resolve_approvals(agent, ctx: RequestContext, result: AgentRunResult) -> AgentRunResult:
    """Ask the user about every parked tool call until the turn completes."""
    while result.awaiting_approval:
        decisions = []
        for request in result.pending_approvals:
            args = ", ".join(f"{k}={v!r}" for k, v in request.arguments.items())
            approved = Confirm.ask(
                f"[bold yellow]Approve[/bold yellow] [bold]{request.tool_name}[/bold]({args})?",
                default=False,
            )
            decisions.append(ApprovalDecision(call_id=request.call_id, approved=approved))
        with console.status("[bold cyan]Thinking…", spinner="dots"):
            result = await agent.resume(ctx, decisions)
    return result


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"agent-labs v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: server and catalogue
# ---------------------------------------------------------------------------

@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address."),
    port: int = typer.Option(8000, help="Port."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
) -> None:
    """Run the REST/SSE + A2A API."""
    import uvicorn

    uvicorn.run("agent_labs.adapters.rest.app:app", host=host, port=port, reload=reload)


@app.command()
def agents() -> None:
    """List the agents of the catalogue."""
    config = _settings()
    try:
        configs = load_agents_config(config.agents_config_path)
    except DomainError as exc:
        _fail(exc)

    t = Table(box=box.SIMPLE, padding=(0, 2))
    t.add_column("Id", style="bold")
    t.add_column("Name")
    t.add_column("Tools")
    t.add_column("Memory")
    t.add_column("Streaming")
    for c in configs.values():
        t.add_row(
            c.agent_id,
            c.name,
            ", ".join(c.tools) or "[dim]-[/dim]",
            "yes" if c.memory else "no",
            "yes" if c.streaming else "no",
        )
    console.print(Panel(t, title="Agents", border_style="blue"))


# ---------------------------------------------------------------------------
# Commands: talking to agents
# ---------------------------------------------------------------------------

@app.command()
def ask(
    agent_id: str = typer.Argument(..., help="Agent id, e.g. translation."),
    message: str = typer.Argument(..., help="Message to send."),
    context_id: Optional[str] = typer.Option(
        None, "--context-id", "-c", help="Continue an existing conversation.",
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Username for agents with user memory.",
    ),
) -> None:
    """Send one message to an agent and print the answer."""
    async def _run() -> None:
        factory = await _make_factory()
        try:
            agent, _ = factory.create_agent_factory().get(agent_id)
            ctx = RequestContext(
                context_id=context_id,
                is_new_context=context_id is None,
                request_type="CLI",
                username=user,
            )
            with console.status("[bold cyan]Thinking…", spinner="dots"):
                result = await agent.run(message, ctx=ctx)
            result = await _resolve_approvals(agent, ctx, result)
        except DomainError as exc:
            _fail(exc)
        _print_result(result, title=agent.name)

    asyncio.run(_run())


@app.command()
def chat(
    agent_id: str = typer.Argument(..., help="Agent id, e.g. customer-support."),
    context_id: Optional[str] = typer.Option(
        None, "--context-id", "-c", help="Continue an existing conversation.",
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Username for agents with user memory.",
    ),
) -> None:
    """Start an interactive chat session with an agent."""
    async def _run() -> None:
        factory = await _make_factory()
        try:
            agent, _ = factory.create_agent_factory().get(agent_id)
        except DomainError as exc:
            _fail(exc)

        console.print(Panel(
            f"[bold]{agent.name}[/bold]\n"
            f"{agent.description}\n"
            "Type your message, or [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        current_context = context_id
        while True:
            try:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                console.print("[dim]Goodbye![/dim]")
                break

            if not user_input.strip():
                continue

            ctx = RequestContext(
                context_id=current_context,
                is_new_context=current_context is None,
                request_type="CLI",
                username=user,
            )
            try:
                with console.status("[bold cyan]Thinking…", spinner="dots"):
                    result = await agent.run(user_input, ctx=ctx)
                result = await _resolve_approvals(agent, ctx, result)
            except DomainError as exc:
                console.print(f"[bold red]Error:[/bold red] {exc}")
                continue

            current_context = result.context_id or current_context
            console.print()
            _print_result(result, title=agent.name)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: threads and context ids
# ---------------------------------------------------------------------------

@app.command()
def thread(
    thread_id: str = typer.Argument(..., help="Thread (context) id."),
) -> None:
    """Show every stored message of a thread."""
    async def _run() -> None:
        factory = ServiceFactory(_settings())
        await factory.initialize_database()
        try:
            history = await factory.create_thread_history_service().get_thread(thread_id)
        except (DomainError, ValueError) as exc:
            _fail(exc)

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Timestamp", style="dim")
        t.add_column("Role", style="bold")
        t.add_column("Message")
        for m in history.messages:
            t.add_row(str(m.timestamp), m.role, m.message_text)
        console.print(Panel(
            t,
            title=f"Thread {thread_id} ({history.message_count} messages)",
            border_style="blue",
        ))

    asyncio.run(_run())


@app.command()
def memories(
    username: str = typer.Argument(..., help="User whose memories to show."),
    forget: bool = typer.Option(False, "--forget", help="Delete every memory of the user."),
) -> None:
    """Show, or forget, what agents remember about a user."""
    async def _run() -> None:
        factory = ServiceFactory(_settings())
        await factory.initialize_database()
        repo = factory.create_user_memory_repository()
        try:
            if forget:
                removed = await repo.delete_memories(username)
                console.print(f"Forgot {removed} memory(ies) of [bold]{username}[/bold]")
                return
            items = await repo.get_memories(username)
        except (DomainError, ValueError) as exc:
            _fail(exc)

        if not items:
            console.print(f"[dim]Nothing remembered about {username}.[/dim]")
            return
        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Learned", style="dim")
        t.add_column("Memory")
        for m in items:
            t.add_row(m.created_at.isoformat(timespec="seconds") if m.created_at else "", m.memory)
        console.print(Panel(t, title=f"Memories of {username}", border_style="blue"))

    asyncio.run(_run())


@app.command()
def sign(
    username: str = typer.Argument(..., help="Owner of the new conversation."),
) -> None:
    """Issue a signed "username|timestamp" context id."""
    factory = ServiceFactory(_settings())
    try:
        context_id, signature = factory.create_context_signer().new_context_id(username)
    except (DomainError, ValueError) as exc:
        _fail(exc)
    console.print(f"[bold]contextId[/bold]  {context_id}")
    console.print(f"[bold]signature[/bold]  {signature}")


@app.command()
def index() -> None:
    """Build or rebuild the policy vector stores from the JSON documents."""
    async def _run() -> None:
        try:
            factory = await _make_factory(rebuild_indexes=True)
        except (DomainError, FileNotFoundError) as exc:
            _fail(exc)

        t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
        t.add_column("Collection", style="bold")
        t.add_column("Sections")
        for key, count in factory.indexed_collections.items():
            t.add_row(key, str(count) if count else "[dim]loaded[/dim]")
        console.print(Panel(t, title="Vector stores", border_style="green"))

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: workflows
# ---------------------------------------------------------------------------

async def _run_workflow(kind: str, text: str) -> None:
    factory = await _make_factory()
    try:
        workflow = factory.create_workflow(kind)
        with console.status(f"[bold cyan]Running {workflow.name}…", spinner="dots"):
            messages = await workflow.run([text])
    except DomainError as exc:
        _fail(exc)

    console.print("[bold]Results:[/bold]")
    for m in messages:
        if m.role == "user":
            continue
        console.print(Panel(Markdown(m.text), title=f"{m.role} - {m.author}", border_style="green"))


@workflow_app.command("sequential")
def workflow_sequential(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Meeting transcript."),
) -> None:
    """Summarize a transcript, then extract its action items."""
    text = file.read_text(encoding="utf-8")
    console.print(f"[dim]Loaded transcript: {len(text)} characters[/dim]")
    asyncio.run(_run_workflow("sequential", text))


@workflow_app.command("concurrent")
def workflow_concurrent(
    message: str = typer.Argument(..., help="Customer message."),
) -> None:
    """Send one after-sales message to the return, refund and follow-up agents."""
    asyncio.run(_run_workflow("concurrent", message))


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Agent Labs CLI"""


if __name__ == "__main__":
    app()
