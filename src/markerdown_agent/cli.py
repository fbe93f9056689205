"""CLI entry point for markerdown-agent."""

import logging
import threading
from pathlib import Path

import click
import uvicorn

from .orchestrator import AgentOrchestrator
from .summarize import summarize as run_summarize

folder_option = click.option(
    "--dir", "working_dir",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Folder the assistant works in.",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Chat with the Claude CLI about a folder of notes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web API."""
    click.echo(f"Starting markerdown-agent on http://{host}:{port}")
    uvicorn.run("markerdown_agent.server:app", host=host, port=port, reload=False)


@main.command()
@click.argument("message")
@folder_option
@click.option("--session", "session_id", default=None, help="Resume this session id.")
@click.option("--file", "current_file", default=None, help="File currently open in the viewer.")
def chat(message: str, working_dir: str, session_id: str | None, current_file: str | None):
    """Send one message and print the assistant's reply."""
    working_dir = str(Path(working_dir).resolve())
    orchestrator = AgentOrchestrator()
    done = threading.Event()
    outcome = {}

    def on_complete(completion):
        outcome["completion"] = completion
        done.set()

    unsubscribe = orchestrator.subscribe(on_complete)
    try:
        session_id = orchestrator.send_message(message, working_dir, session_id, current_file)
        try:
            done.wait()
        except KeyboardInterrupt:
            orchestrator.cancel()
            done.wait()
            raise click.Abort()
    finally:
        unsubscribe()

    completion = outcome["completion"]
    if completion.visible_error:
        raise click.ClickException(completion.visible_error)

    replies = [m for m in orchestrator.load_history(working_dir, session_id) if m.role == "assistant"]
    if replies:
        click.echo(replies[-1].content)
    click.echo(f"\nsession: {session_id}", err=True)


@main.command()
@folder_option
def sessions(working_dir: str):
    """List chats for a folder, newest first."""
    working_dir = str(Path(working_dir).resolve())
    for session in AgentOrchestrator().list_sessions(working_dir):
        click.echo(f"{session.session_id}  {session.timestamp}  {session.first_message}")


@main.command()
@click.argument("session_id")
@folder_option
def history(session_id: str, working_dir: str):
    """Print the full transcript of a chat."""
    working_dir = str(Path(working_dir).resolve())
    messages = AgentOrchestrator().load_history(working_dir, session_id)
    if not messages:
        click.echo("No history yet.")
        return
    for msg in messages:
        click.echo(f"## {msg.role.capitalize()}\n\n{msg.content}\n")


@main.command()
@click.argument("source")
@click.argument("output")
@click.option("--prompt", default="Summarize the key points.", help="Summary instructions.")
@folder_option
def summarize(source: str, output: str, prompt: str, working_dir: str):
    """Summarize SOURCE into the markdown file OUTPUT."""
    result = run_summarize(source, output, prompt, str(Path(working_dir).resolve()))
    if not result.success:
        raise click.ClickException(result.error or "Summarization failed")
    click.echo(f"Wrote {output}")
