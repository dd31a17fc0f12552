"""Command-line interface for the HostPulse agent."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .agent import run_agent
from .config import AgentConfig, ConfigError
from .logger import setup_logging

app = typer.Typer(
    name="hostpulse",
    help="Host telemetry agent that forwards metrics to an ingestion endpoint",
    add_completion=False,
)

console = Console()


@app.command()
def run(
    url: Optional[str] = typer.Option(None, "--url", help="Base URL (env OMNIPULSE_URL)"),
    token: Optional[str] = typer.Option(None, "--token", help="Agent token (env AGENT_TOKEN)"),
    interval: Optional[int] = typer.Option(None, "--interval", help="Interval in seconds (env INTERVAL_SECONDS)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
):
    """Run the agent in the foreground until interrupted."""
    try:
        config = AgentConfig.load(
            config_path=str(config_path) if config_path else None,
            url=url,
            token=token,
            interval=interval,
        )
    except (ConfigError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    setup_logging(config.log_level, config.log_file)
    run_agent(config)


@app.command()
def version():
    """Show the agent version."""
    console.print(f"hostpulse-agent {__version__}")


if __name__ == "__main__":
    app()
