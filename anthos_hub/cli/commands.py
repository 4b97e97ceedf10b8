"""CLI commands for anthos-hub."""

from pathlib import Path
from typing import Optional

import typer
from google.auth.exceptions import DefaultCredentialsError
from kubernetes.config import ConfigException
from rich.console import Console
from rich.table import Table

from anthos_hub.cancellation import CancelToken
from anthos_hub.config import Config, load_config, save_default_config
from anthos_hub.errors import HubError
from anthos_hub.lifecycle import MembershipLifecycleOrchestrator
from anthos_hub.utils import format_error, setup_logging

app = typer.Typer(
    name="anthos-hub",
    help="anthos-hub: register Kubernetes clusters with the Hub and manage the connect agent",
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging, also written to the debug log file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Abort the workflow after this many seconds"),
) -> None:
    """anthos-hub CLI entrypoint."""
    config = load_config(config_path)
    if debug:
        config.logging.debug = True
    setup_logging(config.logging.debug, config.log_path)

    ctx.obj = {
        "config": config,
        "config_path": config_path,
        "timeout": timeout if timeout is not None else config.polling.timeout_seconds,
    }


def _config(ctx: typer.Context) -> Config:
    return ctx.obj["config"]


def _cancel_token(ctx: typer.Context) -> CancelToken:
    return CancelToken.with_timeout(ctx.obj["timeout"])


def _resolve(ctx: typer.Context, project: Optional[str], membership: Optional[str]) -> str:
    """Apply command-line overrides and return the membership ID."""
    config = _config(ctx)
    if project:
        config.hub.project = project
    membership_id = membership or config.membership.membership_id

    if not config.hub.project:
        console.print("[red]Error:[/red] No project configured. Use --project or set hub.project.")
        raise typer.Exit(1)
    if not membership_id:
        console.print("[red]Error:[/red] No membership ID configured. Use --membership or set membership.membership_id.")
        raise typer.Exit(1)
    return membership_id


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


@app.command()
def onboard(ctx: typer.Context) -> None:
    """Write a default configuration file."""
    path = save_default_config(ctx.obj["config_path"])

    console.print(f"[green]Config created at:[/green] {path}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Set hub.project and membership.membership_id")
    console.print("2. Run: anthos-hub register")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the resolved configuration."""
    config = _config(ctx)

    table = Table(title="anthos-hub Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Project", config.hub.project or "[red]Not configured[/red]")
    table.add_row("Location", config.hub.location)
    table.add_row("Hub API", config.hub.api_base)
    table.add_row("Access Token", "Set" if config.hub.access_token else "Application default credentials")
    table.add_row("Membership", config.membership.membership_id or "[red]Not configured[/red]")
    table.add_row("Delete Artifacts On Destroy", str(config.membership.delete_artifacts_on_destroy))
    table.add_row("Kubeconfig", config.cluster.kube_config_file or "~/.kube/config")
    table.add_row("Kube Context", config.cluster.kube_context)
    table.add_row("Agent Namespace", config.connect_agent.namespace)
    table.add_row("Agent Version", config.connect_agent.version or "Server default")
    table.add_row("Poll Attempts", str(config.polling.max_attempts))
    table.add_row("Poll Interval", f"{config.polling.interval_seconds}s")
    table.add_row("Debug Log", str(config.log_path) if config.logging.debug else "Disabled")

    console.print(table)


@app.command()
def register(
    ctx: typer.Context,
    membership: Optional[str] = typer.Option(None, "--membership", "-m", help="Membership ID"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Hub project ID"),
    description: Optional[str] = typer.Option(None, "--description", help="Membership description"),
    resource_link: Optional[str] = typer.Option(None, "--resource-link", help="Self link of the cluster"),
) -> None:
    """Register the cluster with the Hub."""
    membership_id = _resolve(ctx, project, membership)
    config = _config(ctx)

    try:
        with MembershipLifecycleOrchestrator.from_config(config) as orchestrator:
            result = orchestrator.register(
                membership_id,
                description=description or config.membership.description,
                resource_link=resource_link or config.membership.resource_link,
                cancel=_cancel_token(ctx),
            )
    except (HubError, ConfigException, DefaultCredentialsError) as e:
        _fail(e)

    console.print(f"[green]Registered:[/green] {result.name}")
    console.print(f"[green]State:[/green] {result.state_code.value}")
    console.print(f"[green]External ID:[/green] {result.external_id}")


@app.command()
def unregister(
    ctx: typer.Context,
    membership: Optional[str] = typer.Option(None, "--membership", "-m", help="Membership ID"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Hub project ID"),
    delete_artifacts: Optional[bool] = typer.Option(
        None,
        "--delete-artifacts/--keep-artifacts",
        help="Also remove the membership CRD and CR from the cluster",
    ),
) -> None:
    """Remove the cluster's membership from the Hub."""
    membership_id = _resolve(ctx, project, membership)
    config = _config(ctx)
    if delete_artifacts is None:
        delete_artifacts = config.membership.delete_artifacts_on_destroy

    try:
        with MembershipLifecycleOrchestrator.from_config(config) as orchestrator:
            orchestrator.unregister(membership_id, delete_artifacts=delete_artifacts, cancel=_cancel_token(ctx))
    except (HubError, ConfigException, DefaultCredentialsError) as e:
        _fail(e)

    console.print(f"[green]Unregistered:[/green] {membership_id}")


@app.command("connect-agent")
def connect_agent(
    ctx: typer.Context,
    membership: Optional[str] = typer.Option(None, "--membership", "-m", help="Membership ID"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Hub project ID"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace for the agent"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="http(s) proxy for outbound agent traffic"),
    version: Optional[str] = typer.Option(None, "--version", help="Agent version (default: server default)"),
    upgrade: bool = typer.Option(False, "--upgrade", help="Only generate upgrade resources (no secrets)"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Alternate image registry"),
) -> None:
    """Install or update the connect agent in the cluster."""
    membership_id = _resolve(ctx, project, membership)
    config = _config(ctx)

    options = config.connect_agent.to_options()
    if namespace:
        options.namespace = namespace
    if proxy:
        options.proxy = proxy
    if version:
        options.version = version
    if upgrade:
        options.is_upgrade = True
    if registry:
        options.registry = registry

    try:
        service_account_key = config.connect_agent.read_service_account_key()
    except OSError as e:
        _fail(RuntimeError(f"reading service account key: {format_error(e)}"))

    try:
        with MembershipLifecycleOrchestrator.from_config(config) as orchestrator:
            results = orchestrator.install_connect_agent(
                membership_id,
                options=options,
                service_account_key=service_account_key,
                cancel=_cancel_token(ctx),
            )
    except (HubError, ConfigException, DefaultCredentialsError) as e:
        _fail(e)

    table = Table(title=f"Connect agent for {membership_id}")
    table.add_column("Kind", style="cyan")
    table.add_column("Object")
    table.add_column("Action", style="green")
    for item in results:
        obj = f"{item.namespace}/{item.name}" if item.namespace else item.name
        table.add_row(item.kind, obj, item.action.value)
    console.print(table)


if __name__ == "__main__":
    app()
