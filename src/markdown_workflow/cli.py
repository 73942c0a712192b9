"""
CLI module - Command line interface for Markdown Workflow

Entry point for the `wf` command using Typer.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .actions import ActionDispatcher, ActionEnvironment, ActionResult, create_collection, update_collection
from .config import AppConfig, load_config, setup_logging
from .errors import WorkflowError
from .processors import PipelineCallbacks, ProcessingContext, ProcessingResult
from .project import init_project
from .status import StatusStateMachine
from .store import CollectionStore
from .tools import check_tools_status
from .workflow import WorkflowCatalog

console = Console()
app = typer.Typer(
    name="wf",
    help="Markdown Workflow - document collections with lifecycle stages.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Global flags set by the main callback
state = {"verbose": False}

STATUS_COLORS = {
    "blue": "blue",
    "yellow": "yellow",
    "orange": "dark_orange",
    "green": "green",
    "gray": "bright_black",
    "red": "red",
}


def version_callback(value: bool):
    if value:
        console.print(f"wf version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
ProjectOption = Annotated[
    Path | None,
    typer.Option("--project", "-p", help="Project root (default: discovered from cwd)", file_okay=False),
]
WorkflowArg = Annotated[str, typer.Argument(help="Workflow name (e.g. job, blog)")]
CollectionArg = Annotated[str, typer.Argument(help="Collection id")]
FieldOption = Annotated[
    list[str] | None, typer.Option("--field", "-f", help="Metadata field as key=value (repeatable)")
]


@dataclass
class Services:
    """Everything a command needs, built from one config."""

    config: AppConfig
    store: CollectionStore
    catalog: WorkflowCatalog
    machine: StatusStateMachine
    env: ActionEnvironment

    @classmethod
    def from_config(cls, config: AppConfig) -> "Services":
        store = CollectionStore(config.collections_dir)
        catalog = WorkflowCatalog(config.workflow_search_dirs())
        env = ActionEnvironment.from_config(config)
        return cls(
            config=config,
            store=store,
            catalog=catalog,
            machine=StatusStateMachine(store, catalog, clock=env.clock),
            env=env,
        )


def get_services(config_path: Path | None = None, project: Path | None = None) -> Services:
    """Load configuration, apply its logging section and wire up the services."""
    config = load_config(config_path, project)
    setup_logging(config.logging, config.paths.logs_dir, verbose=state["verbose"])
    return Services.from_config(config)


def fail(error: Exception) -> typer.Exit:
    """Print an error and return the exit to raise."""
    console.print(f"[red]Error:[/red] {error}")
    return typer.Exit(1)


def parse_fields(items: list[str] | None) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a dict; exits on a malformed item."""
    fields = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            console.print(f"[red]Error:[/red] Invalid field '{item}' (expected key=value)")
            raise typer.Exit(1)
        fields[key.strip()] = value
    return fields


def print_action_result(result: ActionResult) -> None:
    for message in result.messages:
        console.print(f"  [green]✓[/green] {message}")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {warning}")


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
):
    """Markdown Workflow - document collections with lifecycle stages."""
    state["verbose"] = verbose
    setup_logging(AppConfig().logging, verbose=verbose)


@app.command()
def available(config: ConfigOption = None, project: ProjectOption = None):
    """List available workflows."""
    services = get_services(config, project)
    names = services.catalog.available()

    if not names:
        console.print("No workflows found")
        return

    table = Table(title="Workflows")
    table.add_column("Workflow", style="cyan")
    table.add_column("Stages")
    table.add_column("Description", style="dim")

    for name in names:
        try:
            workflow = services.catalog.get(name)
        except WorkflowError as e:
            table.add_row(name, "[red]invalid[/red]", str(e))
            continue
        table.add_row(name, " → ".join(workflow.stage_names), workflow.description)

    console.print(table)


@app.command("list")
def list_cmd(
    workflow: WorkflowArg,
    status: Annotated[str | None, typer.Option("--status", "-s", help="Only show this status")] = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """List collections of a workflow, oldest first."""
    services = get_services(config, project)
    try:
        definition = services.catalog.get(workflow)
    except WorkflowError as e:
        raise fail(e) from None

    collections = services.store.list(workflow, status)
    if not collections:
        console.print(f"No {workflow} collections found")
        return

    table = Table(title=f"{workflow} collections")
    table.add_column("Collection", style="cyan")
    table.add_column("Status")
    table.add_column("Created", style="dim")
    table.add_column("Modified", style="dim")

    for collection in collections:
        stage = definition.get_stage(collection.status)
        color = STATUS_COLORS.get(stage.color or "", "white") if stage else "white"
        table.add_row(
            collection.collection_id,
            f"[{color}]{collection.status}[/{color}]",
            collection.metadata.date_created[:10],
            collection.metadata.date_modified[:10],
        )

    console.print(table)


@app.command()
def show(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Show a collection's metadata, history and files."""
    services = get_services(config, project)
    try:
        definition = services.catalog.get(workflow)
        collection = services.store.get(workflow, collection_id)
    except WorkflowError as e:
        raise fail(e) from None

    table = Table(title=f"Collection: {collection_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Path", str(collection.path))
    table.add_row("Status", collection.status)
    table.add_row("Next", ", ".join(StatusStateMachine.available_transitions(definition, collection.status)) or "-")
    table.add_row("Created", collection.metadata.date_created)
    table.add_row("Modified", collection.metadata.date_modified)
    for key, value in collection.metadata.extra.items():
        table.add_row(key, str(value))
    table.add_row("Files", "\n".join(collection.artifacts))

    console.print(table)

    console.print("\n[bold]History:[/bold]")
    for entry in collection.metadata.status_history:
        console.print(f"  {entry.date}  {entry.status}")


@app.command()
def create(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    field: FieldOption = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """
    Create a new collection in the workflow's first stage.

    [bold]Examples:[/bold]

        wf create job acme_engineer -f company="Acme Corp" -f role=Engineer
    """
    fields = parse_fields(field)
    services = get_services(config, project)
    try:
        definition = services.catalog.get(workflow)
        result = create_collection(services.store, definition, collection_id, fields, services.env)
    except WorkflowError as e:
        raise fail(e) from None

    console.print(f"[green]✓[/green] Created {workflow}/{result.collection.status}/{collection_id}")
    for path in result.created:
        console.print(f"  {path.name}")


@app.command()
def update(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    field: FieldOption = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """
    Set metadata fields on an existing collection.

    [bold]Examples:[/bold]

        wf update job acme_engineer -f url=https://acme.example/jobs/42
    """
    fields = parse_fields(field)
    services = get_services(config, project)
    try:
        definition = services.catalog.get(workflow)
        collection = update_collection(services.store, definition, collection_id, fields, services.env)
    except WorkflowError as e:
        raise fail(e) from None

    console.print(f"[green]✓[/green] Updated {collection_id}")
    for key in fields:
        console.print(f"  {key}: {collection.metadata.extra[key]}")


@app.command()
def status(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    new_status: Annotated[str, typer.Argument(help="Target status")],
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Move a collection to a new status."""
    services = get_services(config, project)
    try:
        previous = services.store.get(workflow, collection_id).status
        collection = services.machine.transition(workflow, collection_id, new_status)
    except WorkflowError as e:
        raise fail(e) from None

    console.print(f"[green]✓[/green] {collection_id}: {previous} → {collection.status}")
    console.print(f"  [dim]{collection.path}[/dim]")


@app.command()
def recover(workflow: WorkflowArg, config: ConfigOption = None, project: ProjectOption = None):
    """Finish or roll back status changes interrupted by a crash."""
    services = get_services(config, project)
    results = services.machine.recover(workflow)

    if not results:
        console.print("No interrupted transitions found")
        return

    for result in results:
        if result.action == "failed":
            console.print(f"  [red]✗[/red] {result.collection_id}: {result.error}")
        else:
            label = "completed" if result.action == "completed" else "rolled back"
            move = f"{result.from_status} → {result.to_status}"
            console.print(f"  [green]✓[/green] {result.collection_id}: {move} ({label})")

    if any(r.action == "failed" for r in results):
        raise typer.Exit(1)


def _run_action(
    workflow: str, collection_id: str, action: str, params: dict, config: Path | None, project: Path | None
) -> None:
    services = get_services(config, project)
    dispatcher = ActionDispatcher(services.env)
    try:
        definition = services.catalog.get(workflow)
        collection = services.store.get(workflow, collection_id)
        result = dispatcher.execute(definition, collection, action, params)
    except WorkflowError as e:
        raise fail(e) from None
    print_action_result(result)


@app.command("format")
def format_cmd(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    output_format: Annotated[str, typer.Option("--format", "-f", help="docx, html, pdf or all")] = "docx",
    artifact: Annotated[
        list[str] | None, typer.Option("--artifact", "-a", help="Only files from this template (repeatable)")
    ] = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Render diagrams and convert collection markdown with pandoc."""
    params = {"format": output_format}
    if artifact:
        params["artifacts"] = artifact
    _run_action(workflow, collection_id, "format", params, config, project)


@app.command()
def add(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    template: Annotated[str, typer.Argument(help="Template name")],
    prefix: Annotated[str | None, typer.Option("--prefix", help="Filename prefix")] = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Add a file to a collection from a workflow template."""
    params = {"template": template}
    if prefix:
        params["prefix"] = prefix
    _run_action(workflow, collection_id, "add", params, config, project)


@app.command()
def notes(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    note_type: Annotated[str, typer.Argument(help="Kind of note (recruiter, technical, onsite, ...)")],
    interviewer: Annotated[str | None, typer.Option("--interviewer", "-i", help="Interviewer name")] = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Create a notes file for an interview or meeting."""
    params = {"note_type": note_type}
    if interviewer:
        params["interviewer"] = interviewer
    _run_action(workflow, collection_id, "notes", params, config, project)


@app.command()
def process(
    source: Annotated[Path, typer.Argument(help="Markdown file", exists=True, dir_okay=False)],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write processed markdown here")] = None,
    processor: Annotated[
        list[str] | None, typer.Option("--processor", help="Run only these processors (repeatable, in order)")
    ] = None,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """
    Run the processor pipeline over a markdown file.

    Images go to assets/ next to the file; the processed markdown goes to
    intermediate/<name>.md unless --output is given.
    """
    registry = get_services(config, project).env.registry
    context = ProcessingContext.for_collection(source.resolve().parent)

    def on_start(name: str):
        console.print(f"  Running {name}...")

    def on_complete(name: str, result: ProcessingResult):
        console.print(f"  [green]✓[/green] {name}: {result.blocks_processed} block(s), {len(result.assets)} asset(s)")

    def on_error(name: str, message: str):
        console.print(f"  [red]✗[/red] {name}: {message}")

    callbacks = PipelineCallbacks(
        on_processor_start=on_start,
        on_processor_complete=on_complete,
        on_processor_error=on_error,
    )

    try:
        result = registry.process_content(source.read_text(encoding="utf-8"), context, processor or None, callbacks)
    except WorkflowError as e:
        raise fail(e) from None

    target = output or context.intermediate_dir / source.name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(result.processed_content, encoding="utf-8")

    for error in result.errors:
        console.print(f"  [yellow]![/yellow] {error}")
    console.print(f"\nWrote {target}")

    if not result.success:
        raise typer.Exit(1)


@app.command()
def clean(
    workflow: WorkflowArg,
    collection_id: CollectionArg,
    config: ConfigOption = None,
    project: ProjectOption = None,
):
    """Remove processor intermediate files from a collection."""
    services = get_services(config, project)
    try:
        collection = services.store.get(workflow, collection_id)
    except WorkflowError as e:
        raise fail(e) from None

    services.env.registry.cleanup(ProcessingContext.for_collection(collection.path))
    console.print(f"[green]✓[/green] Cleaned intermediate files for {collection_id}")


@app.command()
def init(
    directory: Annotated[Path | None, typer.Argument(help="Project root (default: cwd)", file_okay=False)] = None,
    workflow: Annotated[
        list[str] | None, typer.Option("--workflow", "-w", help="Workflow to set up (repeatable, default: all)")
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="Reinitialize an existing project")] = False,
):
    """Create .markdown-workflow/ with a default config.yml."""
    root = (directory or Path.cwd()).resolve()
    try:
        result = init_project(root, workflow, force)
    except WorkflowError as e:
        raise fail(e) from None

    console.print(f"[green]✓[/green] Initialized project in {root}")
    console.print(f"  Workflows: {', '.join(result.workflows)}")
    console.print(f"  Edit {result.config_file} with your details")


@app.command()
def check(config: ConfigOption = None, project: ProjectOption = None):
    """Check external renderers and converters and show their locations."""
    settings = load_config(config, project)
    processors = settings.processors
    tools = check_tools_status(
        {
            "dot": processors.graphviz.command,
            "plantuml": processors.plantuml.command,
            "mmdc": processors.mermaid.command,
            "pandoc": settings.converter.command,
        }
    )

    table = Table(title="External Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Path", style="dim")

    for tool, path in tools.items():
        if path:
            status_str = "[green]Available[/green]"
            path_str = str(path)
        else:
            status_str = "[red]Missing[/red]"
            path_str = "-"
        table.add_row(tool, status_str, path_str)

    console.print(table)

    missing = [t for t, p in tools.items() if p is None]
    if missing:
        console.print("\n[yellow]Warning:[/yellow] Some tools are missing; affected diagrams stay unrendered.")
        console.print("Install: sudo apt install graphviz plantuml pandoc && npm i -g @mermaid-js/mermaid-cli")


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
