"""
Command-line interface for dialog-export.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from dialog_export import __version__
from dialog_export.config import ExportConfig, config_search_paths, load_config
from dialog_export.exporter import export_new_sessions, get_exported_dialogs
from dialog_export.logging import setup_logging
from dialog_export.session import get_project_sessions
from dialog_export.viewer import generate_static_html
from dialog_export.visibility import ensure_dialog_folder, get_dialog_folder
from dialog_export.watcher import start_watcher

console = Console()

MAX_LISTED_SESSIONS = 30
MAX_LISTED_DIALOGS = 10

EPILOG = """\
Dialogs are saved to <project>/dialog/.

Privacy:
  New dialogs are added to .gitignore by default (private).
  Use the UI to toggle visibility for Git commits.
"""


def _add_project_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        help="Path to target project (default: current directory)",
    )
    parser.add_argument(
        "--output",
        help="Export to a different directory (sessions are still read from the project)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Config file (default: dialog-export.yaml, then user config)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable verbose output (debug logging)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"dialog-export v{__version__}: export Claude Code dialogs to the project's dialog/ folder",
        prog="dialog-export",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser(
        "init", aliases=["i"], help="Initialize dialog-export for a project (first-time setup)"
    )
    _add_project_arguments(init_parser)

    watch_parser = subparsers.add_parser(
        "watch", aliases=["w"], help="Start a watcher that auto-exports new sessions"
    )
    _add_project_arguments(watch_parser)

    ui_parser = subparsers.add_parser(
        "ui", aliases=["u", "server"], help="Start the web UI for browsing and managing dialogs"
    )
    _add_project_arguments(ui_parser)
    ui_parser.add_argument("--port", type=int, default=3333, help="Port for the UI server")
    ui_parser.add_argument("--host", default="127.0.0.1", help="Host for the UI server")

    export_parser = subparsers.add_parser(
        "export", aliases=["e"], help="Export all sessions once and exit"
    )
    _add_project_arguments(export_parser)

    list_parser = subparsers.add_parser(
        "list", aliases=["l", "ls"], help="List all available sessions for the project"
    )
    _add_project_arguments(list_parser)

    # Config command with subcommands
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")

    config_show_parser = config_subparsers.add_parser("show", help="Show current configuration")
    config_show_parser.add_argument("-c", "--config", help="Config file to show")

    config_init_parser = config_subparsers.add_parser("init", help="Initialize a new config file")
    config_init_parser.add_argument(
        "-o",
        "--output",
        default="dialog-export.yaml",
        help="Output file path",
    )

    config_subparsers.add_parser("path", help="Show config file paths")

    subparsers.add_parser("help", help="Show this help message")

    return parser


COMMAND_ALIASES = {
    "i": "init",
    "w": "watch",
    "u": "ui",
    "server": "ui",
    "e": "export",
    "l": "list",
    "ls": "list",
}


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = COMMAND_ALIASES.get(args.command, args.command)

    # Setup logging based on verbosity
    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    elif command in ("watch", "ui"):
        setup_logging("INFO")
    else:
        setup_logging("WARNING")

    if command == "init":
        cmd_init(args)
    elif command == "watch":
        cmd_watch(args)
    elif command == "ui":
        cmd_ui(args)
    elif command == "export":
        cmd_export(args)
    elif command == "list":
        cmd_list(args)
    elif command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def _resolve_project(args: argparse.Namespace) -> Path:
    """Project path from CLI args, defaulting to the current directory."""
    if not args.path:
        return Path.cwd().resolve()

    path = Path(args.path).expanduser().resolve()
    if not path.is_dir():
        console.print(f"[red]Project not found: {path}[/red]")
        sys.exit(1)
    return path


def _load_config(args: argparse.Namespace) -> ExportConfig:
    """Load config and apply CLI overrides."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    if config_path is not None and not config_path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        sys.exit(1)

    try:
        config = load_config(config_path)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Failed to load config: {e}[/red]")
        sys.exit(1)

    if getattr(args, "output", None):
        config.output_dir = Path(args.output).expanduser().resolve()
    if getattr(args, "verbose", False):
        config.verbose = True
    return config


def cmd_list(args: argparse.Namespace) -> None:
    """List sessions and exported dialogs."""
    project = _resolve_project(args)
    config = _load_config(args)
    output = config.output_path(project)

    console.print(f"\n[bold]Project:[/bold] {project}")

    sessions = get_project_sessions(project, config)
    if not sessions:
        console.print("[yellow]No Claude sessions found for this project.[/yellow]")
        console.print(f"[dim]Looking in: {config.projects_dir}[/dim]")
        return

    table = Table(title=f"Sessions ({len(sessions)})")
    table.add_column("Date", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Summary")

    for session in sessions[:MAX_LISTED_SESSIONS]:
        summary = session.summaries[0][:60] if session.summaries else "[dim]No summary[/dim]"
        table.add_row(session.date, str(session.message_count), summary)

    console.print(table)
    if len(sessions) > MAX_LISTED_SESSIONS:
        console.print(f"[dim]... and {len(sessions) - MAX_LISTED_SESSIONS} more sessions[/dim]")

    dialogs = get_exported_dialogs(output, config.dialog_folder)
    console.print(f"\n[bold]Exported dialogs:[/bold] {len(dialogs)}")
    console.print(f"[dim]Location: {get_dialog_folder(output, config.dialog_folder)}[/dim]")

    if dialogs:
        dialog_table = Table()
        dialog_table.add_column("Date", style="cyan")
        dialog_table.add_column("Public")
        dialog_table.add_column("File", style="dim")

        for dialog in dialogs[:MAX_LISTED_DIALOGS]:
            public = "[green]Yes[/green]" if dialog.is_public else "No"
            dialog_table.add_row(dialog.date, public, dialog.filename)

        console.print(dialog_table)
        if len(dialogs) > MAX_LISTED_DIALOGS:
            console.print(f"[dim]... and {len(dialogs) - MAX_LISTED_DIALOGS} more dialogs[/dim]")

    console.print(f"\n[dim]Total: {len(sessions)} sessions, {len(dialogs)} exported[/dim]")


def cmd_export(args: argparse.Namespace) -> None:
    """Export every session without an artifact, then write the HTML viewer."""
    project = _resolve_project(args)
    config = _load_config(args)
    output = config.output_path(project)

    console.print(f"\n[bold]Project:[/bold] {project}")
    console.print("Exporting sessions...\n")

    exported = export_new_sessions(project, config)
    dialog_folder = get_dialog_folder(output, config.dialog_folder)

    if not exported:
        console.print("All sessions already exported.")
    else:
        console.print(
            f"[green]Exported {len(exported)} new session(s) to {dialog_folder}[/green]"
        )

    try:
        html_path = generate_static_html(output, config.dialog_folder)
        console.print(f"Generated: {html_path}")
    except OSError as e:
        console.print(f"[yellow]Warning: could not generate HTML viewer: {e}[/yellow]")

    console.print("\n[dim]New dialogs are added to .gitignore by default (private).[/dim]")
    console.print("[dim]Use 'dialog-export ui' to manage visibility.[/dim]")


def cmd_init(args: argparse.Namespace) -> None:
    """First-time setup: create the dialog folder and export existing sessions."""
    project = _resolve_project(args)
    config = _load_config(args)
    output = config.output_path(project)

    console.print("\n[bold]dialog-export - Project Initialization[/bold]\n")
    console.print(f"Project: {project}\n")

    console.print("[bold]Step 1:[/bold] Checking for Claude Code sessions...")
    sessions = get_project_sessions(project, config)
    if not sessions:
        console.print("  [yellow]⚠ No Claude Code sessions found for this project.[/yellow]")
        console.print(f"  [dim]Sessions are stored in: {config.projects_dir}[/dim]")
        console.print("  You can still initialize the project structure.")
    else:
        console.print(f"  Found {len(sessions)} session(s)")

    console.print("\n[bold]Step 2:[/bold] Creating dialog folder...")
    dialog_folder = ensure_dialog_folder(output, config.dialog_folder)
    console.print(f"  Created: {dialog_folder}")

    if sessions:
        console.print("\n[bold]Step 3:[/bold] Exporting sessions to Markdown...")
        exported = export_new_sessions(project, config)
        console.print(f"  Exported {len(exported)} session(s)")
        for result in exported[:5]:
            console.print(f"  [green]→[/green] {result.filename}")
        if len(exported) > 5:
            console.print(f"  [dim]... and {len(exported) - 5} more[/dim]")

    dialogs = get_exported_dialogs(output, config.dialog_folder)

    console.print("\n[bold green]Initialization complete![/bold green]\n")
    console.print(f"  Dialog folder: {dialog_folder}")
    console.print(f"  Exported dialogs: {len(dialogs)}")
    console.print("  All dialogs are private by default (in .gitignore)\n")
    console.print("[bold]Next steps:[/bold]")
    console.print("  1. Start the watcher for auto-export:  [cyan]dialog-export watch[/cyan]")
    console.print("  2. Or open the UI to manage dialogs:   [cyan]dialog-export ui[/cyan]")
    console.print("  3. To make a dialog public, use the UI or edit .gitignore manually")


def cmd_watch(args: argparse.Namespace) -> None:
    """Watch the project until interrupted."""
    project = _resolve_project(args)
    config = _load_config(args)

    try:
        asyncio.run(start_watcher(project, config))
    except KeyboardInterrupt:
        console.print("\n[dim]Watcher stopped[/dim]")


def cmd_ui(args: argparse.Namespace) -> None:
    """Serve the web UI with auto-export."""
    project = _resolve_project(args)
    config = _load_config(args)

    try:
        from dialog_export.web.server import run_server
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    output = config.output_path(project)
    console.print("\n[bold]dialog-export UI + auto-watch[/bold]")
    console.print(f"  URL:      http://{args.host}:{args.port}")
    console.print(f"  Source:   {project}")
    if config.output_dir:
        console.print(f"  Output:   {output}")
    console.print(f"  Dialogs:  {get_dialog_folder(output, config.dialog_folder)}")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]")

    try:
        run_server(project, host=args.host, port=args.port, config=config)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def cmd_config(args: argparse.Namespace) -> None:
    """Configuration management commands."""
    if args.config_command == "show":
        _config_show(args.config)
    elif args.config_command == "init":
        _config_init(args.output)
    elif args.config_command == "path":
        _config_path()
    else:
        console.print("[yellow]Usage: dialog-export config <show|init|path>[/yellow]")


def _config_show(path: str | None = None) -> None:
    """Show current configuration."""
    loaded_from = Path(path) if path else next(
        (p for p in config_search_paths() if p.exists()), None
    )

    if loaded_from is None:
        console.print("[dim]No config file found. Using defaults.[/dim]")
        config = ExportConfig()
    else:
        try:
            config = ExportConfig.from_yaml(loaded_from)
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Failed to load {loaded_from}: {e}[/red]")
            sys.exit(1)
        console.print(f"[dim]Loaded from: {loaded_from}[/dim]\n")

    console.print("[bold]Current Configuration:[/bold]\n")
    console.print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def _config_init(output: str) -> None:
    """Initialize a new config file."""
    output_path = Path(output)

    if output_path.exists():
        console.print(f"[red]File already exists: {output_path}[/red]")
        sys.exit(1)

    default_config = ExportConfig().to_dict()
    default_config.pop("output_dir")
    default_config.pop("verbose")

    with open(output_path, "w", encoding="utf-8") as f:
        yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Created config file: {output_path}[/green]")


def _config_path() -> None:
    """Show config file search paths."""
    console.print("[bold]Config file search paths:[/bold]\n")

    names = ["Current directory", "Current directory (hidden)", "User config"]
    for name, path in zip(names, config_search_paths()):
        exists = "[green]✓[/green]" if path.exists() else "[dim]·[/dim]"
        console.print(f"  {exists} {name}: {path}")


if __name__ == "__main__":
    main()
