"""Command-line interface: ``twig <command>``.

Each command opens the repository, runs one operation and reports
the outcome. Any ``TwigError`` is printed and exits with status 1.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import STORAGE_CHOICES, Settings
from .errors import MergeConflict, TwigError
from .repository import Repository, repository

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="twig",
    help="A lightweight content-addressed version control system.",
    add_completion=False,
    no_args_is_help=True,
)


@dataclass
class CliState:
    start: str
    settings: Settings


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn twig errors into a red message and exit status 1."""
    try:
        yield
    except MergeConflict as e:
        console.print("[red]Merge conflicts detected:[/red]")
        for path in sorted(e.conflicting_paths):
            console.print(f"[red]  x {escape(path)}[/red]")
        console.print("[yellow]Resolve conflicts manually and commit.[/yellow]")
        raise typer.Exit(1)
    except TwigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    if state is None:
        state = CliState(start=os.path.abspath("."), settings=Settings.from_env())
        ctx.obj = state
    return state


def _open(ctx: typer.Context) -> Repository:
    state = _state(ctx)
    return repository(state.start, settings=state.settings)


@app.callback()
def callback(
    ctx: typer.Context,
    repo: Optional[str] = typer.Option(
        None, "--repo", "-C", help="Run as if started in this directory"
    ),
    storage: Optional[str] = typer.Option(
        None,
        "--storage",
        help=f"Storage backend ({', '.join(STORAGE_CHOICES)})",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging and repository settings for the command."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )
    try:
        settings = Settings.from_env(storage=storage)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    ctx.obj = CliState(start=os.path.abspath(repo or "."), settings=settings)


@app.command()
def init(ctx: typer.Context) -> None:
    """Initialize a new repository."""
    state = _state(ctx)
    existed = os.path.isdir(os.path.join(state.start, state.settings.repo_dir))
    with reported_errors():
        repository(state.start, settings=state.settings, create=True).close()
    root = escape(os.path.abspath(state.start))
    if not existed:
        console.print(f"[green]✓ Initialized twig repository in {root}[/green]")
    else:
        console.print(f"[yellow]Repository already initialized in {root}[/yellow]")


@app.command()
def add(
    ctx: typer.Context,
    paths: List[str] = typer.Argument(..., help="Files or directories to stage"),
) -> None:
    """Add files to the staging area."""
    state = _state(ctx)
    with reported_errors(), _open(ctx) as repo:
        for path in paths:
            result = repo.add(os.path.join(state.start, path))
            for ignored in result.ignored:
                console.print(f"[yellow]Ignored: {escape(ignored)}[/yellow]")
            for entry in result.staged:
                console.print(f"[green]✓ Added {escape(entry.path)}[/green]")


@app.command()
def commit(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Commit message"),
) -> None:
    """Commit staged changes."""
    with reported_errors(), _open(ctx) as repo:
        digest = repo.commit(message)
        branch = repo.current_branch()
    console.print(f"[green]✓ Commit created: {digest[:7]}[/green]")
    console.print(f"[cyan]\\[{escape(branch)}] {escape(message)}[/cyan]")


@app.command()
def log(ctx: typer.Context) -> None:
    """Show commit history."""
    with reported_errors(), _open(ctx) as repo:
        console.print(f"[bold]Commit History ({escape(repo.current_branch())})[/bold]\n")
        empty = True
        for entry in repo.log():
            empty = False
            console.print(f"[yellow]commit {entry.digest}[/yellow]")
            console.print(f"[cyan]Date: {escape(entry.record.timestamp)}[/cyan]")
            console.print(f"\n    {escape(entry.record.message)}\n")
    if empty:
        console.print("[yellow]No commits yet.[/yellow]")


@app.command()
def show(
    ctx: typer.Context,
    digest: str = typer.Argument(..., help="Commit digest or unique prefix"),
) -> None:
    """Show changes in a specific commit."""
    with reported_errors(), _open(ctx) as repo:
        result = repo.show(digest)
    console.print(f"[bold]Changes in commit {result.digest[:7]}[/bold]\n")
    for change in result.files:
        console.print(f"[cyan]File: {escape(change.path)}[/cyan]")
        if result.initial:
            console.print("[green](Initial commit)[/green]")
        elif change.status == "added":
            console.print("[green](New file)[/green]")
        else:
            for part in change.diff:
                style, marker = {
                    "added": ("green", "+ "),
                    "removed": ("red", "- "),
                    "equal": ("bright_black", "  "),
                }[part.tag]
                for line in part.text.splitlines():
                    console.print(f"[{style}]{marker}{escape(line)}[/{style}]")
            console.print()


@app.command()
def status(ctx: typer.Context) -> None:
    """Show working tree status."""
    with reported_errors(), _open(ctx) as repo:
        result = repo.status()
    console.print(f"[cyan]On branch: {escape(result.branch)}[/cyan]")
    if result.head is None:
        console.print("[yellow]No commits yet[/yellow]\n")
    else:
        console.print(f"[bright_black]Latest commit: {result.head[:7]}[/bright_black]\n")

    sections = (
        (result.staged, "green", "Changes staged for commit:", "+"),
        (result.modified, "red", "Changes not staged:", "M"),
        (result.untracked, "bright_black", "Untracked files:", "?"),
    )
    for paths, style, title, marker in sections:
        if not paths:
            continue
        console.print(f"[{style}]{title}[/{style}]")
        for path in paths:
            console.print(f"[{style}]  {marker} {escape(path)}[/{style}]")
        console.print()
    if result.clean:
        console.print("[green]✓ Working directory clean[/green]")


@app.command()
def branch(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Branch to create or delete"),
    delete: bool = typer.Option(False, "--delete", "-d", help="Delete the branch"),
) -> None:
    """List, create, or delete branches."""
    with reported_errors(), _open(ctx) as repo:
        if name is None:
            if delete:
                console.print("[red]Error:[/red] --delete needs a branch name")
                raise typer.Exit(1)
            table = Table(title="Branches", show_header=True)
            table.add_column("", width=1)
            table.add_column("Name", style="bold")
            table.add_column("Commit", style="yellow")
            for info in repo.list_branches():
                table.add_row(
                    "*" if info.current else "",
                    f"[green]{escape(info.name)}[/green]" if info.current else escape(info.name),
                    info.commit[:7] if info.commit else "[dim]no commits[/dim]",
                )
            console.print(table)
            return
        if delete:
            repo.delete_branch(name)
            console.print(f"[green]✓ Deleted branch: {escape(name)}[/green]")
        else:
            repo.create_branch(name)
            console.print(f"[green]✓ Created branch: {escape(name)}[/green]")


@app.command()
def checkout(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Branch to switch to"),
) -> None:
    """Switch to a different branch."""
    with reported_errors(), _open(ctx) as repo:
        repo.checkout(name)
    console.print(f"[green]✓ Switched to branch: {escape(name)}[/green]")


@app.command()
def merge(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Branch to merge into the current one"),
) -> None:
    """Merge a branch into the current branch."""
    with reported_errors(), _open(ctx) as repo:
        result = repo.merge(name)
    if result.strategy == "up_to_date":
        console.print("[green]Already up to date[/green]")
        return
    console.print(
        f"[green]✓ Merged {escape(result.source)} into {escape(result.target)}[/green]"
    )
    console.print("[yellow]Changes staged. Commit to complete merge.[/yellow]")


@app.command()
def graph(ctx: typer.Context) -> None:
    """Show the commit graph."""
    with reported_errors(), _open(ctx) as repo:
        lines = repo.graph()
    console.print("[bold]Commit Graph[/bold]\n")
    if not lines:
        console.print("[yellow]No commits yet.[/yellow]")
        return
    for line in lines:
        console.print(
            f"{line.prefix}[yellow]{line.short}[/yellow] {escape(line.record.message)} "
            f"[bright_black]({escape(line.record.timestamp[:10])})[/bright_black]"
        )


@app.command()
def push(
    ctx: typer.Context,
    remote: Optional[str] = typer.Argument(None, help="Remote name (default: origin)"),
    name: Optional[str] = typer.Argument(None, help="Branch (default: current)"),
) -> None:
    """Push a branch to a remote mirror."""
    with reported_errors(), _open(ctx) as repo:
        result = repo.push(remote, name)
    console.print(
        f"[green]✓ Pushed {escape(result.branch)} to {escape(result.remote)}[/green]"
    )


@app.command()
def pull(
    ctx: typer.Context,
    remote: Optional[str] = typer.Argument(None, help="Remote name (default: origin)"),
    name: Optional[str] = typer.Argument(None, help="Branch (default: current)"),
) -> None:
    """Pull a branch from a remote mirror."""
    with reported_errors(), _open(ctx) as repo:
        result = repo.pull(remote, name)
    if result.status == "updated":
        console.print(
            f"[green]✓ Pulled {escape(result.branch)} from {escape(result.remote)}[/green]"
        )
    elif result.status == "empty":
        console.print(
            f"[yellow]Remote branch {escape(result.remote)}/{escape(result.branch)} has no commits[/yellow]"
        )
    else:
        console.print("[green]Already up to date[/green]")


def main() -> None:
    app()
