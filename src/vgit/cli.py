"""Command line interface for vgit."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from vgit.git import CheckoutOutcome, GitError, GitRepo

app = typer.Typer(help="Trunk-aware git shortcuts")
console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

PathOption = Annotated[Path, typer.Option(help="Path to git repository", envvar="VGIT_PATH")]


def abort(err: GitError) -> NoReturn:
    """Report a fatal git error and exit."""
    err_console.print(f"[bold]>>>[/bold] [red]Error:[/red] {escape(str(err))}")
    raise typer.Exit(code=1) from err


def announce(message: str) -> None:
    """Print a timestamped progress line."""
    console.print(f"[bold]>>>[/bold] {datetime.now():%Y-%m-%d %H:%M:%S} {escape(message)}")


def note(message: str, style: Optional[str] = None) -> None:
    """Print a progress line without a timestamp."""
    console.print(f"[bold]>>>[/bold] {escape(message)}", style=style)


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        abort(err)


def complete_branch(ctx: typer.Context, incomplete: str) -> list[str]:
    """Offer local and remote branch names for completion."""
    path = ctx.params.get("path") or Path(".")
    try:
        names = GitRepo(path).list_branch_names()
    except GitError:
        return []
    return [name for name in names if name.startswith(incomplete)]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log every git call")] = False,
) -> None:
    """Trunk-aware git shortcuts.

    The trunk is origin/master when it exists, otherwise origin/main.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command("update-trunk")
def update_trunk(path: PathOption = Path(".")) -> None:
    """Fetch the trunk and bring the local trunk branch up to date."""
    repo = get_repo(path)
    try:
        trunk = repo.update_trunk()
    except GitError as err:
        abort(err)
    announce(f"{trunk} updated")


@app.command()
def pull(path: PathOption = Path(".")) -> None:
    """Update the trunk and merge it into the current branch."""
    repo = get_repo(path)
    try:
        trunk = repo.update_trunk()
        announce(f"{trunk} updated")
        repo.merge_into_current(trunk)
    except GitError as err:
        abort(err)
    announce(f"Merged with the latest {trunk}")


def _clean_local(repo: GitRepo) -> None:
    """Delete local branches once the user types YES."""
    note("This will delete all local branches except 'master', 'main' and the current branch.", style="yellow")
    note("Type 'YES' to confirm:")
    try:
        confirmation = input()
    except EOFError as err:
        err_console.print("[bold]>>>[/bold] [red]Error:[/red] No confirmation received")
        raise typer.Exit(code=1) from err

    if confirmation != "YES":
        note("Skip local branch deletion. Cleaning up remote tracking branches and tags as usual...")
        return

    note("Deleting all local branches except 'master', 'main', and the current branch...")
    try:
        deleted, failed = repo.delete_local_branches()
    except GitError as err:
        abort(err)
    for branch in deleted:
        note(f"Deleted branch: {branch}")
    for branch in failed:
        note(f"Warning: {branch} could not be deleted", style="yellow")
    announce("Deleted all local branches except 'master' and 'main'")


@app.command()
def clean(
    path: PathOption = Path("."),
    local: Annotated[
        bool,
        typer.Option("--local", "-l", "-local", help="Also delete local branches after typing YES"),
    ] = False,
) -> None:
    """Delete remote-tracking branches except the trunks, and all local tags."""
    repo = get_repo(path)

    if local:
        _clean_local(repo)

    try:
        trunk = repo.update_trunk()
        announce(f"{trunk} updated")
        _, failed_branches = repo.delete_remote_tracking_branches()
        _, failed_tags = repo.delete_tags()
    except GitError as err:
        abort(err)

    for branch in failed_branches:
        note(f"Warning: {branch} could not be deleted", style="yellow")
    if failed_tags:
        note(f"Warning: {len(failed_tags)} tag(s) could not be deleted", style="yellow")
    announce("Cleaned up remote branches and tags")


@app.command()
def checkout(
    branch: Annotated[
        str,
        typer.Argument(help="Branch to check out, created when missing", autocompletion=complete_branch),
    ],
    skip_fetch: Annotated[
        bool,
        typer.Option("--skip-fetch", "-o", "-off", help="Do not fetch the trunk first"),
    ] = False,
    use_current: Annotated[
        bool,
        typer.Option("--use-current", "-c", "-cur", help="Use the current branch as base instead of the trunk"),
    ] = False,
    path: PathOption = Path("."),
) -> None:
    """Check out a branch, merging in the latest trunk or creating it off the trunk."""
    repo = get_repo(path)
    try:
        trunk = repo.resolve_trunk()
        if skip_fetch:
            note("Skipping fetch due to --skip-fetch flag")
        else:
            repo.update_trunk()
            announce(f"{trunk} updated")

        base = trunk
        if use_current:
            base = repo.merge_into_current(trunk)
            announce(f"Merged {trunk} into {base}")

        result = repo.checkout_or_create(branch, base)
    except GitError as err:
        abort(err)

    if result.outcome is CheckoutOutcome.MERGED:
        announce(f"Merged {result.base} into {result.branch} and checked out")
    else:
        announce(f"{result.branch} branch created off {result.base} and checked out")


def _passthrough(ctx: typer.Context, path: Path, command: str) -> None:
    """Forward extra arguments to a git command and print its output."""
    repo = get_repo(path)
    try:
        output = repo.passthrough(command, *ctx.args)
    except GitError as err:
        abort(err)
    if output:
        console.print(output, markup=False, highlight=False)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def push(ctx: typer.Context, path: PathOption = Path(".")) -> None:
    """Run git push with the given arguments."""
    _passthrough(ctx, path, "push")


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def log(ctx: typer.Context, path: PathOption = Path(".")) -> None:
    """Run git log with the given arguments."""
    _passthrough(ctx, path, "log")


if __name__ == "__main__":
    app()
