"""CLI for gitreplay."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click

from gitreplay.core import ChangeTracker, Commit, ReplayError

if TYPE_CHECKING:
    from gitreplay.history import CommitHistoryWalker


def configure_logging(verbosity: int) -> None:
    """Route library logging to stderr at a level chosen by -v flags."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def resolve_codec(name: str | None):
    """Look up a codec by name, defaulting to the configured one."""
    from gitreplay.plugins import get_path_codec
    from gitreplay.settings import load_settings

    try:
        return get_path_codec(name or load_settings().codec)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def open_fetcher(repo: str, token: str | None):
    """Create a fetcher for ``owner/name`` from the global settings."""
    from gitreplay.config import parse_repo_slug
    from gitreplay.github_api import GitHubDiffFetcher
    from gitreplay.settings import load_settings

    try:
        owner, name = parse_repo_slug(repo)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--repo") from e

    settings = load_settings()
    return GitHubDiffFetcher(
        owner,
        name,
        token or settings.token,
        api_url=settings.api_url,
        timeout=settings.timeout,
        retry_delay=settings.retry_delay,
        max_retries=settings.max_retries,
    )


def make_walker(fetcher, strategy: str) -> CommitHistoryWalker:
    """Build a history walker for ``strategy`` capped at the configured max_hops."""
    from gitreplay.history import STRATEGIES, CommitHistoryWalker
    from gitreplay.settings import load_settings

    return CommitHistoryWalker(
        fetcher, STRATEGIES[strategy](), max_hops=load_settings().max_hops
    )


def echo_changes(changes: ChangeTracker, root: Path) -> None:
    """Print created (A), modified (M) and deleted (D) files relative to root."""
    root = root.resolve()
    rows = []
    for path in changes.created:
        rows.append(("A", path))
    for path in changes.modified - changes.created:
        rows.append(("M", path))
    for path in changes.deleted:
        rows.append(("D", path))

    for status, path in sorted(rows, key=lambda row: (str(row[1]), row[0])):
        try:
            shown = path.relative_to(root)
        except ValueError:
            shown = path
        click.echo(f"  {status} {shown}")


STRATEGY_OPTION = click.option(
    "--strategy",
    type=click.Choice(["first-parent", "breadth-first"]),
    default="first-parent",
    show_default=True,
    help="How to walk from the remote head back to the checkpoint.",
)


@click.group()
@click.version_option(package_name="gitreplay")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
def main(verbose: int) -> None:
    """Replicate a remote repository onto a local file mirror.

    Commits after the mirror's checkpoint are fetched from the hosting API
    as unified diffs and replayed onto the mirror, oldest first.

    Examples:

        gitreplay sync ./mirror --repo owner/name --since 1a2b3c4

        gitreplay sync ./mirror            # Continue from the stored checkpoint

        gitreplay apply change.diff ./mirror
    """
    configure_logging(verbose)


@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--repo", help="Remote repository as owner/name. Defaults to the stored one.")
@click.option(
    "--since",
    "since_sha",
    help="Commit already reflected in the mirror. Defaults to the stored checkpoint.",
)
@click.option("--token", help="API token. Defaults to settings or GITREPLAY_TOKEN.")
@click.option("--codec", help="Path codec name. Defaults to the configured codec.")
@STRATEGY_OPTION
def sync(
    root: Path,
    repo: str | None,
    since_sha: str | None,
    token: str | None,
    codec: str | None,
    strategy: str,
) -> None:
    """Replay remote commits onto the mirror at ROOT.

    The stored checkpoint advances after every applied commit, so a sync
    that fails part way resumes after the last commit that reached the mirror.
    """
    from gitreplay.config import MirrorState, load_mirror_state, save_mirror_state
    from gitreplay.engine import ReplicationEngine

    state = load_mirror_state(root)
    repo = repo or state.repo
    since_sha = since_sha or state.checkpoint
    if not repo:
        raise click.ClickException(f"No repository recorded for {root}. Pass --repo owner/name.")
    if not since_sha:
        raise click.ClickException(f"No checkpoint recorded for {root}. Pass --since SHA.")

    path_codec = resolve_codec(codec)
    click.echo(f"Syncing {root} from {repo} since {since_sha[:7]}")

    def advance_checkpoint(commit: Commit) -> None:
        save_mirror_state(root, MirrorState(repo=repo, checkpoint=commit.sha))

    with open_fetcher(repo, token) as fetcher:
        engine = ReplicationEngine(fetcher, path_codec, make_walker(fetcher, strategy))
        try:
            result = engine.replay(since_sha, root, on_applied=advance_checkpoint)
        except ReplayError as e:
            raise click.ClickException(str(e)) from e

    save_mirror_state(root, MirrorState(repo=repo, checkpoint=result.head_sha))

    if result.up_to_date:
        click.echo("Already up to date.")
        return
    for commit in result.applied:
        click.echo(f"  {commit.short_sha} {commit.subject}")
    click.echo(f"Applied {len(result.applied)} commits, now at {result.head_sha[:7]}")
    echo_changes(result.changes, root)


@main.command()
@click.option("--repo", required=True, help="Remote repository as owner/name.")
@click.option("--since", "since_sha", required=True, help="Checkpoint commit sha.")
@click.option("--token", help="API token. Defaults to settings or GITREPLAY_TOKEN.")
@STRATEGY_OPTION
def commits(repo: str, since_sha: str, token: str | None, strategy: str) -> None:
    """List the commits between a checkpoint and the remote head, newest first."""
    with open_fetcher(repo, token) as fetcher:
        try:
            found = make_walker(fetcher, strategy).commits_since(since_sha)
        except ReplayError as e:
            raise click.ClickException(str(e)) from e

    if not found:
        click.echo("Already up to date.")
        return
    for commit in found:
        marker = " (checkpoint)" if commit.sha == since_sha else ""
        click.echo(f"{commit.short_sha} {commit.subject}{marker}")


@main.command()
@click.argument("diff_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--codec", help="Path codec name. Defaults to the configured codec.")
def apply(diff_file: Path, root: Path, codec: str | None) -> None:
    """Apply a unified diff file to the mirror at ROOT."""
    from gitreplay.diff_apply import MIRROR_ENCODING, DiffApplier

    applier = DiffApplier(root, resolve_codec(codec))
    try:
        changes = applier.apply(diff_file.read_bytes().decode(MIRROR_ENCODING))
    except ReplayError as e:
        raise click.ClickException(str(e)) from e

    if not changes:
        click.echo("No changes.")
        return
    echo_changes(changes, root)


@main.command()
@click.argument("path")
@click.option("--codec", help="Path codec name. Defaults to the configured codec.")
def decode(path: str, codec: str | None) -> None:
    """Decode an encoded repository PATH."""
    try:
        click.echo(resolve_codec(codec).decode(path, "/"))
    except ReplayError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.argument("path")
@click.option("--codec", help="Path codec name. Defaults to the configured codec.")
def encode(path: str, codec: str | None) -> None:
    """Encode a PATH the way the remote repository stores it."""
    click.echo(resolve_codec(codec).encode(path, "/"))


@main.command()
def codecs() -> None:
    """List available path codecs."""
    from rich.console import Console
    from rich.table import Table

    from gitreplay.plugins import list_codecs
    from gitreplay.settings import load_settings

    default = load_settings().codec
    table = Table(title="Path codecs")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Default", style="green")
    for name, description in sorted(list_codecs().items()):
        table.add_row(name, description, "*" if name == default else "")

    Console().print(table)


if __name__ == "__main__":
    main()
