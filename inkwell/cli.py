"""Command-line interface for Inkwell.

This module defines the CLI commands using Click framework.
It provides commands for creating new projects, building sites, running the
preview server and writing new posts.

Commands:
- new: Scaffold a new Inkwell project.
- build: Build the site into the output directory.
- serve: Run the preview server with live reload.
- post: Create a new dated post interactively.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .content import POSTS_DIR
from .errors import InkwellError
from .utils import slugify, split_date_prefix

# Files copied into every new project
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"

# Scaffold files stored without their leading dot so packaging keeps them
_DOTFILES = {"gitignore": ".gitignore"}


@click.group()
@click.version_option(version=__version__, prog_name="inkwell")
def cli():
    """Inkwell static site generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Inkwell project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Inkwell site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include posts from _drafts")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Output directory (overrides output_dir in _config.yml)",
)
def build(drafts: bool, output: Path | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            output_dir_override=output.resolve() if output else None,
        )
    except InkwellError as exc:
        _report_error(project_root, exc)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


def _report_error(project_root: Path, exc: InkwellError) -> None:
    """Print a build failure to stderr."""
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  Kind: {exc.kind}", fg="yellow"), err=True)
    if exc.source_path is not None:
        click.echo(
            click.style(f"  File: {_display_path(project_root, exc.source_path)}", fg="yellow"),
            err=True,
        )
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _display_path(project_root: Path, path: Path) -> str:
    if not path.is_absolute():
        return path.as_posix()
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return str(path)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include posts from _drafts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the preview server (overrides _config.yml port)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides _config.yml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run the preview server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except InkwellError as exc:
        _report_error(project_root, exc)
        raise SystemExit(1) from None


@cli.command()
def post():
    """Create a new dated post interactively."""
    project_root = Path.cwd()
    if not (project_root / "_config.yml").exists():
        raise click.ClickException(
            "No _config.yml found. Run this command from an Inkwell project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    categories = questionary.text(
        "Categories (space separated, optional):",
        style=_questionary_style(),
    ).ask()
    if categories is None:
        raise click.Abort()

    try:
        target_path = create_post(project_root, title.strip(), categories.split())
    except FileExistsError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Created {target_path.relative_to(project_root).as_posix()}")


def create_post(
    project_root: Path,
    title: str,
    categories: list[str] | None = None,
    when: datetime | None = None,
) -> Path:
    """Write a new post file with a prefilled frontmatter block.

    Args:
        project_root: Root directory of the project.
        title: Post title; the filename slug is derived from it.
        categories: Category names.
        when: Post date; defaults to now.

    Returns:
        Path of the created file.

    Raises:
        FileExistsError: If a post with the same slug already exists.
    """
    when = (when or datetime.now()).replace(microsecond=0)
    slug = slugify(title)
    posts_dir = project_root / POSTS_DIR
    target_path = posts_dir / f"{when:%Y-%m-%d}-{slug}.md"

    existing = _get_existing_slugs(posts_dir)
    if slug in existing:
        raise FileExistsError(
            f"A post with slug '{slug}' already exists: {existing[slug]}"
        )

    frontmatter = {
        "layout": "post",
        "title": title,
        "date": when.strftime("%Y-%m-%d %H:%M:%S"),
    }
    if categories:
        frontmatter["categories"] = list(categories)
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)

    posts_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(f"---\n{header}---\n\n", encoding="utf-8")
    return target_path


def _get_existing_slugs(folder: Path) -> dict[str, str]:
    """Map the slug of every post in a folder to its filename."""
    slugs = {}
    if folder.exists():
        for f in folder.iterdir():
            if f.is_file() and f.suffix == ".md":
                _, remainder = split_date_prefix(f.stem)
                slugs[slugify(remainder)] = f.name
    return slugs


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Inkwell project.

    Args:
        root: Root directory for the new project.
    """
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir() or "__pycache__" in src_path.parts:
            continue
        rel_path = src_path.relative_to(_SCAFFOLD_DIR)
        rel_path = rel_path.with_name(_DOTFILES.get(rel_path.name, rel_path.name))
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("INKWELL_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        # Non-fatal: user can run git init manually
        pass
