#!/usr/bin/env python3
"""
GitHub → Notion Push CLI

Usage:
    python sync.py                    # Push Markdown files changed in this push
    python sync.py push docs/a.md     # Push specific files
    python sync.py --debug            # Push with debug output
    python sync.py version            # Show version
"""

import asyncio
import sys

import click
from dotenv import load_dotenv
from rich.console import Console

console = Console()


def escape_workflow_data(message: str) -> str:
    """Escape a message for a GitHub Actions workflow command."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, debug: bool):
    """
    GitHub → Notion Push

    Pushes Markdown files with `notion_page` frontmatter to Notion.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    # If no subcommand, push changed files
    if ctx.invoked_subcommand is None:
        ctx.invoke(push)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.pass_context
def push(ctx, files: tuple[str, ...] = ()):
    """Push Markdown files to Notion (changed files when none are given)."""
    load_dotenv()

    # Import here to ensure env is loaded first
    from notion_push.config import Config
    from notion_push.errors import ConfigError
    from notion_push.sync_engine import SyncEngine

    debug = ctx.obj.get("debug", False)

    try:
        config = Config.from_env()
        if debug:
            config.debug = True

        engine = SyncEngine(config)

        if files:
            result = asyncio.run(engine.push_files(files))
            engine.print_summary(result)
        else:
            result = asyncio.run(engine.push_changed())

    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Push cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if debug:
            console.print_exception()
        sys.exit(1)

    if not result.success:
        if config.in_github_actions:
            # Marks the workflow step as failed with the per-file details
            print(f"::error::{escape_workflow_data(result.failure_message)}")
        sys.exit(1)


@cli.command()
def version():
    """Show version information."""
    from notion_push import __version__
    console.print(f"GitHub → Notion Push v{__version__}")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
