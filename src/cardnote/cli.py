"""cardnote CLI."""

import asyncio
import sys
import time
from pathlib import Path

import click

from .config import DEFAULT_MODEL, get_settings, load_saved_settings, save_settings
from .logging_config import setup_colored_logging, setup_file_logging
from .process import ProcessLock


def _mask(key: str) -> str:
    if not key:
        return "(not set)"
    return f"{key[:3]}...{key[-4:]}" if len(key) > 8 else "***"


def _load_settings():
    try:
        return get_settings()
    except Exception as e:
        click.echo(f"Error loading settings: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """cardnote - business card images in, contact notes out."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite existing files")
def init(force):
    """Prepare the current directory (a note vault) for cardnote."""
    vault_root = Path.cwd()
    state_dir = vault_root / ".cardnote"
    state_dir.mkdir(parents=True, exist_ok=True)
    click.echo("  Created: .cardnote/")

    config_path = state_dir / "config.yaml"
    if not config_path.exists() or force:
        config_path.write_text(
            f"""# cardnote configuration

# OpenAI API key (or set OPENAI_API_KEY in the environment / .env)
openai_api_key: ""

# Vision-capable model
openai_model: {DEFAULT_MODEL}

# Score four rotations and keep the most readable one (4 extra API calls per image)
detect_rotation: true

# What to do with the original image once the note exists: trash | delete
delete_mode: trash
"""
        )
        click.echo("  Created: .cardnote/config.yaml")

    env_example = vault_root / ".env.example"
    if not env_example.exists():
        env_example.write_text("# OpenAI API Key\nOPENAI_API_KEY=sk-...\n")
        click.echo("  Created: .env.example")

    click.echo("")
    click.echo("Vault initialized! Next steps:")
    click.echo("  1. Run 'cardnote config --api-key sk-...' to store your OpenAI API key")
    click.echo("  2. Run 'cardnote watch' and drop business card images into the vault")


@cli.command()
@click.option("--api-key", default=None, help="OpenAI API key (starts with sk-...)")
@click.option("--model", default=None, help=f"Vision-capable model, e.g. {DEFAULT_MODEL} or gpt-4o")
@click.option("--show", is_flag=True, help="Print the effective settings")
def config(api_key, model, show):
    """Store the API key and model for this vault."""
    settings = _load_settings()

    if api_key is not None or model is not None:
        values = {}
        if api_key is not None:
            values["openai_api_key"] = api_key.strip()
        if model is not None:
            values["openai_model"] = model.strip() or DEFAULT_MODEL
        save_settings(settings.config_path, **values)
        click.echo(f"Saved: {settings.config_path}")
        settings = _load_settings()
    elif not show and not load_saved_settings(settings.config_path):
        click.echo("No saved settings. Use --api-key / --model, or --show.")
        return

    click.echo(f"  API key:  {_mask(settings.openai_api_key)}")
    click.echo(f"  Model:    {settings.openai_model}")
    click.echo(f"  Rotation: {'on' if settings.detect_rotation else 'off'}")
    click.echo(f"  Originals: {settings.delete_mode}")


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def process(ctx, file_path):
    """Manually process a single image in the vault."""
    from .engine import Processor

    setup_colored_logging(ctx.obj.get("verbose", False))
    settings = _load_settings()
    processor = Processor(settings, notifier=click.echo)

    result = asyncio.run(processor.process_new_image(Path(file_path).resolve()))

    if result.ok:
        click.echo(f"Created: {result.note_path}")
    elif result.status == "skipped":
        click.echo(f"Skipped: {result.message}", err=True)
        sys.exit(1)
    else:
        click.echo("Processing failed. Check .cardnote/error.log", err=True)
        sys.exit(1)


@cli.command()
@click.option("--daemon", is_flag=True, help="Log to .cardnote/logs/daemon.log instead of the console")
@click.pass_context
def watch(ctx, daemon):
    """Watch the vault and turn new images into contact notes."""
    from .coordinator import WatchService

    verbose = ctx.obj.get("verbose", False)
    settings = _load_settings()

    if daemon:
        setup_file_logging(settings.log_dir, verbose)
    else:
        setup_colored_logging(verbose)

    service = WatchService(settings)
    try:
        started = asyncio.run(service.run())
    except KeyboardInterrupt:
        started = True

    if not started:
        sys.exit(1)


@cli.command()
def status():
    """Show whether a watcher is running for this vault."""
    from .coordinator import LOCK_NAME

    settings = _load_settings()
    lock = ProcessLock(LOCK_NAME, settings.pid_dir)

    click.echo("cardnote status")
    click.echo("=" * 40)
    if lock.is_locked():
        click.echo(f"  Watcher:  running (PID {lock.get_pid()})")
    else:
        click.echo("  Watcher:  not running")
    click.echo(f"  Vault:    {settings.vault_root}")
    click.echo(f"  API key:  {_mask(settings.openai_api_key)}")
    click.echo(f"  Model:    {settings.openai_model}")


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Do not wait for the watcher to exit")
def stop(force):
    """Stop the running watcher."""
    from .coordinator import LOCK_NAME

    settings = _load_settings()
    lock = ProcessLock(LOCK_NAME, settings.pid_dir)

    if not lock.is_locked():
        click.echo("cardnote is not running.")
        return

    pid = lock.get_pid()
    click.echo(f"Stopping watcher (PID {pid})...")

    if not lock.send_shutdown():
        click.echo("Failed to send stop signal.", err=True)
        sys.exit(1)

    if not force:
        for _ in range(10):
            time.sleep(0.5)
            if not lock.is_locked():
                break

    if not force and lock.is_locked():
        click.echo("Process still running. Use --force or check logs.", err=True)
        sys.exit(1)
    click.echo("Stopped.")


if __name__ == "__main__":
    cli()
