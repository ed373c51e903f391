import platform
import typer
from pathlib import Path
from typing import Optional

import PIL
from pydantic import ValidationError
from rich.console import Console
from avify.config.loader import load_config
from avify.config.models import AppConfig
from avify.domain.errors import ConfigurationError, TraversalError
from avify.domain.models import CollisionPolicy
from avify.infrastructure.event_bus import EventBus
from avify.infrastructure.file_scanner import FileScanner, PathFilter
from avify.infrastructure.image_codec import ImageCodec
from avify.infrastructure.logging import setup_logging
from avify.pipeline.orchestrator import Orchestrator
from avify.pipeline.transform import TransformTask
from avify.ui.reporter import ProgressReporter
from avify.ui.summary import summary_lines

VERSION = "0.1"

app = typer.Typer(help="Avify converts your reference images to AVIF to save storage space")


def _fail(message: str):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _print_version(value: bool):
    if value:
        typer.echo(f"avify {VERSION} (Python {platform.python_version()}, Pillow {PIL.__version__})")
        raise typer.Exit()


@app.command()
def convert(
    root: Path = typer.Argument(..., help="Directory to scan for images"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Override number of concurrent conversions"),
    quality: Optional[int] = typer.Option(None, "--quality", help="Override encoder quality (0-100)"),
    effort: Optional[int] = typer.Option(None, "--effort", help="Override encoder effort (0-9)"),
    lossless: Optional[bool] = typer.Option(None, "--lossless/--lossy", help="Enable/disable lossless encoding"),
    output_format: Optional[str] = typer.Option(None, "--format", help="Output format (avif, webp)"),
    keep_originals: bool = typer.Option(False, "--keep-originals", help="Do not delete source files after conversion"),
    on_collision: Optional[CollisionPolicy] = typer.Option(
        None,
        "--on-collision",
        help="What to do when the output file already exists (overwrite, error)"
    ),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_print_version, is_eager=True, help="Print the avify version and exit"
    ),
):
    """Convert every matching image under ROOT and print the space saved."""
    try:
        config = load_config(config_path)
        # Apply CLI overrides
        general = config.general.model_dump()
        codec = config.codec.model_dump()
        if threads is not None: general["threads"] = threads
        if keep_originals: general["remove_originals"] = False
        if on_collision is not None: general["on_collision"] = on_collision
        if log_path is not None: general["log_path"] = str(log_path)
        if debug: general["debug"] = True
        if quality is not None: codec["quality"] = quality
        if effort is not None: codec["effort"] = effort
        if lossless is not None: codec["lossless"] = lossless
        if output_format is not None: codec["format"] = output_format
        config = AppConfig.model_validate({"general": general, "codec": codec})
    except (ValidationError, ConfigurationError, FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    logger = setup_logging(Path(config.general.log_path), debug=config.general.debug) if config.general.log_path else None
    if logger:
        logger.info(f"avify started: root={root}")
        logger.info(
            f"Config: threads={config.general.threads}, format={config.codec.format}, "
            f"quality={config.codec.quality}, effort={config.codec.effort}, lossless={config.codec.lossless}, "
            f"remove_originals={config.general.remove_originals}, on_collision={config.general.on_collision.value}"
        )

    try:
        path_filter = PathFilter(extensions=config.general.extensions, pattern=config.general.pattern)
        codec_adapter = ImageCodec(config.codec)
    except ConfigurationError as exc:
        _fail(str(exc))

    bus = EventBus()
    console = Console()
    ProgressReporter(bus, console)

    scanner = FileScanner(path_filter, event_bus=bus, report_every=config.general.discovery_report_every)
    transformer = TransformTask(
        codec_adapter,
        remove_originals=config.general.remove_originals,
        on_collision=config.general.on_collision,
        debug=config.general.debug,
    )
    orchestrator = Orchestrator(
        event_bus=bus,
        file_scanner=scanner,
        transformer=transformer,
        threads=config.general.threads,
    )

    try:
        stats = orchestrator.run(root)
    except TraversalError as exc:
        if logger:
            logger.error(f"Traversal failed: {exc}")
        _fail(str(exc))
    except Exception as exc:
        if logger:
            logger.exception(f"Fatal error: {exc}")
        typer.secho(f"Fatal Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if stats is None:
        typer.echo("No images found")
        return

    typer.echo()
    for line in summary_lines(stats):
        typer.echo(line)


if __name__ == "__main__":
    app()
