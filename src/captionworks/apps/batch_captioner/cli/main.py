"""Command line interface for the batch captioner."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from captionworks.libs.ollama_api import OllamaClient, OllamaError
from captionworks.logging_utils import configure_logging

from ..core.config import BatchCaptionConfig, build_runtime_config, load_config
from ..core.errors import BatchCaptionerError
from ..core.runner import BatchCaptionRunner

LOG_NAME = "batch_captioner"
logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Describe every image in a folder with a local vision model.",
    add_completion=False,
)


def _fail(message: str) -> NoReturn:
    logger.error(message)
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _print_banner(config: BatchCaptionConfig) -> None:
    typer.echo(f"Using model: {config.model_name}")
    typer.echo(f"Using prompt: {config.prompt}")
    typer.echo(f"Processing images in directory: {config.directory}")
    typer.echo(f"Mode: {config.mode.banner}\n")


@app.command()
def caption(  # noqa: PLR0913
    model_name: str = typer.Argument(
        ..., metavar="MODEL_NAME", help="Ollama model to caption with (e.g. llava)."
    ),
    prompt_file: Path = typer.Argument(
        ..., metavar="PROMPT_FILE", help="UTF-8 text file holding the prompt."
    ),
    directory: Path = typer.Argument(
        Path("."), metavar="[DIRECTORY]", help="Folder of images (default: cwd)."
    ),
    add: bool = typer.Option(
        False,
        "--add",
        help="Append new description to existing txt files (skip if file doesn't exist).",
    ),
    update: bool = typer.Option(
        False,
        "--update",
        help="Update existing descriptions using the model (skip if file doesn't exist).",
    ),
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        help="Ollama endpoint (defaults to configuration, then OLLAMA_HOST).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds (default: wait indefinitely).",
    ),
    stream: Optional[bool] = typer.Option(
        None,
        "--stream/--no-stream",
        help="Stream tokens from the model or wait for a single response.",
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help=f"Directory for {LOG_NAME}.log (default: configuration, then CAPTIONWORKS_LOG_DIR).",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level and mirror the log to stderr."
    ),
) -> None:
    """Write a <image>.txt description next to each image in DIRECTORY.

    Example: captionworks-batch-captioner --add llava ./prompt.txt ./images
    """

    settings = load_config(Path.cwd())
    try:
        log_path = configure_logging(
            LOG_NAME,
            level=logging.DEBUG if verbose else settings.log_level,
            log_dir=log_dir or settings.log_dir,
            console=verbose,
        )
    except (OSError, ValueError) as exc:
        typer.echo(f"Error: Cannot set up logging: {exc}", err=True)
        raise typer.Exit(1) from exc
    logger.info("Batch captioner logging initialised → %s", log_path)

    try:
        config = build_runtime_config(
            settings=settings,
            model_name=model_name,
            prompt_file=prompt_file,
            directory=directory,
            add=add,
            update=update,
            base_url=base_url,
            timeout=timeout,
            stream=stream,
        )
    except BatchCaptionerError as exc:
        _fail(str(exc))

    _print_banner(config)

    try:
        client = OllamaClient(
            config.base_url, timeout=config.timeout, keep_alive=config.keep_alive
        )
    except OllamaError as exc:
        _fail(
            f"Failed to create Ollama client: {exc}\n"
            "Make sure Ollama is installed and running."
        )

    with client:
        runner = BatchCaptionRunner(config, client=client, echo=typer.echo)
        try:
            runner.run()
        except BatchCaptionerError as exc:
            _fail(str(exc))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
