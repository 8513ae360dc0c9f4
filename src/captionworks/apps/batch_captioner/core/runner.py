"""Execution harness for the batch captioner."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from captionworks.libs.ollama_api import OllamaClient

from .config import BatchCaptionConfig
from .discovery import filter_by_mode, scan_directory, sidecar_path
from .errors import (
    AppendTargetMissingError,
    ExistingFileReadError,
    GenerationError,
    ImageProcessingError,
    ImageReadError,
    InvalidDirectoryError,
    OutputWriteError,
)
from .models import ImageOutcome, ProcessingMode, RunSummary
from .prompts import build_prompt

logger = logging.getLogger(__name__)

SUMMARY_RULE = "=" * 50


class DescriptionClient(Protocol):
    """Anything that turns (model, prompt, images) into text fragments."""

    def generate(
        self,
        model: str,
        prompt: str,
        images: Sequence[bytes] = (),
        *,
        stream: bool = True,
    ) -> Iterable[str]: ...


def _open_existing(path: str, flags: int) -> int:
    # Append must never create the sidecar.
    return os.open(path, flags & ~os.O_CREAT)


class BatchCaptionRunner:
    """Scan a directory and caption each image, one at a time."""

    def __init__(
        self,
        config: BatchCaptionConfig,
        *,
        client: Optional[DescriptionClient] = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.config = config
        self._client = client
        self._echo = echo

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self) -> RunSummary:
        mode = self.config.mode
        logger.info(
            "Starting batch caption run: dir=%s model=%s mode=%s",
            self.config.directory,
            self.config.model_name,
            mode.value,
        )

        images, skipped = self.discover_images()
        summary = RunSummary(skipped_count=skipped)
        if skipped:
            self._echo(f"Skipped {skipped} image(s) without existing txt files.")

        if not images:
            if mode.requires_existing:
                message = "No image files with existing txt files found in the directory."
            else:
                message = "No image files found in the directory."
            logger.warning(message)
            self._echo(message)
            return summary

        self._echo(f"Found {len(images)} image(s) to process.\n")

        for index, image_path in enumerate(images, start=1):
            self._echo(f"[{index}/{len(images)}] Processing: {image_path.name}...")
            try:
                outcome = self.process_image(image_path)
            except ImageProcessingError as exc:
                logger.error("Captioning failed for %s: %s", image_path, exc)
                self._echo(f"  ❌ Error: {exc}")
                outcome = ImageOutcome(
                    image=image_path,
                    sidecar=sidecar_path(image_path),
                    success=False,
                    error=str(exc),
                )
            else:
                self._echo(
                    f"  ✓ {mode.result_verb}: {outcome.sidecar.name} "
                    f"({outcome.elapsed_seconds:.2f} sec)"
                )
            summary.record(outcome)
            self._echo("")

        self._echo(SUMMARY_RULE)
        self._echo("Processing complete!")
        self._echo(summary.as_line())
        logger.info(
            "Completed batch caption run: %d ok, %d failed, %d skipped",
            summary.success_count,
            summary.error_count,
            summary.skipped_count,
        )
        return summary

    # ------------------------------------------------------------------
    # Discovery & processing
    # ------------------------------------------------------------------
    def discover_images(self) -> Tuple[List[Path], int]:
        try:
            images = scan_directory(self.config.directory)
        except OSError as exc:
            raise InvalidDirectoryError.inaccessible(self.config.directory, exc) from exc
        return filter_by_mode(images, self.config.mode)

    def process_image(self, image_path: Path) -> ImageOutcome:
        """Read, prompt, generate and write for a single image.

        Raises an :class:`ImageProcessingError` subclass naming the stage that
        failed; nothing is written unless generation succeeded.
        """

        started = time.perf_counter()
        mode = self.config.mode
        target = sidecar_path(image_path)

        try:
            image_bytes = image_path.read_bytes()
        except OSError as exc:
            raise ImageReadError(image_path, exc) from exc

        existing: Optional[str] = None
        if mode is ProcessingMode.UPDATE:
            # Raw bytes keep CRLF endings; invalid UTF-8 becomes U+FFFD.
            try:
                existing = target.read_bytes().decode("utf-8", errors="replace")
            except OSError as exc:
                raise ExistingFileReadError(image_path, exc) from exc

        prompt = build_prompt(self.config.prompt, mode, existing)
        description = self._generate(image_path, prompt, image_bytes)
        self._write(image_path, target, description)

        elapsed = time.perf_counter() - started
        logger.info(
            "%s %s (%d chars, %.2fs)",
            mode.result_verb,
            target,
            len(description),
            elapsed,
        )
        return ImageOutcome(
            image=image_path, sidecar=target, success=True, elapsed_seconds=elapsed
        )

    def _generate(self, image_path: Path, prompt: str, image_bytes: bytes) -> str:
        fragments: List[str] = []
        try:
            for fragment in self._get_client().generate(
                self.config.model_name,
                prompt,
                [image_bytes],
                stream=self.config.stream,
            ):
                fragments.append(fragment)
        except Exception as exc:  # noqa: BLE001
            raise GenerationError(image_path, exc) from exc
        return "".join(fragments)

    def _write(self, image_path: Path, target: Path, description: str) -> None:
        appending = self.config.mode is ProcessingMode.ADD
        text = "\n\n" + description if appending else description
        # Encode up front so a bad response never truncates the old sidecar.
        try:
            content = text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise OutputWriteError(image_path, exc) from exc

        try:
            if appending:
                handle = open(target, "ab", opener=_open_existing)
            else:
                handle = open(target, "wb")
        except FileNotFoundError as exc:
            if appending:
                raise AppendTargetMissingError(image_path, exc) from exc
            raise OutputWriteError(image_path, exc) from exc
        except OSError as exc:
            raise OutputWriteError(image_path, exc) from exc

        try:
            with handle:
                handle.write(content)
        except OSError as exc:
            raise OutputWriteError(image_path, exc) from exc

    # ------------------------------------------------------------------
    # Lazy accessors
    # ------------------------------------------------------------------
    def _get_client(self) -> DescriptionClient:
        if self._client is None:
            self._client = OllamaClient(
                self.config.base_url,
                timeout=self.config.timeout,
                keep_alive=self.config.keep_alive,
            )
        return self._client
