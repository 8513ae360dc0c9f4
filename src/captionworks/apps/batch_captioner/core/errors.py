"""Exception hierarchy for the batch captioner."""

from __future__ import annotations

from pathlib import Path


class BatchCaptionerError(RuntimeError):
    """Base class for every error raised by the batch captioner."""


# ----------------------------------------------------------------------
# Run-level (fatal) errors
# ----------------------------------------------------------------------
class ConfigurationError(BatchCaptionerError):
    """Invalid arguments detected before any image is scanned."""


class ConflictingModesError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("--add and --update flags cannot be used together")


class PromptReadError(ConfigurationError):
    def __init__(self, path: Path, reason: object) -> None:
        self.path = path
        super().__init__(f"Error reading prompt file '{path}': {reason}")


class EmptyPromptError(ConfigurationError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Prompt file '{path}' is empty")


class InvalidDirectoryError(ConfigurationError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(reason)

    @classmethod
    def inaccessible(cls, path: Path, exc: OSError) -> "InvalidDirectoryError":
        return cls(path, f"Error accessing directory '{path}': {exc}")

    @classmethod
    def not_a_directory(cls, path: Path) -> "InvalidDirectoryError":
        return cls(path, f"Path '{path}' is not a directory")


# ----------------------------------------------------------------------
# Per-image (recoverable) errors
# ----------------------------------------------------------------------
class ImageProcessingError(BatchCaptionerError):
    """Failure confined to a single image; the run continues."""

    message = "image processing failed"

    def __init__(self, path: Path, cause: object = None) -> None:
        self.path = path
        self.cause = cause
        detail = f"{self.message}: {cause}" if cause is not None else self.message
        super().__init__(detail)


class ImageReadError(ImageProcessingError):
    message = "failed to read image"


class ExistingFileReadError(ImageProcessingError):
    message = "failed to read existing txt file"


class GenerationError(ImageProcessingError):
    message = "failed to generate description"


class AppendTargetMissingError(ImageProcessingError):
    message = "failed to open output file for appending"


class OutputWriteError(ImageProcessingError):
    message = "failed to write output file"


__all__ = [
    "AppendTargetMissingError",
    "BatchCaptionerError",
    "ConfigurationError",
    "ConflictingModesError",
    "EmptyPromptError",
    "ExistingFileReadError",
    "GenerationError",
    "ImageProcessingError",
    "ImageReadError",
    "InvalidDirectoryError",
    "OutputWriteError",
    "PromptReadError",
]
