"""Core modules for the batch captioner."""

from .config import (  # noqa: F401
    BatchCaptionConfig,
    BatchCaptionerSettings,
    build_runtime_config,
    load_config,
)
from .models import ImageOutcome, ProcessingMode, RunSummary  # noqa: F401
from .runner import BatchCaptionRunner  # noqa: F401

__all__ = [
    "BatchCaptionConfig",
    "BatchCaptionerSettings",
    "BatchCaptionRunner",
    "ImageOutcome",
    "ProcessingMode",
    "RunSummary",
    "build_runtime_config",
    "load_config",
]
