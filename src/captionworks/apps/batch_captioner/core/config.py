"""Configuration helpers for the batch captioner."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import tomllib

from .errors import (
    ConflictingModesError,
    EmptyPromptError,
    InvalidDirectoryError,
    PromptReadError,
)
from .models import ProcessingMode

logger = logging.getLogger(__name__)

_CONFIG_ENV_PREFIX = "CAPTIONWORKS_BATCH_CAPTIONER__"


def _find_pyproject(start: Optional[Path] = None) -> Optional[Path]:
    """Locate the nearest ``pyproject.toml`` relative to *start*."""

    current = (start or Path.cwd()).resolve()
    for candidate in [current, *current.parents]:
        pyproject = candidate / "pyproject.toml"
        if pyproject.exists():
            return pyproject
    return None


def _coerce_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def _coerce_timeout(value: object, default: Optional[float]) -> Optional[float]:
    """Parse a timeout in seconds; ``none``/``0``/negative disable it."""

    if value is None:
        return default
    if isinstance(value, str) and value.strip().lower() in {"", "none", "off"}:
        return None
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return seconds if seconds > 0 else None


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_path(value: object) -> Optional[Path]:
    text = _optional_str(value)
    return Path(text).expanduser() if text else None


@dataclass(frozen=True)
class BatchCaptionerSettings:
    """Default configuration values sourced from project metadata."""

    base_url: Optional[str] = None
    timeout: Optional[float] = None
    stream: bool = True
    keep_alive: Optional[str] = None
    log_dir: Optional[Path] = None
    log_level: str = "INFO"


@dataclass(frozen=True)
class BatchCaptionConfig:
    """Fully resolved runtime configuration for a CLI invocation."""

    model_name: str
    prompt: str
    directory: Path
    mode: ProcessingMode = ProcessingMode.DEFAULT
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    stream: bool = True
    keep_alive: Optional[str] = None


def _merge_dict(
    base: Dict[str, object], override: Optional[Dict[str, object]]
) -> Dict[str, object]:
    merged = base.copy()
    if not override:
        return merged
    for key, value in override.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def _load_pyproject_settings(start: Optional[Path]) -> Dict[str, object]:
    pyproject = _find_pyproject(start)
    if not pyproject:
        return {}
    try:
        with pyproject.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", pyproject, exc)
        return {}

    tool_cfg = data.get("tool", {}).get("captionworks", {})
    if not isinstance(tool_cfg, dict):
        return {}

    captioner_cfg = tool_cfg.get("batch_captioner")
    return captioner_cfg if isinstance(captioner_cfg, dict) else {}


def _load_env_settings() -> Dict[str, object]:
    values: Dict[str, object] = {}
    for env_key, env_value in os.environ.items():
        if not env_key.startswith(_CONFIG_ENV_PREFIX):
            continue
        key = env_key[len(_CONFIG_ENV_PREFIX) :].lower()
        values[key] = env_value
    return values


def load_config(start: Optional[Path] = None) -> BatchCaptionerSettings:
    """Load project-level defaults, letting environment variables win."""

    defaults = BatchCaptionerSettings()
    result: Dict[str, object] = {}
    result = _merge_dict(result, _load_pyproject_settings(start))
    result = _merge_dict(result, _load_env_settings())

    return BatchCaptionerSettings(
        base_url=_optional_str(result.get("base_url")) or defaults.base_url,
        timeout=_coerce_timeout(result.get("timeout"), defaults.timeout),
        stream=_coerce_bool(result.get("stream"), defaults.stream),
        keep_alive=_optional_str(result.get("keep_alive")) or defaults.keep_alive,
        log_dir=_optional_path(result.get("log_dir")) or defaults.log_dir,
        log_level=(_optional_str(result.get("log_level")) or defaults.log_level).upper(),
    )


def read_prompt(prompt_file: Path) -> str:
    """Read and strip the prompt text, rejecting unreadable or blank files."""

    try:
        text = Path(prompt_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PromptReadError(prompt_file, exc) from exc
    prompt = text.strip()
    if not prompt:
        raise EmptyPromptError(prompt_file)
    return prompt


def validate_directory(directory: Path) -> Path:
    path = Path(directory)
    try:
        info = path.stat()
    except OSError as exc:
        raise InvalidDirectoryError.inaccessible(path, exc) from exc
    if not stat.S_ISDIR(info.st_mode):
        raise InvalidDirectoryError.not_a_directory(path)
    return path


def build_runtime_config(
    *,
    settings: BatchCaptionerSettings,
    model_name: str,
    prompt_file: Path,
    directory: Path = Path("."),
    add: bool = False,
    update: bool = False,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    stream: Optional[bool] = None,
) -> BatchCaptionConfig:
    """Validate CLI arguments and merge them over *settings*.

    Checks run in the order the run would hit them: mode flags, prompt file,
    then the target directory. The first failure is raised.
    """

    if add and update:
        raise ConflictingModesError()
    mode = ProcessingMode.from_flags(add=add, update=update)

    prompt = read_prompt(prompt_file)
    target = validate_directory(directory)

    return BatchCaptionConfig(
        model_name=model_name,
        prompt=prompt,
        directory=target,
        mode=mode,
        base_url=base_url or settings.base_url,
        timeout=_coerce_timeout(timeout, settings.timeout),
        stream=settings.stream if stream is None else stream,
        keep_alive=settings.keep_alive,
    )
