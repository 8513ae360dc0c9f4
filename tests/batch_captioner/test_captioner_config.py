from pathlib import Path

import pytest

from captionworks.apps.batch_captioner.core import (
    BatchCaptionerSettings,
    ProcessingMode,
    build_runtime_config,
    load_config,
)
from captionworks.apps.batch_captioner.core.errors import (
    ConfigurationError,
    ConflictingModesError,
    EmptyPromptError,
    InvalidDirectoryError,
    PromptReadError,
)


def test_load_config_defaults(tmp_path):
    settings = load_config(tmp_path)

    assert settings == BatchCaptionerSettings()
    assert settings.timeout is None
    assert settings.stream is True


def test_load_config_reads_pyproject_table(tmp_path):
    (tmp_path / "pyproject.toml").write_text(
        "[tool.captionworks.batch_captioner]\n"
        'base_url = "http://gpu-box:11434"\n'
        "timeout = 90\n"
        "stream = false\n",
        encoding="utf-8",
    )
    nested = tmp_path / "photos" / "2024"
    nested.mkdir(parents=True)

    settings = load_config(nested)

    assert settings.base_url == "http://gpu-box:11434"
    assert settings.timeout == 90.0
    assert settings.stream is False


def test_environment_overrides_pyproject(tmp_path, monkeypatch):
    (tmp_path / "pyproject.toml").write_text(
        "[tool.captionworks.batch_captioner]\ntimeout = 90\n", encoding="utf-8"
    )
    monkeypatch.setenv("CAPTIONWORKS_BATCH_CAPTIONER__TIMEOUT", "none")
    monkeypatch.setenv("CAPTIONWORKS_BATCH_CAPTIONER__KEEP_ALIVE", "5m")

    settings = load_config(tmp_path)

    assert settings.timeout is None
    assert settings.keep_alive == "5m"


def test_build_runtime_config_defaults(prompt_file, image_dir):
    config = build_runtime_config(
        settings=BatchCaptionerSettings(),
        model_name="llava",
        prompt_file=prompt_file,
        directory=image_dir,
    )

    assert config.model_name == "llava"
    assert config.prompt == "Describe this image in one sentence."
    assert config.directory == image_dir
    assert config.mode is ProcessingMode.DEFAULT
    assert config.base_url is None


@pytest.mark.parametrize(
    "add, update, expected",
    [
        (True, False, ProcessingMode.ADD),
        (False, True, ProcessingMode.UPDATE),
    ],
)
def test_build_runtime_config_mode_flags(prompt_file, image_dir, add, update, expected):
    config = build_runtime_config(
        settings=BatchCaptionerSettings(),
        model_name="llava",
        prompt_file=prompt_file,
        directory=image_dir,
        add=add,
        update=update,
    )

    assert config.mode is expected


def test_cli_overrides_win(prompt_file, image_dir):
    settings = BatchCaptionerSettings(base_url="http://a:1", timeout=10, stream=True)

    config = build_runtime_config(
        settings=settings,
        model_name="llava",
        prompt_file=prompt_file,
        directory=image_dir,
        base_url="http://b:2",
        timeout=30,
        stream=False,
    )

    assert config.base_url == "http://b:2"
    assert config.timeout == 30
    assert config.stream is False


def test_conflicting_modes_rejected(prompt_file, image_dir):
    with pytest.raises(ConflictingModesError):
        build_runtime_config(
            settings=BatchCaptionerSettings(),
            model_name="llava",
            prompt_file=prompt_file,
            directory=image_dir,
            add=True,
            update=True,
        )


def test_missing_prompt_file(tmp_path, image_dir):
    with pytest.raises(PromptReadError):
        build_runtime_config(
            settings=BatchCaptionerSettings(),
            model_name="llava",
            prompt_file=tmp_path / "missing.txt",
            directory=image_dir,
        )


def test_whitespace_prompt_is_empty(tmp_path, image_dir):
    blank = tmp_path / "blank.txt"
    blank.write_text(" \n\t\n", encoding="utf-8")

    with pytest.raises(EmptyPromptError, match="is empty"):
        build_runtime_config(
            settings=BatchCaptionerSettings(),
            model_name="llava",
            prompt_file=blank,
            directory=image_dir,
        )


def test_missing_directory(prompt_file, tmp_path):
    with pytest.raises(InvalidDirectoryError, match="Error accessing directory"):
        build_runtime_config(
            settings=BatchCaptionerSettings(),
            model_name="llava",
            prompt_file=prompt_file,
            directory=tmp_path / "nope",
        )


def test_file_is_not_a_directory(prompt_file):
    with pytest.raises(InvalidDirectoryError, match="is not a directory") as info:
        build_runtime_config(
            settings=BatchCaptionerSettings(),
            model_name="llava",
            prompt_file=prompt_file,
            directory=prompt_file,
        )

    assert isinstance(info.value, ConfigurationError)
    assert info.value.path == Path(prompt_file)


def test_log_settings_from_pyproject_and_environment(tmp_path, monkeypatch):
    (tmp_path / "pyproject.toml").write_text(
        "[tool.captionworks.batch_captioner]\n"
        'log_dir = "/var/log/captionworks"\n'
        'log_level = "warning"\n',
        encoding="utf-8",
    )

    settings = load_config(tmp_path)

    assert settings.log_dir == Path("/var/log/captionworks")
    assert settings.log_level == "WARNING"

    monkeypatch.setenv("CAPTIONWORKS_BATCH_CAPTIONER__LOG_DIR", str(tmp_path / "logs"))

    assert load_config(tmp_path).log_dir == tmp_path / "logs"
