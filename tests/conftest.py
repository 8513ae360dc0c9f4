import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# The CLI module configures file logging on import; keep it out of the repo.
os.environ.setdefault(
    "CAPTIONWORKS_LOG_DIR", tempfile.mkdtemp(prefix="captionworks-test-logs-")
)


def create_test_image(path: Path, fmt: str = "JPEG") -> Path:
    image = Image.new("RGB", (32, 32), color=(255, 128, 0))
    image.save(path, format=fmt)
    return path


class StubClient:
    """Stand-in for OllamaClient that records calls and replays fragments."""

    def __init__(
        self,
        fragments: Sequence[str] = ("A small ", "orange square."),
        error: Optional[Exception] = None,
    ) -> None:
        self.fragments = list(fragments)
        self.error = error
        self.calls: List[Tuple[str, str, List[bytes], bool]] = []
        self.closed = False

    def generate(self, model, prompt, images=(), *, stream=True):
        self.calls.append((model, prompt, list(images), stream))
        if self.error is not None:
            raise self.error
        yield from self.fragments

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@pytest.fixture
def image_dir(tmp_path):
    directory = tmp_path / "images"
    directory.mkdir()
    return directory


@pytest.fixture
def prompt_file(tmp_path):
    path = tmp_path / "prompt.txt"
    path.write_text("  Describe this image in one sentence.\n", encoding="utf-8")
    return path


@pytest.fixture
def stub_client():
    return StubClient()
