import pytest

from captionworks.apps.batch_captioner.core.models import ProcessingMode
from captionworks.apps.batch_captioner.core.prompts import build_prompt


@pytest.mark.parametrize("mode", [ProcessingMode.DEFAULT, ProcessingMode.ADD])
def test_prompt_passes_through(mode):
    assert build_prompt("Describe it.", mode) == "Describe it."
    assert build_prompt("Describe it.", mode, existing="ignored") == "Describe it."


def test_update_prompt_embeds_trimmed_existing_description():
    prompt = build_prompt(
        "Describe it.", ProcessingMode.UPDATE, existing="\n  A red car.  \n\n"
    )

    assert prompt == (
        "Describe it.\n\nExisting description:\nA red car.\n\n"
        "Please update and improve the above description."
    )


def test_update_prompt_requires_existing_text():
    with pytest.raises(ValueError):
        build_prompt("Describe it.", ProcessingMode.UPDATE)
