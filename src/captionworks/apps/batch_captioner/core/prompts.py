"""Prompt construction for the batch captioner."""

from __future__ import annotations

from typing import Optional

from .models import ProcessingMode

UPDATE_TEMPLATE = (
    "{prompt}\n\n"
    "Existing description:\n"
    "{existing}\n\n"
    "Please update and improve the above description."
)


def build_prompt(
    prompt: str, mode: ProcessingMode, existing: Optional[str] = None
) -> str:
    """Return the prompt sent to the model for one image.

    Update mode embeds the stripped prior description and asks the model to
    revise it; the other modes pass *prompt* through untouched.
    """

    if mode is not ProcessingMode.UPDATE:
        return prompt
    if existing is None:
        raise ValueError("update mode requires the existing description")
    return UPDATE_TEMPLATE.format(prompt=prompt, existing=existing.strip())
