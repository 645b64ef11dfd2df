"""System prompt templates.

The refinement instruction lives in refine.md and is rendered with Jinja2.
It is fixed per release, so the rendered text is built once per process.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

_PROMPTS_DIR = Path(__file__).parent

REFINE_TEMPLATE = "refine"
_TARGET_ASSISTANTS = ("Claude", "ChatGPT", "GitHub Copilot")

# Undefined variables are errors: a template must never silently lose a section
_env = Environment(
    loader=FileSystemLoader(_PROMPTS_DIR),
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=False,
)


def render_prompt(template_name: str, **variables: object) -> str:
    """Render ``<template_name>.md`` with the given variables.

    Raises:
        FileNotFoundError: If the template file does not exist.
        jinja2.UndefinedError: If the template uses a variable not passed.
    """
    try:
        template = _env.get_template(f"{template_name}.md")
    except TemplateNotFound:
        raise FileNotFoundError(
            f"Prompt template not found: {_PROMPTS_DIR / f'{template_name}.md'}"
        ) from None
    return template.render(**variables).strip()


@lru_cache(maxsize=1)
def refine_system_prompt() -> str:
    """System instruction sent with every refinement request."""
    return render_prompt(REFINE_TEMPLATE, assistants=_TARGET_ASSISTANTS)
