"""
Template rendering and filename helpers.

Templates are Jinja2 text (``{{ user.name }}``, ``{% if prefix %}``).
Rendering is a pure function of the template string and variables; reading
template files is the caller's job.
"""

import re
from collections.abc import Callable
from typing import Any

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from .errors import ValidationError

Renderer = Callable[[str, dict[str, Any]], str]

_environment = SandboxedEnvironment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=ChainableUndefined,
)

TEMPLATE_TAG = re.compile(r"\{\{.*?\}\}|\{%.*?%\}|\{#.*?#\}", re.DOTALL)


def render_template(template: str, variables: dict[str, Any]) -> str:
    """
    Render a template string.

    Missing variables render as empty text.

    Raises:
        ValidationError: If the template cannot be parsed or rendered
    """
    try:
        return _environment.from_string(template).render(**variables)
    except TemplateError as e:
        raise ValidationError(f"Template error: {e}") from e


def strip_template_tags(text: str) -> str:
    """Remove all template expressions and statements from ``text``."""
    return TEMPLATE_TAG.sub("", text)


def sanitize_for_filename(text: str) -> str:
    """
    Lowercase, keep letters, digits and underscores, join words with "_".

    >>> sanitize_for_filename("Acme Corp. (Remote)")
    'acme_corp_remote'
    """
    text = re.sub(r"[^a-z0-9\s_]", "", text.lower())
    text = re.sub(r"[\s_]+", "_", text)
    return text.strip("_")


def normalize_template_name(text: str) -> str:
    """Whitespace to underscores, collapsed, trimmed; case and punctuation kept."""
    text = re.sub(r"\s+", "_", text.strip())
    text = re.sub(r"_+", "_", text)
    return text.strip("_")


def generate_collection_id(parts: list[str], date_stamp: str | None = None, max_length: int = 50) -> str:
    """
    Build an id like ``acme_corp_engineer_20250121``.

    The descriptive part is truncated so the date suffix always survives.
    """
    base = "_".join(p for p in (sanitize_for_filename(part) for part in parts) if p)
    if date_stamp:
        room = max_length - len(date_stamp) - 1
        base = base[:room].rstrip("_")
        return f"{base}_{date_stamp}" if base else date_stamp
    return base[:max_length].rstrip("_")
