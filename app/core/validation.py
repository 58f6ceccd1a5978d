"""Input validation and sanitization helpers for the builder API routes.

Validators raise ``ValidationAppError`` (rendered as HTTP 400 by the global
exception handlers); predicates return bools; sanitizers return cleaned text.

This is a library for the builder's project, page and message CRUD routes,
which are served elsewhere; nothing in this service routes to it.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

MAX_PROJECT_NAME_LENGTH = 50
MAX_PAGE_NAME_LENGTH = 100
MAX_SLUG_LENGTH = 100
MAX_HTML_LENGTH = 500_000
MAX_CSS_LENGTH = 100_000
MAX_JS_LENGTH = 100_000
MAX_MESSAGE_LENGTH = 10_000
MAX_GIF_SIZE = 1_048_576

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_LENGTH = 72

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SLUG_INVALID_RE = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES_RE = re.compile(r"-+")
_SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_INLINE_HANDLER_RE = re.compile(r"""on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)


def _require_text(value: str | None, *, field: str, label: str) -> str:
    if not value or not value.strip():
        raise ValidationAppError(
            code=f"{field}_required",
            message=f"{label} is required",
            details={"field": field},
        )
    return value


def _check_length(value: str, *, field: str, message: str, max_length: int) -> None:
    if len(value) > max_length:
        raise ValidationAppError(
            code=f"{field}_too_long",
            message=message,
            details={"field": field, "max_length": max_length, "actual_length": len(value)},
        )


def validate_project_name(name: str | None) -> str:
    """Validate a project name and return it unchanged."""
    name = _require_text(name, field="project_name", label="Project name")
    _check_length(
        name,
        field="project_name",
        message=f"Project name cannot exceed {MAX_PROJECT_NAME_LENGTH} characters",
        max_length=MAX_PROJECT_NAME_LENGTH,
    )
    return name


def validate_page_name(name: str | None) -> str:
    """Validate a page name and return it unchanged."""
    name = _require_text(name, field="page_name", label="Page name")
    _check_length(
        name,
        field="page_name",
        message=f"Page name cannot exceed {MAX_PAGE_NAME_LENGTH} characters",
        max_length=MAX_PAGE_NAME_LENGTH,
    )
    return name


def sanitize_slug(slug: str) -> str:
    """Reduce a slug to lowercase letters, digits and single hyphens.

    Examples:
        >>> sanitize_slug("  My Cool Page!! ")
        'my-cool-page'
        >>> sanitize_slug("--a__b--")
        'a-b'
    """
    slug = _SLUG_INVALID_RE.sub("-", slug.strip().lower())
    slug = _SLUG_DASHES_RE.sub("-", slug)
    return slug.strip("-")


def validate_slug(slug: str | None) -> str:
    """Validate a page slug and return its sanitized form.

    Args:
        slug: Raw slug as submitted by the client.

    Returns:
        The sanitized slug.

    Raises:
        ValidationAppError: If the slug is missing, has no usable characters,
            or is longer than ``MAX_SLUG_LENGTH`` after sanitizing.
    """
    slug = _require_text(slug, field="slug", label="Slug")

    sanitized = sanitize_slug(slug)
    if not sanitized:
        raise ValidationAppError(
            code="slug_invalid",
            message="Slug contains no valid characters",
            details={"field": "slug"},
        )

    _check_length(
        sanitized,
        field="slug",
        message=f"Slug cannot exceed {MAX_SLUG_LENGTH} characters",
        max_length=MAX_SLUG_LENGTH,
    )
    return sanitized


def validate_page_content(html: str, css: str, js: str) -> None:
    """Validate the size of a page's HTML, CSS and JavaScript sources."""
    for field, label, value, max_length in (
        ("html", "HTML", html, MAX_HTML_LENGTH),
        ("css", "CSS", css, MAX_CSS_LENGTH),
        ("js", "JavaScript", js, MAX_JS_LENGTH),
    ):
        _check_length(
            value,
            field=field,
            message=f"{label} cannot exceed {max_length} characters ({round(max_length / 1000)}KB)",
            max_length=max_length,
        )


def validate_message_content(content: str | None) -> str:
    """Validate a chat message body and return it unchanged."""
    content = _require_text(content, field="message_content", label="Message content")
    _check_length(
        content,
        field="message_content",
        message=(
            f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters "
            f"({round(MAX_MESSAGE_LENGTH / 1000)}KB)"
        ),
        max_length=MAX_MESSAGE_LENGTH,
    )
    return content


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def validate_password(password: str) -> list[str]:
    """Return the list of password rule violations (empty when valid)."""
    errors: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password cannot exceed {MAX_PASSWORD_LENGTH} characters")
    return errors


def sanitize_html(html: str) -> str:
    """Strip script blocks, inline event handlers and ``javascript:`` URLs.

    This is a coarse filter for previews, not a full HTML sanitizer.
    """
    html = _SCRIPT_TAG_RE.sub("", html)
    html = _INLINE_HANDLER_RE.sub("", html)
    return _JS_PROTOCOL_RE.sub("", html)


def validate_file_size(size: int, max_size: int = MAX_GIF_SIZE) -> None:
    """Reject files larger than ``max_size`` bytes."""
    if size > max_size:
        logger.warning(
            "file_size.exceeded",
            extra={"actual_size": size, "max_size": max_size},
        )
        raise ValidationAppError(
            code="file_too_large",
            message=f"File size cannot exceed {round(max_size / 1024 / 1024)}MB",
            details={"max_size": max_size, "actual_size": size},
        )


def validate_mime_type(mime_type: str, allowed_types: Iterable[str]) -> bool:
    return mime_type in set(allowed_types)
