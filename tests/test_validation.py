"""Unit tests for builder input validation helpers."""

import pytest

from app.core.errors import ValidationAppError
from app.core.validation import (
    MAX_GIF_SIZE,
    MAX_MESSAGE_LENGTH,
    sanitize_html,
    sanitize_slug,
    validate_email,
    validate_file_size,
    validate_message_content,
    validate_mime_type,
    validate_page_content,
    validate_page_name,
    validate_password,
    validate_project_name,
    validate_slug,
)


class TestNames:
    def test_valid_project_name(self) -> None:
        assert validate_project_name("My Geocities Tribute") == "My Geocities Tribute"

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_project_name_required(self, name) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_project_name(name)

        assert exc_info.value.code == "project_name_required"
        assert exc_info.value.message == "Project name is required"

    def test_project_name_length_limit(self) -> None:
        assert validate_project_name("x" * 50)

        with pytest.raises(ValidationAppError) as exc_info:
            validate_project_name("x" * 51)

        assert exc_info.value.code == "project_name_too_long"
        assert exc_info.value.details["actual_length"] == 51

    def test_page_name_length_limit(self) -> None:
        assert validate_page_name("p" * 100)

        with pytest.raises(ValidationAppError) as exc_info:
            validate_page_name("p" * 101)

        assert exc_info.value.message == "Page name cannot exceed 100 characters"


class TestSlugs:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("About Me", "about-me"),
            ("  My Cool Page!! ", "my-cool-page"),
            ("--a__b--", "a-b"),
            ("guest-book-2000", "guest-book-2000"),
            ("ÜBER", "ber"),
        ],
    )
    def test_sanitize(self, raw: str, expected: str) -> None:
        assert sanitize_slug(raw) == expected

    def test_validate_returns_sanitized(self) -> None:
        assert validate_slug("Links & Webrings") == "links-webrings"

    def test_required(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_slug("  ")
        assert exc_info.value.code == "slug_required"

    def test_no_valid_characters(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_slug("!!!")
        assert exc_info.value.code == "slug_invalid"

    def test_too_long_after_sanitizing(self) -> None:
        assert validate_slug("a" * 100) == "a" * 100

        with pytest.raises(ValidationAppError) as exc_info:
            validate_slug("a" * 101)
        assert exc_info.value.code == "slug_too_long"


class TestContent:
    def test_page_content_within_limits(self) -> None:
        validate_page_content("<h1>hi</h1>", "body{}", "")

    @pytest.mark.parametrize(
        ("html", "css", "js", "code", "message"),
        [
            ("x" * 500_001, "", "", "html_too_long", "HTML cannot exceed 500000 characters (500KB)"),
            ("", "x" * 100_001, "", "css_too_long", "CSS cannot exceed 100000 characters (100KB)"),
            ("", "", "x" * 100_001, "js_too_long", "JavaScript cannot exceed 100000 characters (100KB)"),
        ],
    )
    def test_page_content_limits(self, html: str, css: str, js: str, code: str, message: str) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_page_content(html, css, js)

        assert exc_info.value.code == code
        assert exc_info.value.message == message

    def test_message_content(self) -> None:
        assert validate_message_content("add a spinning skull gif") == "add a spinning skull gif"

        with pytest.raises(ValidationAppError) as exc_info:
            validate_message_content("")
        assert exc_info.value.message == "Message content is required"

        with pytest.raises(ValidationAppError) as exc_info:
            validate_message_content("m" * (MAX_MESSAGE_LENGTH + 1))
        assert exc_info.value.message == "Message cannot exceed 10000 characters (10KB)"


class TestAccounts:
    @pytest.mark.parametrize(
        ("email", "valid"),
        [
            ("webmaster@retro.example", True),
            ("a@b.co", True),
            ("no-at-sign.example", False),
            ("spaces in@mail.com", False),
            ("missing@tld", False),
        ],
    )
    def test_email(self, email: str, valid: bool) -> None:
        assert validate_email(email) is valid

    def test_password_rules(self) -> None:
        assert validate_password("hunter22") == []
        assert validate_password("short") == ["Password must be at least 6 characters long"]
        assert validate_password("p" * 73) == ["Password cannot exceed 72 characters"]


class TestSanitizeHtml:
    def test_strips_scripts_handlers_and_js_urls(self) -> None:
        html = (
            '<div onclick="steal()">Hi</div>'
            "<script>alert('x')</script>"
            '<a href="javascript:alert(1)">link</a>'
        )

        cleaned = sanitize_html(html)

        assert "<script" not in cleaned
        assert "onclick" not in cleaned
        assert "javascript:" not in cleaned
        assert "Hi" in cleaned
        assert "link" in cleaned

    def test_keeps_marquee(self) -> None:
        html = "<marquee>Welcome to my homepage</marquee>"
        assert sanitize_html(html) == html


class TestFiles:
    def test_file_size(self) -> None:
        validate_file_size(MAX_GIF_SIZE)

        with pytest.raises(ValidationAppError) as exc_info:
            validate_file_size(MAX_GIF_SIZE + 1)

        assert exc_info.value.code == "file_too_large"
        assert exc_info.value.message == "File size cannot exceed 1MB"

    def test_custom_max_size(self) -> None:
        with pytest.raises(ValidationAppError):
            validate_file_size(11, max_size=10)

    def test_mime_type(self) -> None:
        assert validate_mime_type("image/gif", ["image/gif", "image/png"]) is True
        assert validate_mime_type("image/svg+xml", ("image/gif",)) is False
