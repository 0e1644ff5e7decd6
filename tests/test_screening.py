"""Tests for request and input screening heuristics."""

import pytest

from app.services.screening import (
    MAX_INPUT_CHARS,
    detect_sql_injection,
    detect_xss,
    escape_html,
    is_suspicious_request,
    validate_input,
)

BROWSER_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/126.0"


class TestSuspiciousRequest:
    """Heuristics that feed the abuse tracker from the admission layer."""

    @pytest.mark.parametrize("user_agent", [None, ""])
    def test_missing_user_agent(self, user_agent) -> None:
        assert is_suspicious_request(user_agent, "/") is True

    @pytest.mark.parametrize(
        "user_agent",
        ["curl/8.4.0", "python-requests/2.32", "Googlebot/2.1", "Wget/1.21", "sqlmap/1.7"],
    )
    def test_tool_like_user_agents(self, user_agent: str) -> None:
        assert is_suspicious_request(user_agent, "/") is True

    @pytest.mark.parametrize(
        "path",
        ["/wp-login.php", "/admin", "/config.json", "/index.asp", "/api/users"],
    )
    def test_probing_paths(self, path: str) -> None:
        assert is_suspicious_request(BROWSER_UA, path) is True

    @pytest.mark.parametrize("path", ["/", "/api/submit", "/api/security-status", "/health"])
    def test_ordinary_traffic(self, path: str) -> None:
        assert is_suspicious_request(BROWSER_UA, path) is False


class TestInjectionDetection:
    @pytest.mark.parametrize(
        "value",
        ["1 OR 1=1", "Robert'); DROP TABLE students", "name -- comment", "UNION SELECT x"],
    )
    def test_sql_injection_detected(self, value: str) -> None:
        assert detect_sql_injection(value) is True

    def test_plain_text_is_not_sql(self) -> None:
        assert detect_sql_injection("I enjoy building web apps with friends") is False

    @pytest.mark.parametrize(
        "value",
        [
            "<script>alert(1)</script>",
            "javascript:void(0)",
            '<img src=x onerror="x">',
            "<iframe src=x>",
            "document.cookie",
        ],
    )
    def test_xss_detected(self, value: str) -> None:
        assert detect_xss(value) is True

    def test_plain_text_is_not_xss(self) -> None:
        assert detect_xss("Hands on workshops with mentors") is False


class TestValidateInput:
    def test_escapes_html(self) -> None:
        assert escape_html("<b>\"x\" & 'y'/</b>") == "&lt;b&gt;&quot;x&quot; & &#x27;y&#x27;&#x2F;&lt;&#x2F;b&gt;"

    def test_trims_and_accepts_text(self) -> None:
        check = validate_input("  Asha  ")

        assert check.valid is True
        assert check.sanitized == "Asha"
        assert check.error is None

    @pytest.mark.parametrize(
        "value, error",
        [
            (None, "Input is required"),
            ("", "Input is required"),
            (42, "Input is required"),
            ("   ", "Input cannot be empty"),
            ("x" * (MAX_INPUT_CHARS + 1), "Input too long"),
            ("<object data=x>", "Invalid characters detected"),
        ],
    )
    def test_rejections(self, value, error: str) -> None:
        check = validate_input(value)

        assert check.valid is False
        assert check.error == error

    def test_email_format(self) -> None:
        assert validate_input("asha@example.com", "email").valid is True
        assert validate_input("asha.example.com", "email").error == "Invalid email format"

    def test_number_format(self) -> None:
        assert validate_input("2023001", "number").valid is True
        assert validate_input("20A3", "number").error == "Invalid number format"
