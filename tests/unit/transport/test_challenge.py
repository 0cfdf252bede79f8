"""Tests for rate-limit challenge extraction."""

import pytest

from relaybench.transport.challenge import (
    extract_challenge,
    rate_limit_details,
    wait_hint_from_text,
)


class TestExtractChallenge:
    def test_token_in_plain_string(self):
        text = "Rate limit exceeded, solve signalcaptcha://abc.def-123 first"
        assert extract_challenge(text) == "signalcaptcha://abc.def-123"

    def test_nested_captcha_field(self):
        payload = {"error": {"details": [{"captcha": "see signalcaptcha://tok"}]}}
        assert extract_challenge(payload) == "signalcaptcha://tok"

    def test_challenge_key_returns_value(self):
        assert extract_challenge({"data": {"challenge": "0e6b-uuid"}}) == "0e6b-uuid"

    def test_bare_uuid_under_other_key_ignored(self):
        payload = {"recipient": "7c4b0a6e-2f1a-4d57-9a0e-9a1b2c3d4e5f"}
        assert extract_challenge(payload) is None

    def test_cyclic_payload_terminates(self):
        payload = {"a": []}
        payload["a"].append(payload)
        assert extract_challenge(payload) is None

    @pytest.mark.parametrize("payload", [None, 5, "", [], {}])
    def test_nothing_found(self, payload):
        assert extract_challenge(payload) is None


class TestRateLimitDetails:
    def test_structured_error(self):
        error = {
            "code": -5,
            "message": "Rate limit",
            "data": {"challenge": "tok-1", "options": ["captcha", "pushChallenge"], "wait": 12},
        }
        assert rate_limit_details(error) == ("tok-1", ["captcha", "pushChallenge"], 12.0)

    def test_alternate_keys(self):
        error = {"data": {"token": "tok-2", "availableOptions": "captcha", "retryAfter": "3.5"}}
        assert rate_limit_details(error) == ("tok-2", ["captcha"], 3.5)

    def test_challenge_found_in_message(self):
        error = {"message": "Proof required: signalcaptcha://xyz"}
        assert rate_limit_details(error) == ("signalcaptcha://xyz", [], None)

    def test_unparseable_wait(self):
        assert rate_limit_details({"data": {"wait": "soon"}})[2] is None


class TestWaitHint:
    @pytest.mark.parametrize("text, expected", [
        ("Retry after 30 seconds", 30.0),
        ("retry-after: 1.5", 1.5),
        ("RetryAfter=7", 7.0),
        ("no hint here", None),
    ])
    def test_parses_hint(self, text, expected):
        assert wait_hint_from_text(text) == expected
