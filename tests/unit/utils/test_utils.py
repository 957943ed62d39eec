"""
Tests for: redact.
"""

from notionsite.utils.redact import redact

# =========================================================================
# redact tests
# =========================================================================

class TestRedact:
    """Tests for redact utility."""

    def test_authorization_header_redacted(self):
        result = redact({"Authorization": "Bearer ntn_secret123456"})
        assert "ntn_secret123456" not in result["Authorization"]
        assert "<redacted>" in result["Authorization"]

    def test_token_key_redacted_with_known_token(self):
        token = "my-secret-token"
        result = redact({"token": token}, token=token)
        assert token not in result["token"]
        # last 4 chars shown
        assert "oken" in result["token"]

    def test_sensitive_key_non_string_redacted(self):
        assert redact({"password": 12345})["password"] == "<redacted>"

    def test_token_scrubbed_from_nested_values(self):
        token = "secret_very_long_token_value"
        payload = {"response_body": {"results": [{"note": f"copied {token}"}]}}
        result = redact(payload, token=token)
        assert token not in result["response_body"]["results"][0]["note"]

    def test_signed_s3_query_cut(self):
        url = "https://prod-files-secure.s3.us-west-2.amazonaws.com/a/b/cat.png?X-Amz-Signature=abc"
        result = redact({"image": {"file": {"url": url}}})
        assert result["image"]["file"]["url"] == (
            "https://prod-files-secure.s3.us-west-2.amazonaws.com/a/b/cat.png?<signed>"
        )

    def test_other_urls_untouched(self):
        url = "https://example.com/a?b=c"
        assert redact({"url": url})["url"] == url

    def test_input_not_mutated(self):
        payload = {"Authorization": "Bearer abc", "nested": {"token": 1}}
        redact(payload)
        assert payload == {"Authorization": "Bearer abc", "nested": {"token": 1}}
