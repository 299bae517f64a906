"""Tests for graphtool/security/masking.py"""

from graphtool.security.masking import mask_access_token, mask_email, mask_guid, mask_secret


class TestMaskSecret:
    def test_long_secret(self):
        assert mask_secret("abcdefghijklmnop") == "abcd********mnop"

    def test_short_secret_fully_hidden(self):
        assert mask_secret("short") == "********"
        assert mask_secret("") == "********"


class TestMaskGuid:
    def test_guid(self):
        masked = mask_guid("11111111-2222-3333-4444-555555555555")
        assert masked == "1111****-****-****-****5555"

    def test_short(self):
        assert mask_guid("abc") == "****"


class TestMaskAccessToken:
    def test_long_token(self):
        assert mask_access_token("eyJ0eXAiOiJKV1QiLCJhbGciOi") == "eyJ0eXAi...ciOi"

    def test_short_token(self):
        assert mask_access_token("abcdef") == "abc...def"

    def test_empty(self):
        assert mask_access_token("") == ""


class TestMaskEmail:
    def test_email(self):
        assert mask_email("user@example.com") == "us****@ex****"

    def test_no_at_sign(self):
        assert mask_email("username") == "us****"

    def test_empty(self):
        assert mask_email("") == ""
