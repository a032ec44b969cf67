from django.test import SimpleTestCase

from apps.common.middleware import parse_cookies, token_from_scope


class TokenFromScopeTest(SimpleTestCase):
    """Test cases for socket handshake token extraction"""

    def test_cookie_token(self):
        """Test that the access-token cookie is read"""
        scope = {"headers": [(b"cookie", b"sessionid=abc; access_token=tok123")]}
        self.assertEqual(token_from_scope(scope), "tok123")

    def test_bearer_header(self):
        """Test that a Bearer Authorization header is read"""
        scope = {"headers": [(b"authorization", b"Bearer tok456")]}
        self.assertEqual(token_from_scope(scope), "tok456")

    def test_cookie_wins_over_header(self):
        """Test that the cookie is preferred when both are present"""
        scope = {"headers": [(b"cookie", b"access_token=c"), (b"authorization", b"Bearer h")]}
        self.assertEqual(token_from_scope(scope), "c")

    def test_query_string_is_ignored(self):
        """Test that tokens passed in the query string are not used"""
        scope = {"headers": [], "query_string": b"token=abc"}
        self.assertIsNone(token_from_scope(scope))

    def test_other_auth_scheme_is_ignored(self):
        """Test that non-Bearer Authorization headers are ignored"""
        scope = {"headers": [(b"authorization", b"Basic dXNlcjpwYXNz")]}
        self.assertIsNone(token_from_scope(scope))

    def test_parse_cookies_skips_malformed_chunks(self):
        """Test that cookie chunks without '=' are skipped"""
        self.assertEqual(parse_cookies("a=1; junk; b=2"), {"a": "1", "b": "2"})
