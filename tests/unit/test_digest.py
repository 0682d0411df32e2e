"""
Unit tests for Digest access authentication.
"""

import re

import pytest

from mdserver.http.status_codes import HTTPStatus
from mdserver.security.digest import (
    DigestAuth,
    DigestCredentials,
    parse_digest_header,
    route_of,
)

from conftest import digest_authorization, make_request


@pytest.fixture
def auth() -> DigestAuth:
    return DigestAuth("example.com", {"private": "hunter2", "team": "s3cret"})


class TestRouteOf:

    @pytest.mark.parametrize("path, route", [
        ("/", ""),
        ("/private", "private"),
        ("/private/", "private"),
        ("/private/plan.md", "private"),
        ("/docs/private/x", "docs"),
    ])
    def test_first_segment(self, path, route):
        assert route_of(path) == route


class TestParseHeader:

    def test_quoted_and_bare_values(self):
        params = parse_digest_header(
            'username="bob", realm="example.com-private", nc=00000001, qop=auth'
        )

        assert params == {
            "username": "bob",
            "realm": "example.com-private",
            "nc": "00000001",
            "qop": "auth",
        }

    def test_commas_inside_quotes(self):
        params = parse_digest_header('qop="auth,auth-int", nonce="abc"')

        assert params["qop"] == "auth,auth-int"
        assert params["nonce"] == "abc"

    def test_credentials_require_digest_scheme(self):
        with pytest.raises(ValueError):
            DigestCredentials.from_header("Basic Ym9iOmh1bnRlcjI=")


class TestSecretRoutes:

    def test_configured_routes_are_secret(self, auth):
        assert auth.is_secret_route("private")
        assert auth.is_secret_route("team")

    def test_other_routes_are_public(self, auth):
        assert not auth.is_secret_route("docs")
        assert not auth.is_secret_route("")
        assert not auth.is_secret_route("Private")


class TestCheck:

    def test_valid_digest(self, auth):
        header = digest_authorization("/private/plan", "example.com-private", "hunter2")
        request = make_request("/private/plan", headers={"Authorization": header})

        assert auth.check(request, "private")

    def test_any_username_is_accepted(self, auth):
        header = digest_authorization(
            "/private/plan", "example.com-private", "hunter2", username="mallory"
        )
        request = make_request("/private/plan", headers={"Authorization": header})

        assert auth.check(request, "private")

    def test_wrong_secret(self, auth):
        header = digest_authorization("/private/plan", "example.com-private", "guess")
        request = make_request("/private/plan", headers={"Authorization": header})

        assert not auth.check(request, "private")

    def test_wrong_realm(self, auth):
        header = digest_authorization("/private/plan", "example.com-team", "hunter2")
        request = make_request("/private/plan", headers={"Authorization": header})

        assert not auth.check(request, "private")

    def test_digest_is_bound_to_the_path(self, auth):
        header = digest_authorization("/private/other", "example.com-private", "hunter2")
        request = make_request("/private/plan", headers={"Authorization": header})

        assert not auth.check(request, "private")

    def test_digest_is_bound_to_the_method(self, auth):
        header = digest_authorization("/private/plan", "example.com-private", "hunter2")
        request = make_request(
            "/private/plan", method="HEAD", headers={"Authorization": header}
        )

        assert not auth.check(request, "private")

    def test_missing_header(self, auth):
        assert not auth.check(make_request("/private/plan"), "private")


class TestChallenge:

    def test_challenge_response(self, auth):
        response = auth.challenge("private")

        assert response.status == HTTPStatus.UNAUTHORIZED
        challenge = response.headers["WWW-Authenticate"]
        assert challenge.startswith("Digest ")
        assert 'realm="example.com-private"' in challenge
        assert 'qop="auth,auth-int"' in challenge
        assert re.search(r'nonce="[0-9a-f]+"', challenge)

    def test_fresh_nonce_each_time(self, auth):
        first = auth.challenge("private").headers["WWW-Authenticate"]
        second = auth.challenge("private").headers["WWW-Authenticate"]

        nonce = re.compile(r'nonce="([0-9a-f]+)"')
        assert nonce.search(first).group(1) != nonce.search(second).group(1)
