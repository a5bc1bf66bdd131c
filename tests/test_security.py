"""Unit tests for app.core.security: bcrypt hashing, token signing and decoding."""

import time
import unittest
import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch

import jwt

from app.core.exceptions import HashingError, SigningError, TokenError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    hash_password_async,
    hash_token,
    verify_password,
    verify_password_async,
)

from factories import ACCESS_SECRET, REFRESH_SECRET, make_settings


def _user(**kwargs: object) -> SimpleNamespace:
    """Stand-in with the attributes the token issuer reads."""
    defaults = {
        "id": uuid.uuid4(),
        "email": "bob@example.com",
        "username": "bob",
        "full_name": "Bob Jones",
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _claims_without_times(claims: dict) -> dict:
    return {k: v for k, v in claims.items() if k not in ("iat", "exp", "jti")}


class TestHashPassword(unittest.TestCase):
    """Hashes are salted bcrypt strings that verify against the original input."""

    def test_hash_verifies_and_is_randomized(self) -> None:
        first = hash_password("s3cret-password", rounds=4)
        second = hash_password("s3cret-password", rounds=4)
        self.assertNotEqual(first, second)
        self.assertTrue(verify_password("s3cret-password", first))
        self.assertTrue(verify_password("s3cret-password", second))

    def test_other_password_does_not_verify(self) -> None:
        hashed = hash_password("s3cret-password", rounds=4)
        self.assertFalse(verify_password("s3cret-passwore", hashed))
        self.assertFalse(verify_password("", hashed))

    def test_hash_is_never_plaintext(self) -> None:
        hashed = hash_password("s3cret-password", rounds=4)
        self.assertNotIn("s3cret-password", hashed)
        self.assertTrue(hashed.startswith("$2"))

    def test_default_cost_factor_is_10(self) -> None:
        hashed = hash_password("s3cret-password")
        self.assertEqual(hashed.split("$")[2], "10")

    def test_input_over_72_bytes_raises_hashing_error(self) -> None:
        with self.assertRaises(HashingError):
            hash_password("é" * 37, rounds=4)

    def test_bcrypt_failure_is_wrapped(self) -> None:
        with patch("app.core.security.bcrypt.hashpw", side_effect=ValueError("boom")):
            with self.assertRaises(HashingError) as ctx:
                hash_password("s3cret-password", rounds=4)
        self.assertIsInstance(ctx.exception.__cause__, ValueError)

    def test_malformed_stored_hash_does_not_verify(self) -> None:
        self.assertFalse(verify_password("s3cret-password", "not-a-bcrypt-hash"))


class TestAsyncHashing(unittest.IsolatedAsyncioTestCase):
    """Async variants run bcrypt in a thread and honour the timeout."""

    async def test_async_round_trip(self) -> None:
        hashed = await hash_password_async("s3cret-password")
        self.assertTrue(await verify_password_async("s3cret-password", hashed))
        self.assertFalse(await verify_password_async("wrong-password", hashed))

    async def test_timeout_raises_hashing_error(self) -> None:
        def slow_hash(plain_password: str) -> str:
            time.sleep(0.5)
            return "never"

        with patch("app.core.security.hash_password", side_effect=slow_hash):
            with self.assertRaises(HashingError):
                await hash_password_async("s3cret-password", timeout=0.05)


class TestAccessToken(unittest.TestCase):
    """Access tokens carry only the user id and live one day by default."""

    def test_claims_and_expiry(self) -> None:
        user = _user()
        token = create_access_token(user, make_settings())
        claims = jwt.decode(token, ACCESS_SECRET, algorithms=["HS256"])
        self.assertEqual(_claims_without_times(claims), {"_id": str(user.id)})
        expected = datetime.now(UTC) + timedelta(days=1)
        self.assertAlmostEqual(claims["exp"], expected.timestamp(), delta=5)

    def test_decode_round_trip(self) -> None:
        user = _user()
        settings = make_settings()
        claims = decode_access_token(create_access_token(user, settings), settings)
        self.assertEqual(claims["_id"], str(user.id))

    def test_configured_lifetime_is_used(self) -> None:
        settings = make_settings(ACCESS_TOKEN_EXPIRY="15m")
        claims = decode_access_token(create_access_token(_user(), settings), settings)
        self.assertAlmostEqual(claims["exp"] - claims["iat"], 15 * 60, delta=1)

    def test_missing_secret_raises_signing_error(self) -> None:
        with self.assertRaises(SigningError):
            create_access_token(_user(), make_settings(ACCESS_TOKEN_SECRET=None))

    def test_wrong_secret_is_rejected(self) -> None:
        token = jwt.encode(
            {"_id": "x", "iat": datetime.now(UTC), "exp": datetime.now(UTC) + timedelta(hours=1)},
            "some-other-secret-0123456789abcdef",
            algorithm="HS256",
        )
        with self.assertRaises(TokenError):
            decode_access_token(token, make_settings())

    def test_expired_token_is_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(days=2)
        token = jwt.encode(
            {"_id": "x", "iat": past, "exp": past + timedelta(days=1)},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(TokenError):
            decode_access_token(token, make_settings())


class TestRefreshToken(unittest.TestCase):
    """Refresh tokens carry identity fields and live seven days by default."""

    def test_claims_and_expiry(self) -> None:
        user = _user()
        token = create_refresh_token(user, make_settings())
        claims = jwt.decode(token, REFRESH_SECRET, algorithms=["HS256"])
        self.assertEqual(
            _claims_without_times(claims),
            {
                "_id": str(user.id),
                "email": "bob@example.com",
                "username": "bob",
                "fullName": "Bob Jones",
            },
        )
        expected = datetime.now(UTC) + timedelta(days=7)
        self.assertAlmostEqual(claims["exp"], expected.timestamp(), delta=5)

    def test_tokens_issued_together_differ(self) -> None:
        user = _user()
        settings = make_settings()
        first = create_refresh_token(user, settings)
        second = create_refresh_token(user, settings)
        self.assertNotEqual(first, second)
        self.assertNotEqual(
            decode_refresh_token(first, settings)["jti"],
            decode_refresh_token(second, settings)["jti"],
        )

    def test_missing_secret_raises_signing_error(self) -> None:
        with self.assertRaises(SigningError):
            create_refresh_token(_user(), make_settings(REFRESH_TOKEN_SECRET=None))

    def test_access_token_is_not_a_refresh_token(self) -> None:
        settings = make_settings()
        access = create_access_token(_user(), settings)
        with self.assertRaises(TokenError):
            decode_refresh_token(access, settings)


class TestHashToken(unittest.TestCase):
    def test_sha256_hex(self) -> None:
        digest = hash_token("abc")
        self.assertEqual(len(digest), 64)
        self.assertEqual(digest, hash_token("abc"))
        self.assertNotEqual(digest, hash_token("abd"))


if __name__ == "__main__":
    unittest.main()
