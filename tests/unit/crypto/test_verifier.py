"""Tests for token verification."""

import hashlib
import hmac
import json
import string
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm
from jwt.utils import base64url_decode, base64url_encode

from ectoken.core.errors import (
    AlgorithmMismatchError,
    KeyTypeError,
    ParseError,
    PayloadDecodeError,
    SignatureInvalidError,
    TokenExpiredError,
)
from ectoken.crypto.keys import generate_keypair
from ectoken.crypto.signer import Signer, new_issuer
from ectoken.crypto.types import CurveProfile, Token
from ectoken.crypto.verifier import Verifier, new_verifier

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"
HS256_HEADER = b'{"alg":"HS256"}'
NONE_HEADER = b'{"alg":"none"}'


def _b64(data: bytes) -> str:
    return base64url_encode(data).decode()


def _swap_char(wire: str, index: int) -> str:
    replacement = "B" if wire[index] == "A" else "A"
    return wire[:index] + replacement + wire[index + 1 :]


def _sign_raw(key: ec.EllipticCurvePrivateKey, header: bytes, payload: bytes) -> str:
    """Sign arbitrary header/payload bytes with ES256, bypassing Signer."""
    signing_input = f"{_b64(header)}.{_b64(payload)}"
    signature = ECAlgorithm(ECAlgorithm.SHA256).sign(signing_input.encode(), key)
    return f"{signing_input}.{_b64(signature)}"


class TestRoundTrip:
    """Tests for Verify(Issue(t)) == t."""

    def test_returns_issued_token(
        self, signer: Signer, verifier: Verifier, now: int
    ) -> None:
        token = Token(
            expiration=now + 60_000,
            username="alice",
            groups=("ops", "dev"),
            assertions={"idp": "ldap"},
            tenant="acme",
        )
        assert verifier.verify(signer.issue(token)) == token

    def test_repeatable(self, signer: Signer, verifier: Verifier, now: int) -> None:
        wire = signer.issue(Token(expiration=now + 1, username="alice"))
        assert verifier.verify(wire) == verifier.verify(wire)

    def test_keypair_files(self, tmp_path: Path) -> None:
        generate_keypair(tmp_path / "signing")
        signer = new_issuer(tmp_path / "signing")
        verifier = new_verifier(tmp_path / "signing")
        token = Token.expiring_in(300, username="alice")
        assert verifier.verify(signer.issue(token)) == token

    def test_structured_extra_claims(
        self, signer: Signer, verifier: Verifier, now: int
    ) -> None:
        token = Token(
            expiration=now + 1,
            scopes=("read", "write"),
            tags=["a", "b"],
            profile={"dept": "eng", "levels": [1, 2], "manager": None},
        )
        assert verifier.verify(signer.issue(token)) == token

    def test_es512_profile(self, now: int) -> None:
        profile = CurveProfile(algorithm="ES512")
        signer = Signer(ec.generate_private_key(ec.SECP521R1()), profile)
        token = Token(expiration=now, username="alice")
        assert signer.verifier(clock=lambda: now).verify(signer.issue(token)) == token


class TestExpiration:
    """Tests for the expiration boundary."""

    def test_expiration_equal_to_now_is_valid(
        self, signer: Signer, verifier: Verifier, now: int
    ) -> None:
        token = Token(expiration=now)
        assert verifier.verify(signer.issue(token)) == token

    def test_one_millisecond_late_is_expired(
        self, signer: Signer, verifier: Verifier, now: int
    ) -> None:
        wire = signer.issue(Token(expiration=now - 1))
        with pytest.raises(TokenExpiredError) as exc_info:
            verifier.verify(wire)
        assert exc_info.value.expiration == now - 1
        assert exc_info.value.now == now

    def test_clock_read_per_call(self, signer: Signer) -> None:
        times = iter([100, 101])
        verifier = signer.verifier(clock=lambda: next(times))
        wire = signer.issue(Token(expiration=100))
        verifier.verify(wire)
        with pytest.raises(TokenExpiredError):
            verifier.verify(wire)


class TestTamperDetection:
    """Changing any character of a valid token must never verify."""

    @pytest.fixture
    def wire(self, signer: Signer, now: int) -> str:
        return signer.issue(Token(expiration=now + 60_000, username="alice"))

    def test_signature_segment(self, verifier: Verifier, wire: str) -> None:
        start = wire.rindex(".") + 1
        for index in range(start, len(wire)):
            with pytest.raises((ParseError, SignatureInvalidError)):
                verifier.verify(_swap_char(wire, index))

    def test_payload_segment(self, verifier: Verifier, wire: str) -> None:
        start = wire.index(".") + 1
        for index in range(start, wire.rindex(".")):
            with pytest.raises((ParseError, SignatureInvalidError)):
                verifier.verify(_swap_char(wire, index))

    def test_header_segment(self, verifier: Verifier, wire: str) -> None:
        for index in range(wire.index(".")):
            with pytest.raises(
                (ParseError, AlgorithmMismatchError, SignatureInvalidError)
            ):
                verifier.verify(_swap_char(wire, index))

    def test_non_canonical_trailing_bits(self, verifier: Verifier, wire: str) -> None:
        last = wire[-1]
        sibling = ALPHABET[ALPHABET.index(last) + 1]
        altered = wire[:-1] + sibling
        signature = wire.rsplit(".", 1)[1]
        # The altered segment decodes to the same bytes leniently.
        assert base64url_decode(altered.rsplit(".", 1)[1]) == base64url_decode(
            signature
        )
        with pytest.raises(ParseError):
            verifier.verify(altered)

    def test_bit_flip_in_payload_bytes(self, verifier: Verifier, wire: str) -> None:
        header, payload, signature = wire.split(".")
        raw = bytearray(base64url_decode(payload))
        raw[0] ^= 0x01
        with pytest.raises(SignatureInvalidError):
            verifier.verify(f"{header}.{_b64(bytes(raw))}.{signature}")


class TestWrongKey:
    """Tests for tokens signed under an unrelated key."""

    def test_unrelated_keypair(self, signer: Signer, now: int) -> None:
        other = Signer(ec.generate_private_key(ec.SECP256R1()))
        wire = signer.issue(Token(expiration=now))
        with pytest.raises(SignatureInvalidError):
            other.verifier(clock=lambda: now).verify(wire)


class TestAlgorithmPinning:
    """Tests for rejecting any algorithm but the configured one."""

    def test_other_ec_algorithm_with_valid_signature(self, now: int) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        payload = Token(expiration=now).encode()
        wire = _sign_raw(key, b'{"alg":"ES384"}', payload)
        with pytest.raises(AlgorithmMismatchError):
            Verifier(key.public_key(), clock=lambda: now).verify(wire)

    def test_hmac_with_public_key_as_secret(self, now: int) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        secret = key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        payload = Token(expiration=now).encode()
        signing_input = f"{_b64(HS256_HEADER)}.{_b64(payload)}"
        mac = hmac.new(secret, signing_input.encode(), hashlib.sha256).digest()
        wire = f"{signing_input}.{_b64(mac)}"
        with pytest.raises(AlgorithmMismatchError):
            Verifier(key.public_key(), clock=lambda: now).verify(wire)

    def test_alg_none(self, verifier: Verifier, now: int) -> None:
        wire = f"{_b64(NONE_HEADER)}.{_b64(Token(expiration=now).encode())}."
        with pytest.raises(AlgorithmMismatchError):
            verifier.verify(wire)

    def test_missing_alg(self, verifier: Verifier, now: int) -> None:
        wire = f"{_b64(b'{}')}.{_b64(Token(expiration=now).encode())}.AAAA"
        with pytest.raises(AlgorithmMismatchError):
            verifier.verify(wire)


class TestParse:
    """Tests for malformed wire strings."""

    @pytest.mark.parametrize(
        "wire",
        [
            "",
            "abc",
            "a.b",
            "a.b.c.d",
            "e30.e30.!!!!",
            "eyJhbGciOiJFUzI1NiJ9==.e30.AAAA",
            "e30.e30.A",
        ],
    )
    def test_malformed_structure(self, verifier: Verifier, wire: str) -> None:
        with pytest.raises(ParseError):
            verifier.verify(wire)

    def test_header_not_json(self, verifier: Verifier) -> None:
        with pytest.raises(ParseError):
            verifier.verify(f"{_b64(b'not json')}.e30.AAAA")

    def test_header_not_object(self, verifier: Verifier) -> None:
        with pytest.raises(ParseError):
            verifier.verify(f"{_b64(b'[1]')}.e30.AAAA")

    def test_bytes_input(self, signer: Signer, verifier: Verifier, now: int) -> None:
        wire = signer.issue(Token(expiration=now))
        with pytest.raises(ParseError):
            verifier.verify(wire.encode())  # type: ignore[arg-type]


class TestPayloadDecode:
    """Tests for correctly signed payloads that are not tokens."""

    @pytest.mark.parametrize(
        "payload",
        [b'{"username":"alice"}', b'{"expiration":"soon"}', b"[]", b"plain text"],
    )
    def test_rejected(self, payload: bytes, now: int) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        wire = _sign_raw(key, b'{"alg":"ES256"}', payload)
        with pytest.raises(PayloadDecodeError):
            Verifier(key.public_key(), clock=lambda: now).verify(wire)

    def test_signed_with_pyjwt_directly(self, now: int) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        wire = jwt.PyJWS().encode(
            json.dumps({"expiration": now, "username": "bob"}).encode(),
            key,
            algorithm="ES256",
        )
        token = Verifier(key.public_key(), clock=lambda: now).verify(wire)
        assert token.username == "bob"


class TestVerifierKeys:
    """Tests for key handling in Verifier."""

    def test_rejects_private_key(self) -> None:
        with pytest.raises(KeyTypeError):
            Verifier(ec.generate_private_key(ec.SECP256R1()))  # type: ignore[arg-type]

    def test_rejects_wrong_curve(self) -> None:
        with pytest.raises(KeyTypeError):
            Verifier(ec.generate_private_key(ec.SECP384R1()).public_key())
