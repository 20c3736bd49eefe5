"""Token verification: parse, pin the algorithm, check signature and expiry."""

import logging
import os

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.utils import base64url_decode, base64url_encode

from ectoken.core.clock import Clock, is_expired, now_millis
from ectoken.core.errors import (
    AlgorithmMismatchError,
    ParseError,
    SignatureInvalidError,
    TokenExpiredError,
)
from ectoken.crypto.keys import ensure_ec_key, load_public_key
from ectoken.crypto.types import P256, CurveProfile, Token

logger = logging.getLogger(__name__)


def _decode_segment(segment: str) -> bytes:
    """Decode one unpadded base64url segment, rejecting non-canonical forms."""
    try:
        raw = base64url_decode(segment)
    except ValueError as e:
        raise ParseError("segment is not valid base64url") from e
    if base64url_encode(raw).decode("ascii") != segment:
        raise ParseError("segment is not canonical base64url")
    return raw


class Verifier:
    """Verifies tokens against one EC public key.

    ``verify`` depends only on its input, the key, and ``clock``; instances
    are safe to share between threads.
    """

    def __init__(
        self,
        public_key: ec.EllipticCurvePublicKey,
        profile: CurveProfile = P256,
        clock: Clock = now_millis,
    ) -> None:
        self._public_key = ensure_ec_key(
            public_key, profile, ec.EllipticCurvePublicKey
        )
        self._profile = profile
        self._clock = clock
        self._jws = jwt.PyJWS(algorithms=[profile.algorithm])

    @property
    def profile(self) -> CurveProfile:
        return self._profile

    def verify(self, wire: str) -> Token:
        """Return the token carried by ``wire`` if every check passes.

        Raises:
            ParseError: Wire string is not three canonical base64url segments.
            AlgorithmMismatchError: Header names another algorithm.
            SignatureInvalidError: Signature does not verify under the key.
            PayloadDecodeError: Payload is not a valid token.
            TokenExpiredError: Token expired before the clock's now.
        """
        if not isinstance(wire, str):
            raise ParseError(f"expected str, got {type(wire).__name__}")
        segments = wire.split(".")
        if len(segments) != 3:
            raise ParseError(f"expected 3 segments, got {len(segments)}")
        for segment in segments:
            _decode_segment(segment)

        try:
            header = self._jws.get_unverified_header(wire)
        except jwt.InvalidTokenError as e:
            raise ParseError(f"malformed token header: {e}") from e
        declared = header.get("alg")
        if declared != self._profile.algorithm:
            logger.debug("Rejected token declaring algorithm %r", declared)
            raise AlgorithmMismatchError(self._profile.algorithm, declared)

        try:
            decoded = self._jws.decode_complete(
                wire, self._public_key, algorithms=[self._profile.algorithm]
            )
        except jwt.InvalidSignatureError as e:
            logger.debug("Rejected token with invalid signature")
            raise SignatureInvalidError("token signature is invalid") from e
        except jwt.InvalidAlgorithmError as e:
            raise AlgorithmMismatchError(self._profile.algorithm, declared) from e
        except jwt.DecodeError as e:
            raise ParseError(f"malformed token: {e}") from e
        except jwt.PyJWTError as e:
            raise SignatureInvalidError(f"token cannot be verified: {e}") from e

        token = Token.decode(decoded["payload"])
        now = self._clock()
        if is_expired(token, now):
            logger.debug("Rejected token expired at %d (now %d)", token.expiration, now)
            raise TokenExpiredError(token.expiration, now)
        return token


def new_verifier(
    path: str | os.PathLike[str],
    profile: CurveProfile = P256,
    clock: Clock = now_millis,
) -> Verifier:
    """Load ``<path>.pub`` and return a Verifier for it."""
    return Verifier(load_public_key(path, profile), profile, clock=clock)
