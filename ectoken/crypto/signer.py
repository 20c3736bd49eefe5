"""Token issuance: canonical encoding, ECDSA signing, compact serialization.

The signature covers ``base64url(header) + "." + base64url(payload)`` as in
JWS compact serialization, so the header is integrity-protected too.
"""

import hashlib
import logging
import os
from collections.abc import Callable

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from ectoken.core.clock import Clock, now_millis
from ectoken.core.errors import ObserverError, SignError
from ectoken.crypto.keys import ensure_ec_key, load_private_key
from ectoken.crypto.types import P256, CurveProfile, Token
from ectoken.crypto.verifier import Verifier

logger = logging.getLogger(__name__)

IssuanceObserver = Callable[[bytes, str], bool | None]
"""Called with (unsigned payload, signed wire string).

The observer reports failure by raising or by returning ``False``; either
aborts issuance. Any other return value counts as success.

Runs synchronously inside :meth:`Signer.issue`. A slow observer stalls
every issuance, so observers doing remote I/O must bound their own latency.
"""


class Signer:
    """Issues signed tokens under one EC private key.

    Instances hold no mutable state and are safe to share between threads.
    """

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        profile: CurveProfile = P256,
        observer: IssuanceObserver | None = None,
    ) -> None:
        self._private_key = ensure_ec_key(
            private_key, profile, ec.EllipticCurvePrivateKey
        )
        self._profile = profile
        self._observer = observer
        self._jws = jwt.PyJWS(algorithms=[profile.algorithm])

    @property
    def profile(self) -> CurveProfile:
        return self._profile

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        """Public half of the signing key."""
        return self._private_key.public_key()

    def verifier(self, clock: Clock = now_millis) -> Verifier:
        """Build a verifier for tokens this signer issues."""
        return Verifier(self.public_key, self._profile, clock=clock)

    def issue(self, token: Token) -> str:
        """Sign ``token`` and return its compact wire form.

        Raises EncodingError, SignError, or ObserverError. On any of them
        no token is returned.
        """
        payload = token.encode()
        try:
            signed = self._jws.encode(
                payload,
                self._private_key,
                algorithm=self._profile.algorithm,
                headers={"typ": None},
            )
        except (jwt.PyJWTError, NotImplementedError, ValueError, TypeError) as e:
            raise SignError(f"{self._profile.algorithm} signing failed") from e

        if self._observer is not None:
            try:
                accepted = self._observer(payload, signed)
            except Exception as e:
                logger.warning("Issuance observer failed, withholding token: %s", e)
                raise ObserverError("issuance observer reported failure") from e
            if accepted is False:
                logger.warning("Issuance observer rejected token, withholding it")
                raise ObserverError("issuance observer reported failure")
        return signed


def logging_observer(target: logging.Logger | None = None) -> IssuanceObserver:
    """Observer recording each issuance's claims and a digest of the token."""
    log = target or logging.getLogger("ectoken.issued")

    def _observe(payload: bytes, signed: str) -> None:
        digest = hashlib.sha256(signed.encode("ascii")).hexdigest()
        log.info("Issued token sha256=%s claims=%s", digest, payload.decode("utf-8"))

    return _observe


def new_issuer(
    path: str | os.PathLike[str],
    profile: CurveProfile = P256,
    observer: IssuanceObserver | None = None,
) -> Signer:
    """Load ``<path>.priv`` and return a Signer for it."""
    return Signer(load_private_key(path, profile), profile, observer=observer)
