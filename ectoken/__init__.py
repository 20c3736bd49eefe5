"""Short-lived EC-signed authentication tokens."""

from ectoken.core.clock import Clock, is_expired, now_millis
from ectoken.core.errors import (
    AlgorithmMismatchError,
    EncodingError,
    IssueError,
    KeyGenerationError,
    KeyLoadError,
    KeyMaterialError,
    KeyTypeError,
    ObserverError,
    ParseError,
    PayloadDecodeError,
    SignatureInvalidError,
    SignError,
    TokenError,
    TokenExpiredError,
    VerificationError,
    WriteError,
)
from ectoken.crypto.keys import (
    generate_keypair,
    load_private_key,
    load_public_key,
    public_key_to_jwk,
)
from ectoken.crypto.signer import (
    IssuanceObserver,
    Signer,
    logging_observer,
    new_issuer,
)
from ectoken.crypto.types import P256, CurveProfile, Token
from ectoken.crypto.verifier import Verifier, new_verifier

__version__ = "0.1.0"

__all__ = [
    "P256",
    "AlgorithmMismatchError",
    "Clock",
    "CurveProfile",
    "EncodingError",
    "IssuanceObserver",
    "IssueError",
    "KeyGenerationError",
    "KeyLoadError",
    "KeyMaterialError",
    "KeyTypeError",
    "ObserverError",
    "ParseError",
    "PayloadDecodeError",
    "SignError",
    "SignatureInvalidError",
    "Signer",
    "Token",
    "TokenError",
    "TokenExpiredError",
    "VerificationError",
    "Verifier",
    "WriteError",
    "generate_keypair",
    "is_expired",
    "load_private_key",
    "load_public_key",
    "logging_observer",
    "new_issuer",
    "new_verifier",
    "now_millis",
    "public_key_to_jwk",
]
