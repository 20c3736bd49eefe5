"""Exception hierarchy for key material, issuance, and verification."""


class TokenError(Exception):
    """Base exception for every failure raised by ectoken."""


class KeyMaterialError(TokenError):
    """Key generation, persistence, or loading failed."""


class KeyLoadError(KeyMaterialError):
    """Key file could not be read or decoded."""


class KeyTypeError(KeyMaterialError):
    """Key is not an EC key on the configured curve."""


class KeyGenerationError(KeyMaterialError):
    """Keypair generation or encoding failed."""


class WriteError(KeyMaterialError):
    """Key file could not be written."""


class IssueError(TokenError):
    """No token was produced."""


class EncodingError(IssueError):
    """Token cannot be canonically encoded."""


class SignError(IssueError):
    """The signature operation failed."""


class ObserverError(IssueError):
    """The issuance observer reported failure."""


class VerificationError(TokenError):
    """Token must not be trusted."""


class ParseError(VerificationError):
    """Wire string is not a well-formed compact token."""


class AlgorithmMismatchError(VerificationError):
    """Header declares an algorithm other than the pinned one."""

    def __init__(self, expected: str, declared: object) -> None:
        super().__init__(
            f"expected algorithm {expected}, token declares {declared!r}"
        )
        self.expected = expected
        self.declared = declared


class SignatureInvalidError(VerificationError):
    """Signature does not match the header and payload."""


class PayloadDecodeError(VerificationError):
    """Payload does not conform to the token schema."""


class TokenExpiredError(VerificationError):
    """Token expiration lies before the verifier's current time."""

    def __init__(self, expiration: int, now: int) -> None:
        super().__init__(f"token expired at {expiration}, now is {now}")
        self.expiration = expiration
        self.now = now
