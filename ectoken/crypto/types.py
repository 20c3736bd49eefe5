"""Type definitions for curve profiles, tokens, and JWK export."""

import json
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal

from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticSerializationError, to_jsonable_python

from ectoken.core.clock import Clock, now_millis
from ectoken.core.errors import EncodingError, PayloadDecodeError

Algorithm = Literal["ES256", "ES384", "ES512"]

_CURVES: dict[str, tuple[type[ec.EllipticCurve], str]] = {
    "ES256": (ec.SECP256R1, "P-256"),
    "ES384": (ec.SECP384R1, "P-384"),
    "ES512": (ec.SECP521R1, "P-521"),
}


class CurveProfile(BaseModel):
    """A JWS ECDSA algorithm and the single curve it is bound to."""

    model_config = ConfigDict(frozen=True)

    algorithm: Algorithm = "ES256"

    @property
    def curve(self) -> ec.EllipticCurve:
        """Fresh curve instance for key generation."""
        return _CURVES[self.algorithm][0]()

    @property
    def curve_name(self) -> str:
        """OpenSSL curve name, e.g. ``secp256r1``."""
        return self.curve.name

    @property
    def jwk_curve(self) -> str:
        """JWK ``crv`` value, e.g. ``P-256``."""
        return _CURVES[self.algorithm][1]

    @property
    def coordinate_size(self) -> int:
        """Byte length of one curve coordinate."""
        return (self.curve.key_size + 7) // 8


P256 = CurveProfile()


def _freeze(value: Any) -> Any:
    """Deep-freeze JSON-shaped data: arrays to tuples, objects to read-only maps."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of :func:`_freeze`, producing plain JSON-serializable containers."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class Token(BaseModel):
    """Claims carried inside a signed token.

    ``expiration`` is epoch milliseconds. Claims not declared here are
    accepted and transported verbatim. Containers are frozen on
    construction, so a token value never changes after it is built.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    expiration: StrictInt
    username: str = ""
    groups: tuple[str, ...] = ()
    assertions: Mapping[str, str] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator("assertions", mode="after")
    @classmethod
    def _freeze_assertions(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @model_validator(mode="after")
    def _freeze_extras(self) -> "Token":
        # Extras are stored in their decoded JSON form, so a token equals
        # the copy decoded from its own payload.
        extra = self.__pydantic_extra__ or {}
        for name, value in extra.items():
            try:
                jsonable = to_jsonable_python(value)
            except PydanticSerializationError:
                continue  # encode() reports it as EncodingError
            extra[name] = _freeze(jsonable)
        return self

    def claims(self) -> dict[str, Any]:
        """All claims, declared and extra, as plain JSON-serializable data."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(self.__pydantic_extra__ or {})
        return _thaw(values)

    def encode(self) -> bytes:
        """Canonical JSON: sorted keys, compact separators, UTF-8."""
        try:
            text = json.dumps(
                self.claims(),
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            raise EncodingError(f"token cannot be encoded: {e}") from e
        return text.encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> "Token":
        """Parse a payload produced by :meth:`encode`."""
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise PayloadDecodeError(f"payload is not a valid token: {e}") from e

    @classmethod
    def expiring_in(
        cls, ttl_seconds: int, clock: Clock = now_millis, **claims: Any
    ) -> "Token":
        """Build a token expiring ``ttl_seconds`` after the clock's now."""
        return cls(expiration=clock() + ttl_seconds * 1000, **claims)


class JWKEntry(BaseModel):
    """Single EC public key in JWK form."""

    kty: str = "EC"
    use: str = "sig"
    alg: str
    crv: str
    x: str
    y: str
