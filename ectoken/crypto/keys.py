"""EC keypair generation, on-disk persistence, loading, and JWK export."""

import base64
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import TypeVar

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ectoken.core.errors import (
    KeyGenerationError,
    KeyLoadError,
    KeyTypeError,
    WriteError,
)
from ectoken.crypto.types import P256, CurveProfile, JWKEntry

logger = logging.getLogger(__name__)

PRIVATE_SUFFIX = ".priv"
PUBLIC_SUFFIX = ".pub"
JWK_SUFFIX = ".jwk"
PRIVATE_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644

K = TypeVar("K", ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)


def private_key_path(path: str | os.PathLike[str]) -> Path:
    """Private key file for a keypair base path."""
    return Path(f"{os.fspath(path)}{PRIVATE_SUFFIX}")


def public_key_path(path: str | os.PathLike[str]) -> Path:
    """Public key file for a keypair base path."""
    return Path(f"{os.fspath(path)}{PUBLIC_SUFFIX}")


def ensure_ec_key(key: object, profile: CurveProfile, expected: type[K]) -> K:
    """Return ``key`` if it is an ``expected`` EC key on the profile's curve."""
    if not isinstance(key, expected):
        raise KeyTypeError(
            f"expected an EC key, but got a key of type {type(key).__name__}"
        )
    if key.curve.name != profile.curve_name:
        raise KeyTypeError(
            f"expected the key to use {profile.curve_name}, "
            f"but it's using {key.curve.name}"
        )
    return key


def _write_atomic(target: Path, data: bytes, mode: int) -> None:
    """Write ``data`` to a sibling temp file, then rename it over ``target``."""
    tmp: str | None = None
    try:
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        with os.fdopen(fd, "wb") as f:
            os.fchmod(f.fileno(), mode)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)
    except OSError as e:
        if tmp is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
        raise WriteError(f"cannot write {target}: {e}") from e


def generate_keypair(
    path: str | os.PathLike[str], profile: CurveProfile = P256
) -> None:
    """Generate a keypair and write ``<path>.priv`` and ``<path>.pub``."""
    try:
        private_key = ec.generate_private_key(profile.curve)
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"cannot generate {profile.curve_name} key") from e

    priv_path = private_key_path(path)
    pub_path = public_key_path(path)
    _write_atomic(priv_path, private_pem, PRIVATE_FILE_MODE)
    _write_atomic(pub_path, public_pem, PUBLIC_FILE_MODE)
    logger.info(
        "Generated %s keypair at %s and %s", profile.curve_name, priv_path, pub_path
    )


def _read_key_file(target: Path) -> bytes:
    try:
        return target.read_bytes()
    except OSError as e:
        raise KeyLoadError(f"cannot read {target}: {e}") from e


def load_private_key(
    path: str | os.PathLike[str], profile: CurveProfile = P256
) -> ec.EllipticCurvePrivateKey:
    """Load ``<path>.priv`` (PEM or DER, PKCS#8 or SEC1)."""
    target = private_key_path(path)
    data = _read_key_file(target)
    try:
        if data.lstrip().startswith(b"-----"):
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"cannot decode private key in {target}") from e
    logger.debug("Loaded private key from %s", target)
    return ensure_ec_key(key, profile, ec.EllipticCurvePrivateKey)


def load_public_key(
    path: str | os.PathLike[str], profile: CurveProfile = P256
) -> ec.EllipticCurvePublicKey:
    """Load ``<path>.pub`` (PEM or DER SubjectPublicKeyInfo)."""
    target = public_key_path(path)
    data = _read_key_file(target)
    try:
        if data.lstrip().startswith(b"-----"):
            key = serialization.load_pem_public_key(data)
        else:
            key = serialization.load_der_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"cannot decode public key in {target}") from e
    logger.debug("Loaded public key from %s", target)
    return ensure_ec_key(key, profile, ec.EllipticCurvePublicKey)


def _int_to_base64url(value: int, size: int) -> str:
    """Encode a fixed-size big-endian integer as base64url without padding."""
    raw = value.to_bytes(size, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def public_key_to_jwk(
    public_key: ec.EllipticCurvePublicKey, profile: CurveProfile = P256
) -> JWKEntry:
    """Convert an EC public key to JWK format."""
    key = ensure_ec_key(public_key, profile, ec.EllipticCurvePublicKey)
    numbers = key.public_numbers()
    size = profile.coordinate_size
    return JWKEntry(
        alg=profile.algorithm,
        crv=profile.jwk_curve,
        x=_int_to_base64url(numbers.x, size),
        y=_int_to_base64url(numbers.y, size),
    )


def write_jwk(path: str | os.PathLike[str], profile: CurveProfile = P256) -> Path:
    """Write the JWK for ``<path>.pub`` to ``<path>.jwk``."""
    jwk = public_key_to_jwk(load_public_key(path, profile), profile)
    target = Path(f"{os.fspath(path)}{JWK_SUFFIX}")
    _write_atomic(target, jwk.model_dump_json().encode(), PUBLIC_FILE_MODE)
    return target
