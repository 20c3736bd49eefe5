"""Shared test fixtures for ectoken."""

from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from ectoken.crypto.keys import generate_keypair
from ectoken.crypto.signer import Signer
from ectoken.crypto.verifier import Verifier

FIXED_NOW = 1_700_000_000_000


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient ECTOKEN_ variables out of settings-driven tests."""
    for name in ("ECTOKEN_KEY_PATH", "ECTOKEN_ALGORITHM", "ECTOKEN_TOKEN_TTL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now() -> int:
    """Fixed verifier time in epoch milliseconds."""
    return FIXED_NOW


@pytest.fixture
def key_base(tmp_path: Path) -> Path:
    """Base path of a freshly generated P-256 keypair."""
    base = tmp_path / "signing"
    generate_keypair(base)
    return base


@pytest.fixture
def signer() -> Signer:
    """Signer over an in-memory P-256 key."""
    return Signer(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def verifier(signer: Signer, now: int) -> Verifier:
    """Verifier for ``signer`` with the clock pinned at ``now``."""
    return signer.verifier(clock=lambda: now)
