"""Settings for the command-line entrypoint, loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from ectoken.crypto.types import Algorithm, CurveProfile

KEY_PATH_DEFAULT = "signing"
TOKEN_TTL_DEFAULT = 3600


class TokenSettings(BaseSettings):
    """Key location, signing algorithm, and default token lifetime."""

    model_config = SettingsConfigDict(env_prefix="ECTOKEN_")

    key_path: str = KEY_PATH_DEFAULT
    algorithm: Algorithm = "ES256"
    token_ttl: int = TOKEN_TTL_DEFAULT

    def profile(self) -> CurveProfile:
        """Build the curve profile for the configured algorithm."""
        return CurveProfile(algorithm=self.algorithm)
