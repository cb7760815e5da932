"""
kubefn settings.
Loads deployment tuning knobs from KUBEFN_* environment variables.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class DeploySettings(BaseSettings):
    """Defaults for deployments, readiness polling, and ingress generation."""

    # Cluster
    DEFAULT_NAMESPACE: str = "default"
    REQUEST_TIMEOUT: float = Field(10.0, gt=0)

    # Readiness polling
    POLL_INTERVAL: float = Field(2.0, ge=0)
    MAX_POLL_RETRIES: int = Field(3, ge=0)
    STABILITY_THRESHOLD: int = Field(2, ge=1)
    CRASH_RESTART_THRESHOLD: int = Field(2, ge=0)

    # Manifests
    DEFAULT_MEMORY_UNIT: str = "Mi"
    INGRESS_CLASS: str = "nginx"
    INGRESS_HOST_SUFFIX: str = "nip.io"

    @field_validator("INGRESS_HOST_SUFFIX", mode="before")
    @classmethod
    def strip_leading_dot(cls, v):
        """Accept both '.nip.io' and 'nip.io'."""
        if isinstance(v, str):
            return v.lstrip(".")
        return v

    class Config:
        env_prefix = "KUBEFN_"
        env_file = ".env"
        extra = "ignore"
        case_sensitive = True


@lru_cache()
def get_settings() -> DeploySettings:
    """Get cached settings instance."""
    return DeploySettings()
