"""Runtime configuration for kubefn."""

from kubefn.config.settings import DeploySettings, get_settings

__all__ = ["DeploySettings", "get_settings"]
