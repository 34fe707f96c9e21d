"""
Configuration management for formrelay
"""
from .client_store import ClientConfigStore, RelayConfig
from .settings import Settings, load_settings

__all__ = ["ClientConfigStore", "RelayConfig", "Settings", "load_settings"]
