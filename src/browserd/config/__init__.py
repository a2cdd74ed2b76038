"""Shared configuration dataclasses for browserd."""

from .logging_policy import DebugPolicy, LoggingToggles, configure_logging, load_debug_policy
from .models import (
    ConfigError,
    ConsumerConfig,
    IceServerConfig,
    ProviderConfig,
    RetryConfig,
    SignalingConfig,
    load_consumer_config,
    load_ice_servers,
    load_provider_config,
    load_retry_config,
    load_signaling_config,
)

__all__ = [
    "ConfigError",
    "ConsumerConfig",
    "DebugPolicy",
    "IceServerConfig",
    "LoggingToggles",
    "ProviderConfig",
    "RetryConfig",
    "SignalingConfig",
    "configure_logging",
    "load_consumer_config",
    "load_debug_policy",
    "load_ice_servers",
    "load_provider_config",
    "load_retry_config",
    "load_signaling_config",
]
