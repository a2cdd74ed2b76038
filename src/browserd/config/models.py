"""Configuration dataclasses shared by the consumer and provider launchers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from browserd.config.logging_policy import DebugPolicy, load_debug_policy
from browserd.utils.env import env_float, env_int, env_str


class ConfigError(ValueError):
    """Raised when a required configuration value is missing or invalid."""


@dataclass(frozen=True)
class SignalingConfig:
    """Rendezvous endpoint and polling cadence."""

    url: str
    poll_interval_ms: int = 1000
    request_timeout_s: float = 35.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("signaling url is required")
        if self.poll_interval_ms <= 0:
            raise ConfigError("poll interval must be positive")

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0


@dataclass(frozen=True)
class IceServerConfig:
    """One relay/STUN entry handed to the peer connection."""

    urls: tuple[str, ...]
    username: Optional[str] = None
    credential: Optional[str] = None


@dataclass(frozen=True)
class RetryConfig:
    """Reconnect pacing: jittered exponential backoff plus an attempt-rate cap."""

    base_delay_s: float = 1.0
    factor: float = 1.5
    max_delay_s: float = 30.0
    jitter: float = 0.2
    max_attempts: int = 6
    window_s: float = 60.0


@dataclass(frozen=True)
class ConsumerConfig:
    signaling: SignalingConfig
    ice_servers: tuple[IceServerConfig, ...] = ()
    retry: RetryConfig = field(default_factory=RetryConfig)
    debug_policy: DebugPolicy = field(default_factory=DebugPolicy)
    wheel_max_rate_hz: float = 120.0
    resize_debounce_ms: int = 80


@dataclass(frozen=True)
class ProviderConfig:
    signaling: SignalingConfig
    capture_title: str = "browserd"
    origin_x: int = 0
    origin_y: int = 0
    fps: int = 30
    ice_servers: tuple[IceServerConfig, ...] = ()
    retry: RetryConfig = field(default_factory=RetryConfig)
    debug_policy: DebugPolicy = field(default_factory=DebugPolicy)


def load_signaling_config(env: Optional[Mapping[str, str]] = None) -> SignalingConfig:
    url = env_str("BROWSERD_POLL_URL", None, env)
    if not url:
        raise ConfigError("missing env: BROWSERD_POLL_URL")
    return SignalingConfig(
        url=url.rstrip("/"),
        poll_interval_ms=env_int("BROWSERD_POLL_INTERVAL_MS", 1000, env),
        request_timeout_s=env_float("BROWSERD_REQUEST_TIMEOUT_S", 35.0, env),
    )


def load_ice_servers(env: Optional[Mapping[str, str]] = None) -> tuple[IceServerConfig, ...]:
    servers: list[IceServerConfig] = []
    stun = env_str("BROWSERD_STUN_URL", None, env)
    if stun:
        servers.append(IceServerConfig(urls=(stun,)))
    turn = env_str("BROWSERD_TURN_URL", None, env)
    if turn:
        servers.append(
            IceServerConfig(
                urls=tuple(u.strip() for u in turn.split(",") if u.strip()),
                username=env_str("BROWSERD_TURN_USERNAME", None, env),
                credential=env_str("BROWSERD_TURN_PASSWORD", None, env),
            )
        )
    return tuple(servers)


def load_retry_config(env: Optional[Mapping[str, str]] = None) -> RetryConfig:
    defaults = RetryConfig()
    return RetryConfig(
        base_delay_s=env_float("BROWSERD_RETRY_BASE_S", defaults.base_delay_s, env),
        factor=env_float("BROWSERD_RETRY_FACTOR", defaults.factor, env),
        max_delay_s=env_float("BROWSERD_RETRY_MAX_S", defaults.max_delay_s, env),
        jitter=env_float("BROWSERD_RETRY_JITTER", defaults.jitter, env),
        max_attempts=env_int("BROWSERD_RETRY_MAX_ATTEMPTS", defaults.max_attempts, env),
        window_s=env_float("BROWSERD_RETRY_WINDOW_S", defaults.window_s, env),
    )


def load_consumer_config(env: Optional[Mapping[str, str]] = None) -> ConsumerConfig:
    return ConsumerConfig(
        signaling=load_signaling_config(env),
        ice_servers=load_ice_servers(env),
        retry=load_retry_config(env),
        debug_policy=load_debug_policy(env),
        wheel_max_rate_hz=env_float("BROWSERD_WHEEL_MAX_HZ", 120.0, env),
        resize_debounce_ms=env_int("BROWSERD_RESIZE_DEBOUNCE_MS", 80, env),
    )


def load_provider_config(env: Optional[Mapping[str, str]] = None) -> ProviderConfig:
    return ProviderConfig(
        signaling=load_signaling_config(env),
        capture_title=env_str("BROWSERD_CAPTURE_TITLE", "browserd", env) or "browserd",
        origin_x=env_int("BROWSERD_ORIGIN_X", 0, env),
        origin_y=env_int("BROWSERD_ORIGIN_Y", 0, env),
        fps=env_int("BROWSERD_FPS", 30, env),
        ice_servers=load_ice_servers(env),
        retry=load_retry_config(env),
        debug_policy=load_debug_policy(env),
    )
