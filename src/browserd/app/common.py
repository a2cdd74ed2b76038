from __future__ import annotations

import argparse
import functools
import json
import logging
import os
from collections.abc import Mapping, Sequence
from typing import Optional

from browserd.config import DebugPolicy, IceServerConfig
from browserd.metrics import Metrics
from browserd.session.machine import LinkFactory
from browserd.session.peer import AiortcPeerLink

logger = logging.getLogger(__name__)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--url',
        default=None,
        help='Rendezvous server base URL (sets BROWSERD_POLL_URL)'
    )
    parser.add_argument(
        '--poll-interval-ms',
        type=int,
        default=None,
        help='Signaling poll interval in ms (sets BROWSERD_POLL_INTERVAL_MS)'
    )
    parser.add_argument(
        '--stun',
        default=None,
        help='STUN server URL (sets BROWSERD_STUN_URL)'
    )
    parser.add_argument(
        '--turn',
        default=None,
        help='Comma-separated TURN URLs (sets BROWSERD_TURN_URL)'
    )
    parser.add_argument('--turn-username', default=None, help='TURN username')
    parser.add_argument('--turn-password', default=None, help='TURN credential')
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging for browserd modules'
    )


def cli_env(args: argparse.Namespace, extra: Optional[Mapping[str, object]] = None) -> dict[str, str]:
    """Environment snapshot with CLI flags layered on top (CLI wins)."""

    env = dict(os.environ)
    overrides: dict[str, object] = {
        'BROWSERD_POLL_URL': args.url,
        'BROWSERD_POLL_INTERVAL_MS': args.poll_interval_ms,
        'BROWSERD_STUN_URL': args.stun,
        'BROWSERD_TURN_URL': args.turn,
        'BROWSERD_TURN_USERNAME': args.turn_username,
        'BROWSERD_TURN_PASSWORD': args.turn_password,
    }
    overrides.update(extra or {})
    for key, value in overrides.items():
        if value is not None:
            env[key] = str(value)
    return env


def make_link_factory(ice_servers: Sequence[IceServerConfig], policy: DebugPolicy) -> LinkFactory:
    return functools.partial(
        AiortcPeerLink,
        ice_servers=tuple(ice_servers),
        log_negotiation=policy.logging.log_negotiation,
    )


def log_metrics(metrics: Metrics) -> None:
    logger.info("session metrics: %s", json.dumps(metrics.snapshot(), sort_keys=True))


__all__ = ["add_common_arguments", "cli_env", "log_metrics", "make_link_factory"]
