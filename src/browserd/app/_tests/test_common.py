from __future__ import annotations

import argparse

import pytest

from browserd.app.common import add_common_arguments, cli_env, make_link_factory
from browserd.app.provider_launcher import parse_region
from browserd.config import DebugPolicy, IceServerConfig, LoggingToggles
from browserd.session import AiortcPeerLink


def _args(*argv: str) -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    add_common_arguments(parser)
    return parser.parse_args(list(argv))


def test_cli_flags_override_environment(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("BROWSERD_POLL_URL", "http://from-env")
    monkeypatch.setenv("BROWSERD_STUN_URL", "stun:env")
    monkeypatch.delenv("BROWSERD_ORIGIN_X", raising=False)

    env = cli_env(_args("--url", "http://from-cli", "--poll-interval-ms", "200"), {"BROWSERD_FPS": 15, "BROWSERD_ORIGIN_X": None})

    assert env["BROWSERD_POLL_URL"] == "http://from-cli"
    assert env["BROWSERD_POLL_INTERVAL_MS"] == "200"
    assert env["BROWSERD_STUN_URL"] == "stun:env"
    assert env["BROWSERD_FPS"] == "15"
    assert "BROWSERD_ORIGIN_X" not in env


def test_link_factory_binds_ice_servers() -> None:
    factory = make_link_factory(
        [IceServerConfig(urls=("stun:x",))],
        DebugPolicy(logging=LoggingToggles(log_negotiation=True)),
    )

    assert factory.func is AiortcPeerLink
    assert factory.keywords == {"ice_servers": (IceServerConfig(urls=("stun:x",)),), "log_negotiation": True}


def test_parse_region() -> None:
    assert parse_region("1280x720+100+50") == (100, 50, 1280, 720)
    assert parse_region("640x480+-10+0") == (-10, 0, 640, 480)


@pytest.mark.parametrize("text", ["1280x720", "0x10+0+0", "axb+1+1"])
def test_parse_region_rejects_bad_input(text: str) -> None:
    with pytest.raises(ValueError):
        parse_region(text)
