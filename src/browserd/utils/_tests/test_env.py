from __future__ import annotations

from browserd.utils.env import env_bool, env_float, env_int, env_str


def test_env_helpers_read_mapping() -> None:
    env = {"S": "value", "B": "yes", "I": "12", "F": "0.5", "EMPTY": ""}

    assert env_str("S", None, env) == "value"
    assert env_str("EMPTY", "fallback", env) == "fallback"
    assert env_bool("B", False, env) is True
    assert env_int("I", 0, env) == 12
    assert env_float("F", 0.0, env) == 0.5


def test_env_helpers_fall_back_on_garbage() -> None:
    env = {"B": "maybe", "I": "1.5", "F": "abc"}

    assert env_bool("B", True, env) is True
    assert env_int("I", 7, env) == 7
    assert env_float("F", 2.0, env) == 2.0
    assert env_int("MISSING", 3, env) == 3


def test_env_helpers_default_to_process_environment(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("BROWSERD_TEST_VALUE", "42")

    assert env_int("BROWSERD_TEST_VALUE", 0) == 42
