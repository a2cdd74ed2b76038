"""
Launcher for the browserd consumer.

Opens a Qt window, finds the first provider on the rendezvous server and
renders its video while forwarding mouse, wheel, keyboard and resize input.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import qasync
from qtpy import QtWidgets  # type: ignore

from browserd.app.common import add_common_arguments, cli_env, log_metrics, make_link_factory
from browserd.config import ConfigError, ConsumerConfig, configure_logging, load_consumer_config
from browserd.consumer.qt_input import InputMonitor
from browserd.consumer.qt_surface import VideoSurface
from browserd.consumer.role import ConsumerRole
from browserd.errors import NoRemoteFound
from browserd.metrics import Metrics
from browserd.session import PeerSessionMachine, RetryPolicy
from browserd.signaling import SignalingChannel

logger = logging.getLogger(__name__)


def launch_consumer(config: ConsumerConfig, *, debug: bool = False) -> int:
    """Run the consumer until its window closes; returns a process exit code."""

    configure_logging(config.debug_policy, debug=debug)
    toggles = config.debug_policy.logging
    logger.info("Launching consumer against %s", config.signaling.url)

    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication(sys.argv)
    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    window = QtWidgets.QMainWindow()
    window.setWindowTitle("browserd")
    surface = VideoSurface(window)
    window.setCentralWidget(surface)
    window.resize(1280, 720)

    metrics = Metrics()
    role = ConsumerRole(surface, metrics=metrics)
    monitor = InputMonitor(
        surface,
        role.post,
        max_rate_hz=config.wheel_max_rate_hz,
        resize_debounce_ms=config.resize_debounce_ms,
        log_input=toggles.log_input,
    )
    role.add_streaming_listener(monitor.send_size)
    signaling = SignalingChannel(
        config.signaling.url,
        poll_interval_s=config.signaling.poll_interval_s,
        request_timeout_s=config.signaling.request_timeout_s,
        log_traffic=toggles.log_signaling,
    )
    machine = PeerSessionMachine(
        role,
        signaling,
        make_link_factory(config.ice_servers, config.debug_policy),
        retry=RetryPolicy(config.retry),
        metrics=metrics,
        debug_policy=config.debug_policy,
    )

    exit_code = 0

    async def runner() -> None:
        nonlocal exit_code
        try:
            await machine.run()
        except NoRemoteFound as exc:
            logger.error("Nothing to connect to: %s", exc)
            exit_code = 2
        finally:
            await signaling.close()

    window.show()
    monitor.start()
    app.setQuitOnLastWindowClosed(False)
    with loop:
        task = loop.create_task(runner())
        app.lastWindowClosed.connect(task.cancel)
        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            logger.info("Consumer window closed")
    monitor.stop()
    window.close()
    log_metrics(metrics)
    return exit_code


def main(argv=None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description='browserd consumer: view and control a remote window'
    )
    add_common_arguments(parser)
    parser.add_argument(
        '--wheel-max-hz',
        type=float,
        default=None,
        help='Maximum wheel message rate (sets BROWSERD_WHEEL_MAX_HZ)'
    )
    parser.add_argument(
        '--resize-debounce-ms',
        type=int,
        default=None,
        help='Resize debounce interval (sets BROWSERD_RESIZE_DEBOUNCE_MS)'
    )
    args = parser.parse_args(argv)

    env = cli_env(
        args,
        {
            'BROWSERD_WHEEL_MAX_HZ': args.wheel_max_hz,
            'BROWSERD_RESIZE_DEBOUNCE_MS': args.resize_debounce_ms,
        },
    )
    try:
        config = load_consumer_config(env)
    except ConfigError as exc:
        parser.error(str(exc))
    return launch_consumer(config, debug=args.debug)


if __name__ == "__main__":
    sys.exit(main())
