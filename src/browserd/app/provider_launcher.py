"""
Launcher for the browserd provider.

Captures a screen region, waits on the rendezvous server for a consumer,
streams the capture to it and replays the consumer's input locally.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from typing import Optional

from browserd.app.common import add_common_arguments, cli_env, log_metrics, make_link_factory
from browserd.config import ConfigError, ProviderConfig, configure_logging, load_provider_config
from browserd.errors import CaptureUnavailable
from browserd.metrics import Metrics
from browserd.provider import InputTranslator, MssCaptureSource, ProviderRole, select_device
from browserd.session import PeerSessionMachine, RetryPolicy
from browserd.signaling import SignalingChannel

logger = logging.getLogger(__name__)

_REGION = re.compile(r"(\d+)x(\d+)\+(-?\d+)\+(-?\d+)")


def parse_region(text: str) -> tuple[int, int, int, int]:
    """``"1280x720+100+50"`` -> ``(left, top, width, height)``."""

    match = _REGION.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"region must look like WIDTHxHEIGHT+X+Y, got {text!r}")
    width, height, left, top = (int(v) for v in match.groups())
    if width <= 0 or height <= 0:
        raise ValueError(f"region must have a positive size, got {text!r}")
    return left, top, width, height


async def run_provider(
    config: ProviderConfig,
    *,
    region: Optional[tuple[int, int, int, int]] = None,
    metrics: Optional[Metrics] = None,
) -> None:
    metrics = metrics or Metrics()
    toggles = config.debug_policy.logging
    capture = MssCaptureSource(fps=config.fps, region_name=config.capture_title, region=region)
    device = select_device(capture.enumerate_devices(), config.capture_title)
    source = capture.create_stream(device)

    # pynput needs a display at import time.
    from browserd.provider.pynput_surface import PynputSurface

    def _on_resize(width: int, height: int) -> None:
        logger.info("Remote view resized to %dx%d", width, height)
        metrics.set("target.width", width)
        metrics.set("target.height", height)

    origin = (config.origin_x, config.origin_y)
    if origin == (0, 0):
        origin = (device.left, device.top)
    target = PynputSurface(origin=origin, on_resize=_on_resize)
    translator = InputTranslator(target, log_input=toggles.log_input)
    role = ProviderRole(source, translator, title=config.capture_title, metrics=metrics)

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
    try:
        await machine.run()
    finally:
        await signaling.close()
        source.stop()


def launch_provider(config: ProviderConfig, *, region=None, debug: bool = False) -> int:
    configure_logging(config.debug_policy, debug=debug)
    logger.info("Launching provider %r against %s", config.capture_title, config.signaling.url)
    metrics = Metrics()
    try:
        asyncio.run(run_provider(config, region=region, metrics=metrics))
    except CaptureUnavailable as exc:
        logger.error("Cannot capture: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Provider interrupted")
    finally:
        log_metrics(metrics)
    return 0


def main(argv=None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description='browserd provider: stream a local window and accept remote input'
    )
    add_common_arguments(parser)
    parser.add_argument(
        '--title',
        default=None,
        help='Capture device title and participant name prefix (sets BROWSERD_CAPTURE_TITLE)'
    )
    parser.add_argument(
        '--region',
        default=None,
        help='Capture a fixed WIDTHxHEIGHT+X+Y region instead of a whole screen'
    )
    parser.add_argument(
        '--origin',
        default=None,
        help='Window origin X,Y added to input coordinates (sets BROWSERD_ORIGIN_X/Y)'
    )
    parser.add_argument(
        '--fps',
        type=int,
        default=None,
        help='Capture frame rate (sets BROWSERD_FPS)'
    )
    args = parser.parse_args(argv)

    extra: dict[str, object] = {
        'BROWSERD_CAPTURE_TITLE': args.title,
        'BROWSERD_FPS': args.fps,
    }
    if args.origin:
        try:
            ox, oy = (int(v) for v in args.origin.split(","))
        except ValueError:
            parser.error(f"--origin must be X,Y, got {args.origin!r}")
        extra['BROWSERD_ORIGIN_X'] = ox
        extra['BROWSERD_ORIGIN_Y'] = oy
    region = None
    if args.region:
        try:
            region = parse_region(args.region)
        except ValueError as exc:
            parser.error(str(exc))
    try:
        config = load_provider_config(cli_env(args, extra))
    except ConfigError as exc:
        parser.error(str(exc))
    return launch_provider(config, region=region, debug=args.debug)


if __name__ == "__main__":
    sys.exit(main())
