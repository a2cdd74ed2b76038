"""Consumer side: the initiating role plus its Qt view and input monitor.

The Qt modules are imported directly by the launcher and tests.
"""

from .role import ConsumerRole, RenderSurface

__all__ = ["ConsumerRole", "RenderSurface"]
