"""Wire protocols: input events over the data channel, negotiation over signaling."""

from __future__ import annotations

from .input_messages import *  # noqa: F401,F403
from .negotiation import *  # noqa: F401,F403

__all__ = [name for name in globals().keys() if not name.startswith("_")]
