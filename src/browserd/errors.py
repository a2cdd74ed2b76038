"""Exception taxonomy shared by the signaling, session and protocol layers."""

from __future__ import annotations


class BrowserdError(Exception):
    """Base class for all browserd failures."""


class SignalingUnavailable(BrowserdError):
    """The rendezvous endpoint could not be reached or refused the request."""


class NoRemoteFound(BrowserdError):
    """Sign-in succeeded but the roster held no connected remote participant."""


class SessionTornDown(BrowserdError):
    """The peer connection or its data channel closed underneath the session."""


class SessionTransitionError(BrowserdError, RuntimeError):
    """A state transition outside the allowed table was requested."""


class CaptureUnavailable(BrowserdError):
    """No capture device could be enumerated."""


class NegotiationError(BrowserdError, ValueError):
    """A negotiation payload could not be parsed."""


class InputProtocolError(BrowserdError, ValueError):
    """Base class for input wire protocol violations."""


class UnsupportedVersion(InputProtocolError):
    def __init__(self, version: object) -> None:
        super().__init__(f"Unsupported input protocol version: {version!r}")
        self.version = version


class UnknownMessageType(InputProtocolError):
    def __init__(self, message_type: object) -> None:
        super().__init__(f"Unknown input message type: {message_type!r}")
        self.message_type = message_type


class MalformedInputMessage(InputProtocolError):
    """The message envelope or its data block is structurally invalid."""


__all__ = [
    "BrowserdError",
    "CaptureUnavailable",
    "InputProtocolError",
    "MalformedInputMessage",
    "NegotiationError",
    "NoRemoteFound",
    "SessionTornDown",
    "SessionTransitionError",
    "SignalingUnavailable",
    "UnknownMessageType",
    "UnsupportedVersion",
]
