"""Roster lines returned by the rendezvous server.

Each line is ``name,id,connected`` with ``connected`` as ``1``/``0``. The
sign-in response lists the caller first; wait responses addressed from the
caller's own id carry roster updates in the same format.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    name: str = ""
    connected: bool = True


@dataclass(frozen=True, slots=True)
class RosterDiff:
    joined: tuple[Participant, ...] = ()
    left: tuple[Participant, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.joined or self.left)


def parse_roster_line(line: str) -> Optional[Participant]:
    parts = [p.strip() for p in line.strip().split(",")]
    if len(parts) < 3 or not parts[1]:
        return None
    name, peer_id, connected = parts[0], parts[1], parts[2]
    return Participant(id=peer_id, name=name, connected=connected not in ("0", ""))


def parse_roster(body: str) -> list[Participant]:
    roster: list[Participant] = []
    for line in body.splitlines():
        if not line.strip():
            continue
        participant = parse_roster_line(line)
        if participant is not None:
            roster.append(participant)
    return roster


def apply_roster_update(
    current: Mapping[str, Participant],
    updates: Iterable[Participant],
) -> tuple[dict[str, Participant], RosterDiff]:
    """Merge ``updates`` into ``current`` and report who joined or left.

    Disconnected entries are removed from the roster rather than kept with
    ``connected=False``.
    """

    roster = dict(current)
    joined: list[Participant] = []
    left: list[Participant] = []
    for participant in updates:
        known = roster.get(participant.id)
        if participant.connected:
            if known is None or not known.connected:
                joined.append(participant)
            roster[participant.id] = participant
        elif known is not None:
            left.append(known)
            del roster[participant.id]
    return roster, RosterDiff(joined=tuple(joined), left=tuple(left))


def first_remote(roster: Iterable[Participant], self_id: str) -> Optional[str]:
    """Return the first connected participant that is not ``self_id``."""

    for participant in roster:
        if participant.connected and participant.id != self_id:
            return participant.id
    return None


__all__ = [
    "Participant",
    "RosterDiff",
    "apply_roster_update",
    "first_remote",
    "parse_roster",
    "parse_roster_line",
]
