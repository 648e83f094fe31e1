"""Protocol model and run artifacts.

The extractor builds a ``Protocol`` fresh for every run; the renderer consumes
it once. ``GeneratedBundle`` is the terminal artifact of a run.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping


class Direction(str, Enum):
    """Which endpoint originates a packet."""

    CLIENT_TO_SERVER = "ClientToServer"
    SERVER_TO_CLIENT = "ServerToClient"


@dataclass
class PacketField:
    name: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type}


@dataclass
class Packet:
    id: str                      # e.g. "0x00"; not unique across states
    name: str                    # identifier-safe, e.g. "Handshake"
    direction: Direction
    fields: List[PacketField] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "direction": self.direction.value,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass
class State:
    packets: List[Packet] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"packets": [p.to_dict() for p in self.packets]}


@dataclass
class Protocol:
    states: Dict[str, State] = field(default_factory=dict)

    @property
    def state_names(self) -> List[str]:
        return list(self.states)

    @property
    def packet_count(self) -> int:
        return sum(len(s.packets) for s in self.states.values())

    def to_dict(self) -> Dict:
        return {"states": {name: s.to_dict() for name, s in self.states.items()}}


@dataclass(frozen=True)
class GeneratedBundle:
    """Rendered files plus their base64-encoded ZIP archive."""

    files: Mapping[str, str]
    archive: str

    def __post_init__(self):
        # Freeze the mapping so the bundle cannot change after creation.
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def filenames(self) -> List[str]:
        return list(self.files)


@dataclass(frozen=True)
class LogEntry:
    """One line of the progress feed."""

    level: str                   # INFO | SUCCESS | AGENT | WARNING | ERROR
    message: str
    glyph: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"{self.glyph} [{self.level}] {self.message}"
