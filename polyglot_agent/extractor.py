"""Infer a protocol model from documentation text.

A line-by-line heuristic scan: heading lines move the current-state cursor,
packet header lines open a packet, and the bullet lines right after a header
become its fields. Each packet belongs to the state active where it was found.

The resulting states are those that received packets plus the state open at
the end of the text. ``Default`` is therefore present only when packets
appear before the first state heading, or when the text has no state headings
at all; it is not added unconditionally.
"""

import copy
import logging
import re
from typing import Dict, List, Optional

from polyglot_agent.models import Direction, Packet, PacketField, Protocol, State

logger = logging.getLogger(__name__)


DEFAULT_STATE = "Default"

# Lines scanned after a packet header when collecting fields
FIELD_WINDOW = 9

CLIENT_TO_SERVER_CUES = ("client to server", "c->s", "request")


def fallback_protocol() -> Protocol:
    """Fixed Handshaking/Status/Login model used when no packets are found."""
    c2s, s2c = Direction.CLIENT_TO_SERVER, Direction.SERVER_TO_CLIENT
    return Protocol(states={
        "Handshaking": State(packets=[
            Packet("0x00", "Handshake", c2s, [
                PacketField("protocolVersion", "VarInt"),
                PacketField("serverAddress", "String"),
                PacketField("serverPort", "UnsignedShort"),
                PacketField("nextState", "VarInt"),
            ]),
        ]),
        "Status": State(packets=[
            Packet("0x00", "Request", c2s, []),
            Packet("0x00", "Response", s2c, [PacketField("jsonResponse", "String")]),
        ]),
        "Login": State(packets=[
            Packet("0x00", "LoginStart", c2s, [
                PacketField("name", "String"),
                PacketField("playerUUID", "UUID"),
            ]),
            Packet("0x02", "LoginSuccess", s2c, [
                PacketField("uuid", "UUID"),
                PacketField("username", "String"),
            ]),
        ]),
    })


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


class ProtocolExtractor:
    """Extract states, packets and fields from normalized documentation text."""

    # Patterns run against the lowercased line unless noted
    PATTERNS = {
        # ## Handshaking State / ### Status state
        'state_heading': re.compile(r'^\s*#{2,3}(?!#)'),
        'state_name': re.compile(r'(\w+)\s*state'),

        # **Handshake Packet (0x00)** / Ping packet, id: ping
        'packet_name': re.compile(r'(\w+)\s*packet'),
        'hex_id': re.compile(r'0x[0-9a-f]+'),
        'named_id': re.compile(r'id:\s*(\w+)'),

        # - Protocol Version (VarInt): ...   (run on the original-case line)
        'bullet': re.compile(r'^\s*[-*]\s'),
        'field': re.compile(r'[-*]\s*(\w+).*?\((\w+)\)'),

        # Any markdown heading ends a field block
        'heading': re.compile(r'^\s*#{1,6}\s'),
    }

    def __init__(self, text: str):
        self.lines = (text or "").split("\n")

    def is_state_heading(self, lowered: str) -> Optional[str]:
        """Return the capitalized state name if the line opens a new state."""
        if 'state' not in lowered or not self.PATTERNS['state_heading'].match(lowered):
            return None
        match = self.PATTERNS['state_name'].search(lowered)
        return _capitalize(match.group(1)) if match else None

    def parse_packet_header(self, lowered: str) -> Optional[Dict[str, str]]:
        """Return ``{"name", "id"}`` when the line is a packet header."""
        if 'packet' not in lowered or ('0x' not in lowered and 'id:' not in lowered):
            return None

        name_match = self.PATTERNS['packet_name'].search(lowered)
        hex_match = self.PATTERNS['hex_id'].search(lowered)
        id_match = self.PATTERNS['named_id'].search(lowered)
        if not name_match or not (hex_match or id_match):
            return None

        packet_id = hex_match.group(0) if hex_match else id_match.group(1)
        return {"name": _capitalize(name_match.group(1)), "id": packet_id}

    @staticmethod
    def has_client_to_server_cue(lowered: str) -> bool:
        return any(cue in lowered for cue in CLIENT_TO_SERVER_CUES)

    def collect_fields(self, header_index: int) -> tuple:
        """Scan the lines after a header for fields and an explicit direction.

        Returns ``(fields, client_to_server)`` where the flag is True when a
        ``Direction:`` bullet names the client-to-server direction.
        """
        fields: List[PacketField] = []
        client_to_server = False
        end = min(header_index + 1 + FIELD_WINDOW, len(self.lines))

        for line in self.lines[header_index + 1:end]:
            lowered = line.lower()
            if self.parse_packet_header(lowered):
                break
            if self.PATTERNS['bullet'].match(line):
                if 'direction' in lowered and self.has_client_to_server_cue(lowered):
                    client_to_server = True
                match = self.PATTERNS['field'].search(line)
                if match:
                    fields.append(PacketField(name=match.group(1).lower(), type=match.group(2)))
            if self.PATTERNS['heading'].match(line) or line.strip() == '':
                break

        return fields, client_to_server

    def extract(self) -> Protocol:
        """Run the scan and assemble the protocol."""
        cursor = DEFAULT_STATE
        by_state: Dict[str, List[Packet]] = {}
        discovered: List[Packet] = []

        for index, line in enumerate(self.lines):
            lowered = line.lower()

            state_name = self.is_state_heading(lowered)
            if state_name:
                cursor = state_name

            header = self.parse_packet_header(lowered)
            if not header:
                continue

            fields, body_c2s = self.collect_fields(index)
            direction = (
                Direction.CLIENT_TO_SERVER
                if self.has_client_to_server_cue(lowered) or body_c2s
                else Direction.SERVER_TO_CLIENT
            )
            packet = Packet(
                id=header["id"],
                name=header["name"],
                direction=direction,
                fields=fields or [PacketField("data", "String")],
            )
            discovered.append(packet)
            by_state.setdefault(cursor, []).append(packet)

        if not discovered:
            logger.debug("No packet definitions found, using fallback protocol")
            return fallback_protocol()

        # The state open at the end of the text is always part of the model
        by_state.setdefault(cursor, [])

        states = {}
        for name, packets in by_state.items():
            if not packets:
                packets = [copy.deepcopy(discovered[0])]
            states[name] = State(packets=packets)

        protocol = Protocol(states=states)
        logger.debug(
            "Extracted %d states, %d packets", len(protocol.states), protocol.packet_count
        )
        return protocol


def extract_protocol(text: str) -> Protocol:
    """Convenience wrapper: extract a protocol from normalized text."""
    return ProtocolExtractor(text).extract()
