"""Tests for template rendering and bundle packaging."""

import base64
import io
import zipfile

import pytest

from polyglot_agent.extractor import extract_protocol, fallback_protocol
from polyglot_agent.fetcher import SAMPLE_DOCUMENT
from polyglot_agent.models import Direction, Packet, PacketField, Protocol, State
from polyglot_agent.packager import package, unpack
from polyglot_agent.renderer import PACKAGE_JSON, TSCONFIG_JSON, identifier, render, ts_string
from tests.fixtures import HANDSHAKE_DOC, MULTI_STATE_DOC


def expected_filenames(protocol: Protocol) -> set:
    fixed = {"protocol.ts", "types.ts", "index.ts", "package.json", "tsconfig.json"}
    return fixed | {f"{name.lower()}-packets.ts" for name in protocol.states}


# ---------------------------------------------------------------------------
# File set
# ---------------------------------------------------------------------------

class TestFileSet:

    @pytest.mark.parametrize("text", ["", HANDSHAKE_DOC, MULTI_STATE_DOC, SAMPLE_DOCUMENT])
    def test_filenames_follow_states(self, text):
        protocol = extract_protocol(text)

        assert set(render(protocol)) == expected_filenames(protocol)

    def test_fallback_file_set(self):
        assert set(render(fallback_protocol())) == {
            "protocol.ts", "handshaking-packets.ts", "status-packets.ts", "login-packets.ts",
            "types.ts", "index.ts", "package.json", "tsconfig.json",
        }

    def test_manifests_are_static(self):
        a = render(fallback_protocol())
        b = render(extract_protocol(MULTI_STATE_DOC))

        assert a["package.json"] == b["package.json"] == PACKAGE_JSON
        assert a["tsconfig.json"] == b["tsconfig.json"] == TSCONFIG_JSON


# ---------------------------------------------------------------------------
# File contents
# ---------------------------------------------------------------------------

class TestContents:

    @pytest.fixture
    def files(self):
        return render(fallback_protocol())

    def test_protocol_handler_wires_every_state(self, files):
        handler = files["protocol.ts"]

        assert "import { HandshakingPackets } from './handshaking-packets.js'" in handler
        assert "case 'handle_status':" in handler
        assert "name: 'handle_login'," in handler
        assert "private async handleLogin(packetData: string) {" in handler
        assert "text: `Processed Status packet: ${packetData}`" in handler
        assert "private currentState: string = 'Handshaking'" in handler

    def test_state_packets_module(self, files):
        login = files["login-packets.ts"]

        assert "export const LoginPackets: LoginPacket[] = [" in login
        assert "id: '0x02'," in login
        assert "direction: 'ServerToClient'," in login
        assert "{ name: 'playerUUID', type: 'UUID' }" in login
        assert "static handleLoginSuccess(data: any) {" in login
        assert "export class LoginPacketHandler {" in login

    def test_packet_without_fields_renders_empty_list(self, files):
        status = files["status-packets.ts"]

        assert "name: 'Request',\n    direction: 'ClientToServer',\n    fields: [\n    ]" in status

    def test_types_union(self, files):
        assert "export type ProtocolState = 'Handshaking' | 'Status' | 'Login'" in files["types.ts"]

    def test_index_reexports(self, files):
        index = files["index.ts"]

        assert "export { ProtocolHandler } from './protocol.js'" in index
        assert "export { StatusPackets, StatusPacketHandler } from './status-packets.js'" in index
        assert "export * from './types.js'" in index

    def test_duplicate_packet_names_get_one_handler(self):
        ping = Packet("0x01", "Ping", Direction.CLIENT_TO_SERVER, [])
        protocol = Protocol(states={"Play": State(packets=[ping, Packet("0x02", "Ping", Direction.SERVER_TO_CLIENT)])})

        play = render(protocol)["play-packets.ts"]

        assert play.count("static handlePing(data: any)") == 1
        assert play.count("name: 'Ping',") == 2

    def test_literals_are_escaped(self):
        packet = Packet("0x01", "Quote", Direction.CLIENT_TO_SERVER, [PacketField("it's", "String")])
        protocol = Protocol(states={"Play": State(packets=[packet])})

        assert "{ name: 'it\\'s', type: 'String' }" in render(protocol)["play-packets.ts"]


class TestHelpers:

    def test_ts_string(self):
        assert ts_string("plain") == "'plain'"
        assert ts_string("it's") == "'it\\'s'"
        assert ts_string("a\\b") == "'a\\\\b'"

    def test_identifier(self):
        assert identifier("handshaking") == "Handshaking"
        assert identifier("login-start") == "Loginstart"
        assert identifier("2fast") == "_2fast"


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------

class TestPackaging:

    @pytest.mark.parametrize("text", ["", HANDSHAKE_DOC, MULTI_STATE_DOC, SAMPLE_DOCUMENT])
    def test_round_trip(self, text):
        files = render(extract_protocol(text))

        assert unpack(package(files)) == files

    def test_archive_is_flat_zip(self):
        files = render(fallback_protocol())
        raw = base64.b64decode(package(files))

        with zipfile.ZipFile(io.BytesIO(raw)) as zf:
            names = zf.namelist()
            assert zf.testzip() is None
        assert sorted(names) == sorted(files)
        assert all("/" not in name for name in names)

    def test_encoded_archive_is_ascii(self):
        encoded = package({"a.txt": "héllo"})

        assert encoded.isascii()
        assert unpack(encoded) == {"a.txt": "héllo"}

    def test_empty_file_set(self):
        assert unpack(package({})) == {}

    def test_unpack_rejects_garbage(self):
        with pytest.raises(ValueError):
            unpack("not base64 at all!")
