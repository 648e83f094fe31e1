"""Shared test data and helpers for the polyglot-agent test suite."""

from polyglot_agent.pipeline import CompleteEvent, LogEvent

RELAY_URL = "https://relay.test/get"
LOCAL_DOC_URL = "http://localhost:8000/protocol.md"
REMOTE_DOC_URL = "https://docs.example.com/protocol.md"

HANDSHAKE_DOC = """# Example Protocol

### Handshaking State
The client opens the connection with a handshake.

**Handshake Packet (0x00)**
- Direction: Client to Server
- Protocol Version (VarInt): The protocol version
"""

MULTI_STATE_DOC = """**Ping Packet (0x01)**
- Payload (Long): Arbitrary value

### Play State
**Chat Packet (0x02)** client to server
- Message (String): Chat text
- Position (Byte): Where it is shown

**Keep Alive packet id: keepalive**
- Token (Long): Echoed back
"""

HTML_DOC = """<!DOCTYPE html>
<html>
<head><title>Protocol</title><style>body { color: red }</style></head>
<body>
<h2>Protocol States</h2>
<h3>Status State</h3>
<p>The status state pings the server.</p>
<p><strong>Request Packet (0x00)</strong></p>
<ul>
<li>Direction: Client to Server</li>
</ul>
<p><strong>Response Packet (0x00)</strong></p>
<ul>
<li>Direction: Server to Client</li>
<li>JSON Response (String): Server status</li>
</ul>
<script>console.log("tracking")</script>
</body>
</html>
"""


def relay_envelope(contents: str, http_code: int = 200, content_type: str = "text/markdown") -> dict:
    """JSON body in the shape the cross-origin relay returns."""
    return {
        "contents": contents,
        "status": {"url": REMOTE_DOC_URL, "content_type": content_type, "http_code": http_code},
    }


def split_events(events):
    """Return (log_events, terminal_events) from a drained run."""
    logs = [e for e in events if isinstance(e, LogEvent)]
    terminal = [e for e in events if not isinstance(e, LogEvent)]
    return logs, terminal


def complete_bundle(events):
    completes = [e for e in events if isinstance(e, CompleteEvent)]
    assert len(completes) == 1, f"Expected one CompleteEvent, got {events}"
    return completes[0].bundle
