"""Document fetching and text normalization.

Deep module: callers pass a URL in, get plain text back. Relay routing,
envelope unwrapping, content sniffing and the sample-document fallback are
handled internally.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import markdown
import requests
from bs4 import BeautifulSoup, Comment, Tag

from polyglot_agent.config import DEFAULT_RELAY_URL
from polyglot_agent.security import URLValidator

logger = logging.getLogger(__name__)


SAMPLE_DOCUMENT = """
# Mock Protocol Documentation

This is a sample protocol documentation for demo purposes.

## Protocol States

### Handshaking State
The handshaking state is used to determine the intent of the client.

**Handshake Packet (0x00)**
- Direction: Client to Server
- Fields:
  - Protocol Version (VarInt): The protocol version
  - Server Address (String): The server hostname or IP
  - Server Port (Unsigned Short): The server port number
  - Next State (VarInt): 1 for status, 2 for login

### Status State
The status state is used to ping the server and get server information.

**Request Packet (0x00)**
- Direction: Client to Server
- Fields: None

**Response Packet (0x00)**
- Direction: Server to Client
- Fields:
  - JSON Response (String): Server status information

### Login State
The login state is used to authenticate and log into the server.

**Login Start Packet (0x00)**
- Direction: Client to Server
- Fields:
  - Name (String): Player username
  - Player UUID (UUID): Player unique identifier

**Login Success Packet (0x02)**
- Direction: Server to Client
- Fields:
  - UUID (UUID): Player UUID
  - Username (String): Player username

## Data Types

- **VarInt**: Variable-length integer
- **String**: UTF-8 encoded string with length prefix
- **UUID**: 128-bit identifier
- **Unsigned Short**: 16-bit unsigned integer
"""


class FetchError(Exception):
    """Network failure, non-success status, or unusable content."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass
class FetchResult:
    """Outcome of a fetch: the text plus where it came from."""

    url: str
    text: str
    source: str                          # "fetched" or "sample"
    error: Optional[FetchError] = None

    @property
    def substituted(self) -> bool:
        return self.source == "sample"


# ---------------------------------------------------------------------------
# Text reducers
# ---------------------------------------------------------------------------

_HEADING = re.compile(r"^h([1-6])$")
_PARAGRAPH_TAGS = ["p", "div", "section", "article", "pre", "table", "blockquote", "dl"]
_BLOCK_TAGS = {
    "html", "body", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "br", "hr",
    "tr", "td", "th", "thead", "tbody", "tfoot", "dt", "dd", *_PARAGRAPH_TAGS,
}


def _is_block(node) -> bool:
    """True for a missing sibling or a block-level tag."""
    return node is None or (isinstance(node, Tag) and node.name in _BLOCK_TAGS)


def html_to_text(html: str) -> str:
    """Reduce HTML to plain text.

    Scripts and styles are dropped. Headings come out as ``#``-prefixed lines
    and list items as ``- `` bullets, so heading/bullet cues survive for the
    extractor. A paragraph immediately followed by a list stays attached to it.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["head", "script", "style", "noscript", "template"]):
        tag.extract()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    # Source-formatting newlines between blocks carry no meaning; between
    # inline elements they still separate words
    for node in soup.find_all(string=True):
        if "\n" not in node or node.strip() or node.parent.name == "pre":
            continue
        if _is_block(node.previous_sibling) and _is_block(node.next_sibling):
            node.extract()
        else:
            node.replace_with(" ")

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for heading in soup.find_all(_HEADING):
        level = int(heading.name[1])
        heading.insert(0, "\n" + "#" * level + " ")
        heading.append("\n\n")

    for item in soup.find_all("li"):
        item.insert(0, "- ")
        item.append("\n")

    for lst in soup.find_all(["ul", "ol"]):
        if lst.find_parent("li") is not None:
            lst.insert(0, "\n")
        else:
            lst.append("\n\n")

    for block in soup.find_all(_PARAGRAPH_TAGS):
        following = block.find_next_sibling()
        if following is not None and following.name in ("ul", "ol"):
            block.append("\n")
        else:
            block.append("\n\n")

    for row in soup.find_all("tr"):
        row.append("\n")

    text = soup.get_text()
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def markdown_to_text(source: str) -> str:
    """Render Markdown to HTML, then reduce the HTML to text."""
    html = markdown.markdown(source, extensions=["fenced_code", "tables"])
    return html_to_text(html)


def detect_format(url: str, content: str, content_type: str = "") -> str:
    """Classify content as ``html``, ``markdown`` or ``text``."""
    content_type = content_type.lower()
    if "text/html" in content_type or "<html" in content.lower():
        return "html"
    if "text/markdown" in content_type or url.lower().endswith(".md") or "# " in content:
        return "markdown"
    return "text"


def normalize(url: str, content: str, content_type: str = "") -> str:
    """Dispatch content to the matching reducer; plain text passes through."""
    kind = detect_format(url, content, content_type)
    if kind == "html":
        return html_to_text(content)
    if kind == "markdown":
        return markdown_to_text(content)
    return content


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

class DocumentFetcher:
    """Fetch documentation pages and normalize them to plain text.

    Args:
        relay_url: Cross-origin relay endpoint used for non-local URLs. The
                   relay answers with a JSON envelope carrying ``contents``.
        timeout: Per-request timeout in seconds.
        sample_fallback: When True, failures yield ``SAMPLE_DOCUMENT`` instead
                         of raising ``FetchError``.
    """

    def __init__(
        self,
        relay_url: Optional[str] = None,
        timeout: float = 30,
        sample_fallback: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.relay_url = relay_url or DEFAULT_RELAY_URL
        self.timeout = timeout
        self.sample_fallback = sample_fallback
        self.session = session or requests.Session()
        self.validator = URLValidator()

    # ----- public ----------------------------------------------------------

    def fetch(self, url: str) -> FetchResult:
        """Fetch and normalize ``url``.

        Raises:
            InvalidURLError: ``url`` is malformed (checked before any request).
            FetchError: the fetch failed and sample fallback is disabled.
        """
        url = self.validator.require_valid_url(url)

        try:
            content, content_type = self.fetch_raw(url)
            text = normalize(url, content, content_type)
        except FetchError as exc:
            return self._substitute(url, exc)
        except Exception as exc:
            # Parser failures are treated like fetch failures
            return self._substitute(url, FetchError(f"Failed to parse document: {exc}", url=url))

        logger.info("Fetched %s (%d chars)", url, len(text))
        return FetchResult(url=url, text=text, source="fetched")

    def fetch_raw(self, url: str) -> Tuple[str, str]:
        """Return ``(content, content_type)`` for ``url`` without normalizing.

        Non-local URLs go through the relay; local ones are requested directly.
        """
        if URLValidator.is_local(url):
            response = self._get(url, url)
            return response.text, response.headers.get("content-type", "")

        response = self._get(self.relay_url, url, params={"url": url})
        try:
            envelope = response.json()
        except ValueError as exc:
            raise FetchError(f"Relay returned invalid JSON: {exc}", url=url)

        if not isinstance(envelope, dict) or not isinstance(envelope.get("contents"), str):
            raise FetchError("Relay envelope has no 'contents'", url=url)

        status = envelope.get("status") or {}
        http_code = status.get("http_code")
        if isinstance(http_code, int) and http_code >= 400:
            raise FetchError(
                f"Failed to fetch document: upstream returned {http_code}",
                url=url,
                status_code=http_code,
            )

        content_type = status.get("content_type") or response.headers.get("content-type", "")
        return envelope["contents"], content_type

    # ----- internal --------------------------------------------------------

    def _get(self, endpoint: str, url: str, params: Optional[dict] = None) -> requests.Response:
        logger.debug("GET %s", endpoint)
        try:
            response = self.session.get(endpoint, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise FetchError(f"{type(exc).__name__}: {exc}", url=url)

        if not response.ok:
            raise FetchError(
                f"Failed to fetch document: {response.status_code} {response.reason}",
                url=url,
                status_code=response.status_code,
            )
        return response

    def _substitute(self, url: str, error: FetchError) -> FetchResult:
        if not self.sample_fallback:
            raise error
        logger.warning("Fetch failed for %s, using sample document: %s", url, error)
        return FetchResult(url=url, text=SAMPLE_DOCUMENT, source="sample", error=error)


def fetch_document_text(url: str, fetcher: Optional[DocumentFetcher] = None) -> str:
    """Fetch ``url`` and return normalized text, falling back to the sample document."""
    return (fetcher or DocumentFetcher()).fetch(url).text
