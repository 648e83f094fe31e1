"""Bundle rendered files into a base64-encoded ZIP archive."""

import base64
import binascii
import io
import logging
import zipfile
from typing import Dict, Mapping

logger = logging.getLogger(__name__)


def package(files: Mapping[str, str]) -> str:
    """Zip ``files`` (flat names, UTF-8 text) and return the archive as base64.

    Member names are the input keys exactly, with no directory nesting.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as zf:
        for name, content in dict(files).items():
            zf.writestr(name, content.encode("utf-8"))

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    logger.debug("Packaged %d files (%d bytes encoded)", len(files), len(encoded))
    return encoded


def archive_bytes(encoded: str) -> bytes:
    """Decode a packaged archive back to raw ZIP bytes."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Archive is not valid base64: {exc}")


def unpack(encoded: str) -> Dict[str, str]:
    """Reverse ``package``: return ``{name: text}`` for every member."""
    with zipfile.ZipFile(io.BytesIO(archive_bytes(encoded)), "r") as zf:
        return {info.filename: zf.read(info).decode("utf-8") for info in zf.infolist()}
