"""Generate protocol-handling code bundles from SDK documentation."""

from polyglot_agent.extractor import extract_protocol
from polyglot_agent.fetcher import fetch_document_text
from polyglot_agent.packager import package
from polyglot_agent.pipeline import GenerationPipeline
from polyglot_agent.renderer import render

__all__ = [
    "GenerationPipeline",
    "extract_protocol",
    "fetch_document_text",
    "package",
    "render",
]
