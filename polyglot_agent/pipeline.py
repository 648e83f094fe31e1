"""Generation pipeline: fetch → extract → render → package.

A run is a lazy, single-consumer event stream. Iterating a ``PipelineRun``
drives the stages in order and yields ``LogEvent``s, then exactly one
terminal event: ``CompleteEvent``, ``ErrorEvent`` or ``CancelledEvent``.

    pipeline = GenerationPipeline()
    run = pipeline.start("https://wiki.vg/Protocol")
    for event in run:
        ...

Cancellation is cooperative: ``run.cancel()`` sets a flag that is read at the
next stage boundary. In-flight network or CPU work is never interrupted.
A run cancelled before it is first iterated yields only ``CancelledEvent``.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Union

from polyglot_agent.config import PipelineConfig, load_config
from polyglot_agent.extractor import extract_protocol
from polyglot_agent.fetcher import DocumentFetcher, FetchResult
from polyglot_agent.models import GeneratedBundle, LogEntry, Protocol
from polyglot_agent.packager import package
from polyglot_agent.renderer import render
from polyglot_agent.security import URLValidator

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "Idle"
    FETCHING = "Fetching"
    EXTRACTING = "Extracting"
    GENERATING = "Generating"
    PACKAGING = "Packaging"
    COMPLETE = "Complete"
    ERROR = "Error"
    CANCELLED = "Cancelled"


TERMINAL_STATES = (PipelineState.COMPLETE, PipelineState.ERROR, PipelineState.CANCELLED)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogEvent:
    entry: LogEntry

    @property
    def level(self) -> str:
        return self.entry.level

    @property
    def message(self) -> str:
        return self.entry.message

    @property
    def glyph(self) -> str:
        return self.entry.glyph


@dataclass(frozen=True)
class CompleteEvent:
    bundle: GeneratedBundle


@dataclass(frozen=True)
class ErrorEvent:
    message: str


@dataclass(frozen=True)
class CancelledEvent:
    """The run stopped at a stage boundary on request. Carries no payload."""


PipelineEvent = Union[LogEvent, CompleteEvent, ErrorEvent, CancelledEvent]


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

class PipelineRun:
    """One invocation of the pipeline for one URL.

    Not restartable: once the event stream is exhausted the run is finished.
    """

    def __init__(self, pipeline: "GenerationPipeline", url: str):
        self.pipeline = pipeline
        self.url = url
        self.state = PipelineState.IDLE
        self.logs: List[LogEntry] = []
        self.fetch_result: Optional[FetchResult] = None
        self.protocol: Optional[Protocol] = None
        self.bundle: Optional[GeneratedBundle] = None
        self.error: Optional[str] = None
        self.cancelled_before: Optional[PipelineState] = None
        self._cancel_requested = False
        self._started = False
        self._events = self._run()

    # ----- consumer API ----------------------------------------------------

    def __iter__(self) -> Iterator[PipelineEvent]:
        return self

    def __next__(self) -> PipelineEvent:
        self._started = True
        return next(self._events)

    def cancel(self) -> None:
        """Ask the run to stop at the next stage boundary."""
        if self.state not in TERMINAL_STATES:
            self._cancel_requested = True

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def close(self) -> None:
        """Abandon the run without consuming the remaining events."""
        self._events.close()
        if not self._started:
            self.pipeline._release(self)

    # ----- internal --------------------------------------------------------

    def _log(self, level: str, message: str, glyph: str) -> LogEvent:
        entry = LogEntry(level=level, message=message, glyph=glyph)
        self.logs.append(entry)
        log_level = logging.WARNING if level in ("WARNING", "ERROR") else logging.INFO
        logger.log(log_level, "[%s] %s", self.state.value, message)
        return LogEvent(entry)

    def _advance(self, state: PipelineState) -> bool:
        """Move to ``state`` unless cancellation was requested."""
        if self._cancel_requested:
            logger.info("Run for %s cancelled before %s", self.url, state.value)
            self.cancelled_before = state
            self.state = PipelineState.CANCELLED
            return False
        self.state = state
        return True

    def _pause(self) -> None:
        if self.pipeline.config.pace_seconds > 0:
            self.pipeline.sleep(self.pipeline.config.pace_seconds)

    def _run(self) -> Iterator[PipelineEvent]:
        try:
            # Fetching
            if not self._advance(PipelineState.FETCHING):
                yield CancelledEvent()
                return
            yield self._log("INFO", "Task started, preparing to parse the document", "✨")
            yield self._log("INFO", f"Reading URL: {self.url}", "🧐")
            self._pause()

            self.fetch_result = self.pipeline.fetcher.fetch(self.url)
            text = self.fetch_result.text
            if self.fetch_result.substituted:
                yield self._log(
                    "WARNING",
                    f"Could not fetch document ({self.fetch_result.error}); "
                    "using the built-in sample document",
                    "⚠️",
                )
            yield self._log("SUCCESS", f"Document parsed: {len(text)} characters", "✅")

            # Extracting
            if not self._advance(PipelineState.EXTRACTING):
                yield CancelledEvent()
                return
            yield self._log("AGENT", "Analyzing the document for protocol structure...", "🧠")
            self._pause()

            self.protocol = extract_protocol(text)
            yield self._log(
                "SUCCESS",
                f"Analysis complete: {len(self.protocol.states)} states, "
                f"{self.protocol.packet_count} packet definitions",
                "🎉",
            )

            # Generating
            if not self._advance(PipelineState.GENERATING):
                yield CancelledEvent()
                return
            yield self._log("AGENT", "Generating code...", "🪄")
            self._pause()

            files = render(self.protocol)
            yield self._log("AGENT", f"Rendered {len(files)} files, checking output...", "👀")
            self._pause()

            # Packaging
            if not self._advance(PipelineState.PACKAGING):
                yield CancelledEvent()
                return
            yield self._log("INFO", "Packaging files...", "📦")

            archive = package(files)
            bundle = GeneratedBundle(files=files, archive=archive)
            yield self._log("SUCCESS", f"Code generated: {len(files)} files", "👍")

            if not self._advance(PipelineState.COMPLETE):
                yield CancelledEvent()
                return
            self.bundle = bundle
            self.pipeline.bundle = bundle
            yield CompleteEvent(bundle=bundle)

        except Exception as exc:
            logger.exception("Run for %s failed in %s", self.url, self.state.value)
            self.state = PipelineState.ERROR
            self.error = str(exc) or type(exc).__name__
            yield ErrorEvent(message=self.error)

        finally:
            self.pipeline._release(self)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class GenerationPipeline:
    """Entry point for front ends.

    Args:
        config: Settings; defaults to ``load_config()``.
        fetcher: Document fetcher; defaults to one built from ``config``.
        sleep: Pacing function, replaceable in tests.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        fetcher: Optional[DocumentFetcher] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or load_config()
        self.fetcher = fetcher or DocumentFetcher(
            relay_url=self.config.relay_url,
            timeout=self.config.fetch_timeout,
            sample_fallback=self.config.sample_fallback,
        )
        self.sleep = sleep
        self.validator = URLValidator()
        self.active: Optional[PipelineRun] = None
        self.bundle: Optional[GeneratedBundle] = None

    def start(self, url: str) -> Optional[PipelineRun]:
        """Begin a run for ``url``.

        Raises:
            InvalidURLError: ``url`` is empty or malformed. Nothing is logged
                and no request is made.

        Returns:
            The new run, or None when a run is already in flight.
        """
        sanitized = self.validator.require_valid_url(url)

        if self.active is not None:
            logger.info("Run already in progress for %s, ignoring %s", self.active.url, sanitized)
            return None

        self.bundle = None
        self.active = PipelineRun(self, sanitized)
        return self.active

    def clear(self) -> None:
        """Drop the retained bundle from the last completed run."""
        self.bundle = None

    def _release(self, run: PipelineRun) -> None:
        if self.active is run:
            self.active = None
