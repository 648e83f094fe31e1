#!/usr/bin/env python3
"""
Command-line front end for the generation pipeline.

Reads a documentation URL, prints the progress feed, and writes the generated
bundle as a ZIP file.

Usage:
    polyglot-agent https://wiki.vg/Protocol
    polyglot-agent https://example.com/protocol.md --output out.zip --list
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from polyglot_agent.config import EXAMPLE_URLS, load_config
from polyglot_agent.packager import archive_bytes
from polyglot_agent.pipeline import (
    CancelledEvent,
    CompleteEvent,
    ErrorEvent,
    GenerationPipeline,
    LogEvent,
)
from polyglot_agent.security import URLValidator


def setup_logging(verbose: bool = False) -> None:
    """Send library logs to stderr; the progress feed goes to stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polyglot-agent",
        description="Generate protocol-handling code from SDK documentation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://wiki.vg/Protocol
  %(prog)s http://localhost:8000/protocol.md --output protocol.zip
  %(prog)s --examples
        """,
    )
    parser.add_argument("url", nargs="?", help="Documentation URL")
    parser.add_argument(
        "--output",
        default=None,
        help="Where to write the ZIP bundle (default: POLYGLOT_OUTPUT or polyglot-generated-code.zip)",
    )
    parser.add_argument(
        "--relay",
        default=None,
        help="Override the cross-origin relay endpoint",
    )
    parser.add_argument(
        "--pace",
        type=float,
        default=None,
        help="Seconds to pause between stages (default: 0)",
    )
    parser.add_argument(
        "--no-sample-fallback",
        action="store_true",
        help="Fail the run when the document cannot be fetched instead of using sample content",
    )
    parser.add_argument(
        "--dump-model",
        action="store_true",
        help="Print the extracted protocol model as JSON",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the generated files after the run",
    )
    parser.add_argument(
        "--examples",
        action="store_true",
        help="Show example documentation URLs and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def print_examples() -> None:
    for example in EXAMPLE_URLS.values():
        print(f"{example['name']:<24} {example['url']}")
        print(f"{'':<24} {example['description']}")


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.examples:
        print_examples()
        return 0

    if not args.url:
        parser.error("a documentation URL is required")

    is_valid, error, sanitized_url = URLValidator().validate_url(args.url)
    if not is_valid:
        print(f"[Input] {error}")
        return 1

    try:
        config = load_config(
            relay_url=args.relay,
            sample_fallback=False if args.no_sample_fallback else None,
            pace_seconds=args.pace,
            output_path=args.output,
        )
    except ValueError as e:
        print(f"[Input] {e}")
        return 1

    pipeline = GenerationPipeline(config)
    run = pipeline.start(sanitized_url)

    try:
        for event in run:
            if isinstance(event, LogEvent):
                print(event.entry)
            elif isinstance(event, ErrorEvent):
                print(f"❌ [ERROR] {event.message}")
                return 1
            elif isinstance(event, CancelledEvent):
                print("⏹️ [INFO] Generation cancelled")
                return 130
            elif isinstance(event, CompleteEvent):
                output = Path(config.output_path)
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(archive_bytes(event.bundle.archive))
                print(f"\n🎁 {len(event.bundle.files)} files written to {output}")

                if args.list:
                    for name, content in event.bundle.files.items():
                        print(f"   {name:<28} {len(content):>7} chars")
                if args.dump_model:
                    print(json.dumps(run.protocol.to_dict(), indent=2))
    except KeyboardInterrupt:
        run.cancel()
        print("\n⏹️ [INFO] Generation stopped by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
