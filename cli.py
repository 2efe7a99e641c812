import argparse
import logging
import sys
from pathlib import Path

from api.utils.json_utils import json_dump, write_json_file
from content import (
    content_to_dicts,
    migrate_content,
    parse_content,
    segments_to_latex_string,
    segments_to_plain_text,
)
from core.logging_setup import setup_console_logging
from legacy_math import legacy_math_html_to_latex

log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Normalize and convert exam content")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    normalize = sub.add_parser("normalize", help="Normalize stored content to canonical JSON")
    normalize.add_argument("file", type=Path, help="File holding a stored content value")
    normalize.add_argument(
        "--legacy",
        action="store_true",
        help="Convert legacy strings (old editor HTML, inline $...$) into segments",
    )
    normalize.add_argument("--output", type=Path, default=None, help="Write JSON here")

    text = sub.add_parser("text", help="Print the plain-text projection of stored content")
    text.add_argument("file", type=Path)
    text.add_argument("--latex", action="store_true", help="Keep math as $...$")

    legacy = sub.add_parser("legacy-math", help="Convert legacy math HTML to LaTeX")
    legacy.add_argument("file", type=Path, help="HTML file from the old editor")

    return parser.parse_args(argv)


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_console_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not args.file.exists():
        log.error("File not found: %s", args.file)
        return 1

    raw = _read(args.file)

    if args.command == "normalize":
        segments = migrate_content(raw) if args.legacy else parse_content(raw)
        payload = content_to_dicts(segments)
        if args.output:
            write_json_file(args.output, payload)
            print(f"Saved {len(payload)} segments to {args.output}")
        else:
            print(json_dump(payload))
        return 0

    if args.command == "text":
        segments = parse_content(raw)
        if args.latex:
            print(segments_to_latex_string(segments))
        else:
            print(segments_to_plain_text(segments))
        return 0

    if args.command == "legacy-math":
        print(legacy_math_html_to_latex(raw))
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
