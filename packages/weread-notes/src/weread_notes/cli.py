"""
WeRead notebook exporter

Export WeRead highlights as markdown, using the cookies of a logged-in
browser session.

Usage:
    weread-notes shelf                      # List books on the shelf
    weread-notes notebooks                  # List books with notes
    weread-notes bookmarks BOOK_ID          # Export your highlights
    weread-notes best BOOK_ID -o best.md    # Export popular highlights
    weread-notes export BOOK_ID --title     # Both, in one document
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from .api import WeReadAPI
from .config import CONFIG_FILE, COOKIE_ENV_VAR, WeReadConfig, parse_cookie_string
from .errors import WeReadError
from .models import Book


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weread-notes",
        description="Export WeRead highlights and notes as markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s --cookie "wr_vid=...; wr_skey=..." init-config
      Store session cookies in the config file

  %(prog)s notebooks
      List books that have your highlights

  %(prog)s bookmarks 812345 -o notes.md
      Export your highlights of a book to notes.md

Configuration:
  Config file: {CONFIG_FILE}
  Cookies can also be given with --cookie or the {COOKIE_ENV_VAR} variable.
        """
    )

    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        help=f"Config file (default: {CONFIG_FILE})"
    )
    parser.add_argument(
        "--cookie",
        metavar="STRING",
        help="Raw Cookie header copied from a logged-in browser"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log HTTP requests and decoding details"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-config", help="Write the config file with the given cookies")

    for name, help_text in (
        ("shelf", "List books on your shelf"),
        ("notebooks", "List books that have your notes"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--json", action="store_true", help="Output in JSON format")

    info = subparsers.add_parser("info", help="Show the detail record of a book")
    info.add_argument("book_id")

    for name, help_text in (
        ("bookmarks", "Export your highlights of a book"),
        ("best", "Export the popular highlights of a book"),
        ("export", "Export your highlights and the popular ones together"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("book_id")
        sub.add_argument("--output", "-o", type=Path, metavar="FILE",
                         help="Write to FILE instead of stdout")
        sub.add_argument("--include-empty", action="store_true", default=None,
                         help="Keep chapters that have no highlights")
        sub.add_argument("--skip-malformed", action="store_true", default=None,
                         help="Skip malformed records instead of failing")
        if name == "export":
            sub.add_argument("--title", action="store_true",
                             help="Start with the book title as a heading")

    return parser


def format_books(books: List[Book]) -> str:
    lines = [f"{b.book_id}\t{b.title}\t{b.author}" for b in books]
    return "\n".join(lines)


def write_output(content: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(content)
        return
    with open(output, 'w', encoding='utf-8') as f:
        f.write(content)
    print(f"Saved to: {output}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = WeReadConfig.load(args.config)
    except (OSError, ValueError) as e:
        print(f"Error reading config: {e}", file=sys.stderr)
        return 1

    if args.cookie:
        config.cookies = parse_cookie_string(args.cookie)

    if args.command == "init-config":
        if not config.cookies:
            print("Error: no cookies given (use --cookie)", file=sys.stderr)
            return 1
        path = args.config or CONFIG_FILE
        config.save(path)
        print(f"Created config file: {path}")
        return 0

    if not config.cookies:
        print(f"Error: no cookies configured (use --cookie, {COOKIE_ENV_VAR} or {CONFIG_FILE})",
              file=sys.stderr)
        return 1

    if getattr(args, "include_empty", None) is not None:
        config.export.include_empty_chapters = args.include_empty
    if getattr(args, "skip_malformed", None) is not None:
        config.export.skip_malformed = args.skip_malformed

    try:
        with WeReadAPI.from_config(config) as api:
            if args.command in ("shelf", "notebooks"):
                books = api.list_shelf() if args.command == "shelf" else api.list_notebooks()
                if args.json:
                    print(json.dumps([asdict(b) for b in books], ensure_ascii=False, indent=2))
                elif books:
                    print(format_books(books))
                else:
                    print("No books found.")
            elif args.command == "info":
                print(json.dumps(api.get_book_info(args.book_id), ensure_ascii=False, indent=2))
            elif args.command == "bookmarks":
                write_output(api.export_bookmarks(args.book_id), args.output)
            elif args.command == "best":
                write_output(api.export_best_bookmarks(args.book_id), args.output)
            elif args.command == "export":
                write_output(api.export_notebook(args.book_id, with_title=args.title), args.output)
    except WeReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
