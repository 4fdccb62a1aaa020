import argparse
import logging
import sys

from .common.config_loader import (
    available_schemas,
    load_schema,
    load_settings,
    parse_field_list,
    with_overrides,
)
from .engine.rendering import OUTPUT_FORMATS, render_tags
from .engine.types import ConfigError, TokenStreamError
from .ingestion.note_extractor import extract_file

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract wiki links, citation keys and metadata tags from Zettelkasten notes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Tags file lines for a folder of notes
  zettel-tags notes/*.md

  # Cross-reference listing with summaries
  zettel-tags --format xref --fields summaryLine notes/*.md

  # Prefix title tags so they never collide with keywords
  zettel-tags --title-prefix '=' --keyword-prefix '#' notes/*.md
        """,
    )
    parser.add_argument("files", nargs="+", help="Markdown notes to scan")
    parser.add_argument(
        "--schema",
        default="",
        help=f"Metadata schema to use. Available: {', '.join(available_schemas())}",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="tags",
        help="Output format (default: tags)",
    )
    parser.add_argument("--title-prefix", default=None, help="Prepend this string to title tags")
    parser.add_argument("--keyword-prefix", default=None, help="Prepend this string to keyword tags")
    parser.add_argument("--summary-format", default=None, help="Summary line format, e.g. '{identifier}:{title}'")
    parser.add_argument(
        "--fields",
        default=None,
        help="Comma separated tag fields to output (encodedTagName, summaryLine, identifier, title)",
    )
    parser.add_argument(
        "--folgezettel",
        action="store_true",
        help="Include extra tags for next:[[id]] links",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        settings = load_settings()
        overrides = {}
        if args.schema:
            overrides["schema"] = load_schema(args.schema)
        if args.title_prefix is not None:
            overrides["title_prefix"] = args.title_prefix
        if args.keyword_prefix is not None:
            overrides["keyword_prefix"] = args.keyword_prefix
        if args.summary_format is not None:
            overrides["summary_format"] = args.summary_format
        if args.fields is not None:
            overrides["fields"] = parse_field_list(args.fields)
        if args.folgezettel:
            overrides["folgezettel"] = True
        settings = with_overrides(settings, **overrides)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    exit_code = 0
    for path in args.files:
        try:
            index = extract_file(path, settings)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Could not read %s: %s", path, e)
            exit_code = 1
            continue
        except TokenStreamError as e:
            logger.error("Malformed token stream in %s: %s", path, e)
            exit_code = 1
            continue

        for line in render_tags(index, settings, args.format):
            print(line)

    return exit_code


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
