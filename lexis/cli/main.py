import argparse
import json
import re
import signal
import sys
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import AnalysisCancelled, ResourceUnavailableError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

_WHITESPACE_RE = re.compile(r"\s+")


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="lexis",
        description="Lexis - find rare vocabulary in books",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_analyze_subparser(subparsers)
    _add_resources_subparser(subparsers)

    return parser


def _add_config_argument(parser):
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )


def _add_analyze_subparser(subparsers):
    """Add the analyze subcommand."""
    analyze_parser = subparsers.add_parser(
        "analyze", help="Find hard words in a plain-text book"
    )
    analyze_parser.add_argument(
        "-i", "--input", type=Path, required=True, help="Input text file"
    )
    analyze_parser.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=None,
        help="Rarity threshold: maximum word frequency (default: from config, 5e-5)",
    )
    analyze_parser.add_argument(
        "--chapters", type=int, default=0, help="Chapter count to report (default: 0)"
    )
    analyze_parser.add_argument(
        "--limit", type=int, default=50, help="Rows to show in the table (default: 50)"
    )
    analyze_parser.add_argument(
        "--json", type=Path, default=None, help="Also write the results to this JSON file"
    )
    _add_config_argument(analyze_parser)


def _add_resources_subparser(subparsers):
    """Add the resources subcommand."""
    resources_parser = subparsers.add_parser(
        "resources", help="Show whether the NER model and segmentation dictionary are present"
    )
    _add_config_argument(resources_parser)


def _load_config(path: Optional[Path]):
    import yaml

    from ..utils.config import load_config

    try:
        return load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration {path}: {e}")
        return None


def read_text(path: Path) -> str:
    """Read a text file, detecting the encoding with chardet when not UTF-8."""
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        import chardet

        detected = chardet.detect(raw)
        encoding = detected["encoding"] or "latin-1"
        logger.info(f"Decoding {path} as {encoding} (confidence {detected['confidence']:.2f})")
        text = raw.decode(encoding, errors="replace")
    return _WHITESPACE_RE.sub(" ", text).strip()


def _print_results(console, report, limit: int) -> None:
    from rich.table import Table

    table = Table(title=f"Hard words ({len(report.hard_words)})")
    table.add_column("Word", style="bold", no_wrap=True)
    table.add_column("Frequency", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Variants")
    table.add_column("Example")

    for word in report.hard_words[:limit]:
        example = word.contexts[0] if word.contexts else ""
        if len(example) > 80:
            example = example[:77] + "..."
        table.add_row(
            word.display_word,
            f"{word.frequency_score:.2e}",
            str(word.occurrence_count),
            ", ".join(word.variant_forms),
            example,
        )

    console.print(table)
    console.print(
        f"{report.word_count} words, {report.stats.total_candidates} candidates, "
        f"{len(report.stats.filtered_by_entities)} filtered as names"
    )


def cmd_analyze(args) -> int:
    """Execute the analyze command."""
    from rich.console import Console
    from rich.progress import Progress, SpinnerColumn

    from ..jobs import AnalysisService, BookText
    from ..pipeline import HardWordPipeline

    if not args.input.is_file():
        print(f"Input file not found: {args.input}")
        return EXIT_FAILURE

    config = _load_config(args.config)
    if config is None:
        return EXIT_FAILURE
    book = BookText(text=read_text(args.input), chapter_count=args.chapters)
    service = AnalysisService(pipeline=HardWordPipeline(config=config))
    document_id = str(args.input)

    def _on_interrupt(signum, frame):
        service.cancel(document_id)

    previous_handler = signal.signal(signal.SIGINT, _on_interrupt)
    console = Console()
    try:
        with Progress(
            SpinnerColumn(), *Progress.get_default_columns(), transient=True
        ) as progress:
            task = progress.add_task("Analyzing...", total=100)

            def _sink(event):
                description = event.stage
                if event.detail:
                    description = f"{event.stage}: {event.detail}"
                progress.update(task, completed=event.percent, description=description)

            report = service.analyze_document(
                document_id, book, rarity_threshold=args.threshold, progress_sink=_sink
            )
    except AnalysisCancelled:
        print("Analysis cancelled")
        return EXIT_CANCELLED
    except ResourceUnavailableError as e:
        print(f"Error: {e}. Download the NLP resources first (see 'lexis resources').")
        return EXIT_FAILURE
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_FAILURE
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    _print_results(console, report, args.limit)

    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        args.json.write_text(
            json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        print(f"Results written to {args.json}")

    return EXIT_OK


def cmd_resources(args) -> int:
    """Execute the resources command."""
    from ..utils.resources import resource_status

    config = _load_config(args.config)
    if config is None:
        return EXIT_FAILURE
    status = resource_status(config["resources"]["dir"])

    print(f"Resource directory: {status['resource_dir']}")
    for name in ("entity_model", "segmentation_dictionary"):
        entry = status[name]
        state = "available" if entry["available"] else "missing"
        print(f"  {name.replace('_', ' ')}: {state} ({entry['path']})")

    all_available = all(
        status[name]["available"] for name in ("entity_model", "segmentation_dictionary")
    )
    return EXIT_OK if all_available else EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "analyze": cmd_analyze,
        "resources": cmd_resources,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
