"""
Command Line Interface for pagecode
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from tqdm import tqdm

from .config import DEFAULT_DPI, RETRY_DPI, DecodeConfig
from .exceptions import PageCodeError
from .pipeline import DocumentPipeline

POLL_INTERVAL = 0.1  # seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagecode",
        description="Decode one QR code per page of a PDF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Decode all pages and save the results
  pagecode scans.pdf -o results.csv

  # Retry unreadable pages at 300 DPI and keep their images
  pagecode scans.pdf -o results.txt --retry-dpi 300 --debug-dir debug/

  # Add entries for pages that could not be read
  pagecode scans.pdf -o results.txt --add "INV-0007" --add "INV-0012"
        """,
    )

    # Input/Output
    parser.add_argument("input", type=str, help="Input PDF file path")
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Results file (.txt or .csv); nothing is written if omitted",
    )

    # Decode options
    parser.add_argument(
        "--default-dpi",
        type=int,
        default=DEFAULT_DPI,
        help=f"Resolution of the first decode attempt (default: {DEFAULT_DPI})",
    )
    parser.add_argument(
        "--retry-dpi",
        type=int,
        default=RETRY_DPI,
        help=f"Resolution of the filtered retry (default: {RETRY_DPI})",
    )
    parser.add_argument(
        "--debug-dir",
        type=str,
        default=None,
        help="Save images of unreadable pages to this directory",
    )

    # Manual entries
    parser.add_argument(
        "--add",
        action="append",
        default=[],
        metavar="TEXT",
        help="Append a manual entry to the results (repeatable)",
    )

    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print decoded entries")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _follow_progress(pipeline: DocumentPipeline, quiet: bool) -> None:
    """Poll the running pipeline into a progress bar until it finishes."""
    with tqdm(total=pipeline.page_count, unit="page", disable=quiet) as bar:
        while pipeline.is_running:
            bar.update(pipeline.current_page - bar.n)
            time.sleep(POLL_INTERVAL)
        bar.update(pipeline.current_page - bar.n)


def main(argv=None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file '{args.input}' not found", file=sys.stderr)
        return 1

    try:
        config = DecodeConfig(
            default_dpi=args.default_dpi,
            retry_dpi=args.retry_dpi,
            debug_dir=Path(args.debug_dir) if args.debug_dir else None,
        )
        pipeline = DocumentPipeline(config)
        pipeline.open(input_path)
    except PageCodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    exit_code = 0
    try:
        pipeline.start()
        try:
            _follow_progress(pipeline, args.quiet)
            pipeline.wait()
        except KeyboardInterrupt:
            print("\nInterrupted, stopping after the current page...", file=sys.stderr)
            pipeline.cancel()
            exit_code = 130
            pipeline.wait()

        for text in args.add:
            pipeline.add_manual_result(text)

        if not args.quiet:
            for text in pipeline.decoded_texts:
                print(text)
        print(pipeline.summary())

        if args.output:
            written = pipeline.export_results(args.output)
            print(f"Saved to: {written}")

        return exit_code

    except PageCodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        # A second interrupt can leave the daemon worker running
        if not pipeline.is_running:
            pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
