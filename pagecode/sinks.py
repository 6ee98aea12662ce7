"""
Results sink: a flat, line-oriented text dump of decoded entries.

One UTF-8 line per entry, newline-terminated, in the order given.
Line breaks inside an entry are written as the escapes ``\\r`` / ``\\n``.
Both .txt and .csv destinations receive the same content; the
extension only has to be one of the two.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pagecode.exceptions import SinkWriteError, UnsupportedExportFormatError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

SUPPORTED_EXPORT_FORMATS = (".txt", ".csv")

_LINE_BREAK_ESCAPES = str.maketrans({"\r": "\\r", "\n": "\\n"})


def escape_line_breaks(text: str) -> str:
    r"""
    Replace CR and LF inside an entry with the two-character sequences
    ``\r`` and ``\n`` so every entry stays on a single line.

    Multi-line payloads (vCards, postal addresses) are common in QR codes.

    Example:
        >>> escape_line_breaks("BEGIN:VCARD\nEND:VCARD")
        'BEGIN:VCARD\\nEND:VCARD'
    """
    return text.translate(_LINE_BREAK_ESCAPES)


def validate_export_path(path: str | Path) -> Path:
    """
    Check that ``path`` has a supported extension (case-insensitive).

    Raises:
        UnsupportedExportFormatError: For anything other than .txt or .csv.
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_EXPORT_FORMATS:
        raise UnsupportedExportFormatError(
            f"Format '{path.suffix or path.name}' is not supported. "
            f"Supported: {', '.join(SUPPORTED_EXPORT_FORMATS)}"
        )
    return path


class ResultsSink:
    """Writes decoded entries to a .txt or .csv file.

    Usage:
        sink = ResultsSink("results.csv")
        sink.write(["first", "second"])
    """

    def __init__(self, path: str | Path) -> None:
        self.path = validate_export_path(path)

    def write(self, lines: Iterable[str]) -> int:
        """
        Write each entry as one line, replacing any existing file.

        Returns:
            Number of lines written.

        Raises:
            SinkWriteError: If the file cannot be written. Lines already
                written stay on disk.
        """
        count = 0
        try:
            with open(self.path, "w", encoding="utf-8", newline="\n") as f:
                for line in lines:
                    f.write(escape_line_breaks(line))
                    f.write("\n")
                    count += 1
        except OSError as e:
            raise SinkWriteError(f"Failed to write {self.path}: {e}") from e

        logger.info("Wrote %d entries to %s", count, self.path)
        return count
