"""
Parser for comma-separated order tables exported by point-of-sale systems.

The format is a header row followed by data rows, with RFC-4180 style double
quoting. Each line is one row; quoted fields may contain commas and doubled
quotes but not line breaks.
"""

import logging

from models.errors import TableParseError
from models.orders import OrderLineRecord

logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'


def split_line(line: str) -> list[str]:
    """
    Split one line into trimmed cell values.

    A quote opens a quoted section anywhere in a cell; inside it, a doubled
    quote is a literal quote and the delimiter is ordinary text. An
    unterminated quoted section runs to the end of the line.
    """
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)
    while i < length:
        ch = line[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < length and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(ch)
        elif ch == DELIMITER:
            cells.append("".join(current))
            current = []
        elif ch == QUOTE:
            in_quotes = True
        else:
            current.append(ch)
        i += 1
    cells.append("".join(current))
    return [cell.strip() for cell in cells]


def _decode(text: str | bytes) -> str:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise TableParseError(f"table is not valid UTF-8 ({e})") from e
    if not isinstance(text, str):
        raise TableParseError(f"expected table text, got {type(text).__name__}")
    return text.lstrip("\ufeff")


def parse_rows(text: str | bytes) -> list[dict[str, str]]:
    """Parse table text into header-keyed rows, one per non-blank data line."""
    lines = _decode(text).replace("\r\n", "\n").replace("\r", "\n").split("\n")

    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    for line in lines:
        if not line.strip():
            continue
        cells = split_line(line)
        if header is None:
            header = cells
            continue
        # Short rows are padded with "", long rows truncated to the header
        rows.append(
            {name: (cells[idx] if idx < len(cells) else "") for idx, name in enumerate(header)}
        )

    if header is None:
        logger.debug("Table text has no header row")
    else:
        logger.debug(f"Parsed {len(rows)} rows across {len(header)} columns")
    return rows


def parse_table(text: str | bytes) -> list[OrderLineRecord]:
    """Parse table text into order-line records, preserving row order."""
    return [OrderLineRecord.from_row(row) for row in parse_rows(text)]
