import csv
from pathlib import Path
from typing import Dict, Iterator, Optional

class DecodeError(Exception):
    """The source could not be read as delimited text."""

def column_value(value: Optional[str]) -> Optional[str]:
    # csv gives missing cells as "" (or None for short rows); business logic wants None
    return None if value is None or value == "" else value

def iter_rows(path: str) -> Iterator[Dict[str, Optional[str]]]:
    """
    Yield one decoded row at a time, in file order.

    Rows are pulled lazily so the caller controls the pace: nothing past the
    current row is read until the caller asks for the next one.
    """
    p = Path(path)
    if not p.is_file():
        raise DecodeError(f"Source not found: {path}")
    delimiter = "\t" if p.suffix.lower() == ".tsv" else ","

    try:
        with open(p, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f, delimiter=delimiter, strict=True)
            for row in reader:
                if None in row:
                    raise DecodeError(f"{p.name}:{reader.line_num}: more fields than header columns")
                yield {k: column_value(v) for k, v in row.items()}
    except (csv.Error, UnicodeDecodeError) as e:
        raise DecodeError(f"Could not decode {p.name}: {e}") from e
