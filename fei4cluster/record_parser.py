"""
Line classification and data record parsing for FE-I4B readout logs.

A decoded log line starts with a marker naming the word type:
- DH: data header, one per readout of the lvl1 buffer
- DR: data record, "DR x y tot1 tot2"
- TD: trigger data word
- CHANNEL: channel switch, inserted by the readout system
"""

from enum import IntEnum

from .data_types import (
    RawRecord, FE_COLS, FE_ROWS, TOT_CODE_MAX, TOT_CODE_NO_HIT, TOT_CODE_SPECIAL
)


DATA_HEADER = "DH"
DATA_RECORD = "DR"
TRIGGER_DATA = "TD"
CHANNEL = "CHANNEL"


class RecordParseError(ValueError):
    """Raised when a data record line is missing its numeric fields"""
    pass


class DataCorruptionError(ValueError):
    """Raised for ToT codes or pixel coordinates outside the valid range"""
    pass


class RecordWarning(UserWarning):
    """Issued when a data record is dropped or rejected"""
    pass


class LineKind(IntEnum):
    """Word types found in the readout log"""
    UNKNOWN = 0
    DATA_HEADER = 1
    DATA_RECORD = 2
    TRIGGER_DATA = 3
    CHANNEL = 4


def classify_line(line: str) -> LineKind:
    """
    Classify a decoded log line by its prefix.

    Args:
        line: Decoded log line

    Returns:
        LineKind of the line, UNKNOWN if no marker matches
    """
    if line.startswith(CHANNEL):
        return LineKind.CHANNEL
    if line.startswith(DATA_HEADER):
        return LineKind.DATA_HEADER
    if line.startswith(DATA_RECORD):
        return LineKind.DATA_RECORD
    if line.startswith(TRIGGER_DATA):
        return LineKind.TRIGGER_DATA
    return LineKind.UNKNOWN


def parse_data_record(line: str, lvl1: int) -> RawRecord:
    """
    Parse a data record line of the form "<marker> x y tot1 tot2".

    Args:
        line: Decoded log line
        lvl1: Data header index to tag the record with

    Returns:
        RawRecord with the parsed fields

    Raises:
        RecordParseError: if fewer than four integer fields follow the marker
    """
    tokens = line.split()
    if len(tokens) < 5:
        raise RecordParseError(f"Data record needs 4 fields after the marker: {line!r}")

    try:
        x, y, tot1, tot2 = (int(token) for token in tokens[1:5])
    except ValueError as e:
        raise RecordParseError(f"Non-integer field in data record {line!r}: {e}") from e

    return RawRecord(x, y, tot1, tot2, lvl1)


def check_record(record: RawRecord, second_hit: bool) -> None:
    """
    Reject records with values a healthy front-end cannot produce.

    Args:
        record: Record to check
        second_hit: Whether the record yields a hit at (x, y+1)

    Raises:
        DataCorruptionError: for out-of-range ToT codes or coordinates
    """
    for name, code in (("tot1", record.tot1), ("tot2", record.tot2)):
        if not 0 <= code <= TOT_CODE_MAX:
            raise DataCorruptionError(f"{name} code {code} outside 0..{TOT_CODE_MAX} in {record}")

    if not 1 <= record.x <= FE_COLS:
        raise DataCorruptionError(f"Column {record.x} outside 1..{FE_COLS} in {record}")
    if not 1 <= record.y <= FE_ROWS:
        raise DataCorruptionError(f"Row {record.y} outside 1..{FE_ROWS} in {record}")

    if second_hit and record.y + 1 > FE_ROWS:
        raise DataCorruptionError(f"Second hit row {record.y + 1} outside 1..{FE_ROWS} in {record}")


def has_second_hit(record: RawRecord, delayed_hits: bool) -> bool:
    """
    Whether a record carries a hit for the neighbouring pixel (x, y+1).

    Args:
        record: Record to inspect
        delayed_hits: True for HitDiscConfig 0, where code 14 announces a delayed hit
    """
    if record.tot2 == TOT_CODE_NO_HIT:
        return False
    if delayed_hits and record.tot2 == TOT_CODE_SPECIAL:
        return False
    return True
