"""
Reader for FE-I4B readout log files.

Every word in the log takes two lines: the raw word followed by its decoded
text, e.g.

    0x00E9D000
    DH 1 29 0
    0x04A12E
    DR 37 144 2 15

The readout system sometimes inserts a "CHANNEL X" line in front of a pair.
"""

import os
from typing import Iterable, Iterator, Optional, TextIO, Union

from .calibration import CalibrationTable, ChargeEstimator
from .config import DecoderConfig
from .data_types import TriggerWindow
from .record_parser import CHANNEL
from .segmenter import EventSegmenter


def iter_decoded_lines(lines: Iterable[str]) -> Iterator[str]:
    """
    Yield the decoded line of every raw/decoded pair.

    CHANNEL lines are passed through as they are and the pairing restarts
    with the line after them. A trailing raw line without its decoded
    partner is discarded.

    Args:
        lines: Lines of a readout log, with or without line endings

    Returns:
        Iterator over decoded lines without line endings
    """
    it = iter(lines)
    for raw in it:
        raw = raw.rstrip("\r\n")
        if raw.startswith(CHANNEL):
            yield raw
            continue

        decoded = next(it, None)
        if decoded is None:
            return
        yield decoded.rstrip("\r\n")


class LogLineReader:
    """
    Sequential reader for readout log files.

    Usage:
        with LogLineReader('scan.raw') as reader:
            for line in reader:
                print(line)
    """

    def __init__(self, filename: Union[str, os.PathLike]):
        """
        Args:
            filename: Path to the readout log
        """
        self.filename = filename
        self._fd: Optional[TextIO] = None
        self._file_size = os.path.getsize(filename)
        self._bytes_read = 0

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self):
        """Open the log file for reading"""
        if self._fd is not None:
            return
        # One character per byte, undecodable bytes become U+FFFD
        self._fd = open(self.filename, 'r', encoding='ascii', errors='replace', newline='')
        self._bytes_read = 0

    def close(self):
        """Close the log file"""
        if self._fd is not None:
            self._fd.close()
            self._fd = None

    def __iter__(self) -> Iterator[str]:
        """Iterate over the decoded lines, from the start of the file"""
        if self._fd is None:
            self.open()
        self._fd.seek(0)
        self._bytes_read = 0
        return iter_decoded_lines(self._read_lines())

    def _read_lines(self) -> Iterator[str]:
        for line in self._fd:
            self._bytes_read += len(line)
            yield line

    @property
    def progress(self) -> float:
        """Reading progress as fraction 0.0 to 1.0"""
        if self._file_size == 0:
            return 1.0
        return min(1.0, self._bytes_read / self._file_size)


def process_log_file(filename: Union[str, os.PathLike], config: DecoderConfig,
                     table: CalibrationTable) -> Iterator[TriggerWindow]:
    """
    Decode and cluster a readout log file window by window.

    Args:
        filename: Path to the readout log
        config: Run configuration
        table: Calibration for the charge of the hits

    Returns:
        Iterator over the readout windows of the file

    Raises:
        CalibrationError: right away if no usable calibration is given
    """
    segmenter = EventSegmenter(config, ChargeEstimator(table))
    return _process_with(segmenter, filename)


def _process_with(segmenter: EventSegmenter,
                  filename: Union[str, os.PathLike]) -> Iterator[TriggerWindow]:
    with LogLineReader(filename) as reader:
        yield from segmenter.process(reader)
