"""
FE-I4B Hit Clustering Package

Decodes the datastream of FE-I4B pixel readout logs into hits and groups
them into clusters. Provides:
- Readout window segmentation and data record parsing
- ToT decoding for HitDiscConfig 0, 1 and 2
- ToT to charge calibration
- Spatiotemporal clustering of hits

License: MIT
"""

__version__ = "0.1.0"

from .data_types import (
    RawRecord, Hit, Cluster, TriggerWindow, FE_COLS, FE_ROWS
)
from .record_parser import (
    LineKind, classify_line, parse_data_record, check_record,
    RecordParseError, DataCorruptionError, RecordWarning
)
from .config import DecoderConfig, DiscriminatorConfig
from .calibration import (
    CalibrationTable, ChargeEstimator, CalibrationError, create_uniform_calibration
)
from .tot_decoder import (
    cantor_pair, decode_hits, decode_hit_disc0, decode_hit_disc1, decode_hit_disc2
)
from .clustering import are_adjacent, cluster_hits, cluster_labels
from .segmenter import EventSegmenter
from .log_reader import LogLineReader, iter_decoded_lines, process_log_file

__all__ = [
    'RawRecord',
    'Hit',
    'Cluster',
    'TriggerWindow',
    'FE_COLS',
    'FE_ROWS',
    'LineKind',
    'classify_line',
    'parse_data_record',
    'check_record',
    'RecordParseError',
    'DataCorruptionError',
    'RecordWarning',
    'DecoderConfig',
    'DiscriminatorConfig',
    'CalibrationTable',
    'ChargeEstimator',
    'CalibrationError',
    'create_uniform_calibration',
    'cantor_pair',
    'decode_hits',
    'decode_hit_disc0',
    'decode_hit_disc1',
    'decode_hit_disc2',
    'are_adjacent',
    'cluster_hits',
    'cluster_labels',
    'EventSegmenter',
    'LogLineReader',
    'iter_decoded_lines',
    'process_log_file',
]
