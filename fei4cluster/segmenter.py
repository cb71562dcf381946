"""
Readout window segmentation of a decoded FE-I4B log.

The lvl1 of a data record is given by the number of data headers (DH) seen
before it in the current window. A fixed number of data headers is read
out per trigger; once that number is reached the window is decoded and
clustered. Trigger (TD) and CHANNEL words inside a started window mean the
stream is out of step, so the window is closed immediately.
"""

import warnings
from typing import Dict, Iterable, Iterator, List, Optional

from .calibration import ChargeEstimator
from .clustering import cluster_hits
from .config import DecoderConfig
from .data_types import RawRecord, TriggerWindow
from .record_parser import (
    LineKind, RecordParseError, RecordWarning, classify_line, parse_data_record
)
from .tot_decoder import Rejected, decode_hits


class EventSegmenter:
    """
    Splits a stream of decoded log lines into readout windows.

    Usage:
        segmenter = EventSegmenter(DecoderConfig(hit_disc_config=2),
                                   ChargeEstimator(table))
        for window in segmenter.process(lines):
            for cluster in window.clusters:
                print(cluster.size, cluster.total_tot)
    """

    def __init__(self, config: DecoderConfig, estimator: ChargeEstimator):
        """
        Args:
            config: Run configuration
            estimator: Charge estimator built from an initialized calibration
        """
        self.config = config
        self.estimator = estimator

        self.dh_count = 0
        self.trigger_count = 0
        self.data_record_count = 0
        self.trigger_marker_count = 0
        self.dropped_records = 0
        self.rejected_records: Rejected = []
        self._records: List[RawRecord] = []

    @property
    def pending_records(self) -> List[RawRecord]:
        """Records of the window currently being filled"""
        return list(self._records)

    def feed(self, line: str) -> Optional[TriggerWindow]:
        """
        Consume one decoded log line.

        Args:
            line: Decoded log line

        Returns:
            TriggerWindow if the line completed a readout window, else None
        """
        kind = classify_line(line)

        if kind == LineKind.DATA_HEADER:
            self.dh_count += 1

        elif kind == LineKind.DATA_RECORD:
            self.data_record_count += 1
            try:
                self._records.append(parse_data_record(line, self.dh_count - 1))
            except RecordParseError as e:
                self.dropped_records += 1
                warnings.warn(f"Dropping malformed data record: {e}", RecordWarning)

        elif kind == LineKind.TRIGGER_DATA:
            self.trigger_marker_count += 1
            self._close_started_window()

        elif kind == LineKind.CHANNEL:
            self._close_started_window()

        if self.dh_count >= self.config.readout_headers_per_window:
            return self.flush()
        return None

    def _close_started_window(self):
        if self.dh_count != 0:
            self.dh_count = self.config.readout_headers_per_window

    def flush(self) -> TriggerWindow:
        """
        Decode and cluster the buffered records as one readout window.

        Returns:
            TriggerWindow with the clusters of the window
        """
        self.dh_count = 0
        self.trigger_count += 1

        hits = decode_hits(self._records, self.config.hit_disc_config,
                           self.estimator, self.rejected_records)
        clusters = cluster_hits(hits, self.config.spatial_threshold,
                                self.config.temporal_threshold)
        self._records = []

        return TriggerWindow(clusters, self.trigger_count, self.data_record_count,
                             self.trigger_marker_count, hits)

    def process(self, lines: Iterable[str]) -> Iterator[TriggerWindow]:
        """
        Feed all lines and yield every completed readout window.

        An incomplete window at the end of the input is left pending.
        """
        for line in lines:
            window = self.feed(line)
            if window is not None:
                yield window

    def stats(self) -> Dict[str, int]:
        """Counters for diagnostics"""
        return {
            'triggers': self.trigger_count,
            'data_records': self.data_record_count,
            'trigger_markers': self.trigger_marker_count,
            'dropped_records': self.dropped_records,
            'rejected_records': len(self.rejected_records),
            'pending_records': len(self._records),
        }
