#!/usr/bin/env python3
"""
Example usage of the fei4cluster package.

Decodes a small synthetic readout log and prints the clusters per trigger.
"""

import os
import tempfile
import numpy as np

from fei4cluster import (
    CalibrationTable, ChargeEstimator, DecoderConfig, EventSegmenter,
    process_log_file
)
from fei4cluster.calibration import CALIBRATION_SHAPE


def create_example_log() -> str:
    """Write a readout log with two triggers and return its path"""
    decoded = ["DH 1 0 0", "DR 12 40 4 5", "DR 13 41 6 15", "DH 1 1 0", "DH 1 2 0",
               "DR 60 200 9 15", "DH 1 3 0",
               "TD 0 0 1",
               "DH 1 0 0", "DH 1 1 0", "DR 30 30 14 2", "DH 1 2 0", "DH 1 3 0"]

    fd, path = tempfile.mkstemp(suffix='.raw')
    with os.fdopen(fd, 'w') as f:
        for i, line in enumerate(decoded):
            f.write(f"0x{i:06X}\n{line}\n")
    return path


def create_example_calibration() -> CalibrationTable:
    """Calibration with a little pixel-to-pixel spread"""
    rng = np.random.default_rng(1)
    return CalibrationTable(rng.normal(1200.0, 50.0, CALIBRATION_SHAPE),
                            rng.normal(250.0, 10.0, CALIBRATION_SHAPE),
                            np.full(CALIBRATION_SHAPE, 1.5))


def example_log_file():
    """Example: Cluster a readout log file"""
    print("=== Example: Readout Log Clustering ===")

    path = create_example_log()
    config = DecoderConfig(hit_disc_config=2, readout_headers_per_window=4)

    try:
        for window in process_log_file(path, config, create_example_calibration()):
            print(f"Trigger {window.trigger_index}: {len(window.hits)} hits, "
                  f"{len(window.clusters)} clusters")
            for cluster in window.clusters:
                print(f"  size={cluster.size} ToT={cluster.total_tot} "
                      f"charge={cluster.total_charge:.0f} e")
        print()
    finally:
        os.unlink(path)


def example_line_feed():
    """Example: Feed decoded lines one at a time"""
    print("=== Example: Line by Line ===")

    segmenter = EventSegmenter(DecoderConfig(hit_disc_config=0, readout_headers_per_window=2),
                               ChargeEstimator(create_example_calibration()))

    for line in ["DH 1 0 0", "DR 5 9 3 14", "DH 1 1 0"]:
        window = segmenter.feed(line)
        if window is not None:
            print(f"Trigger {window.trigger_index}: delayed hit pending, "
                  f"{len(window.hits)} hits")

    print(f"Counters: {segmenter.stats()}")
    print()


if __name__ == "__main__":
    example_log_file()
    example_line_feed()
