"""
Test module for data record parsing and ToT decoding.

Covers line classification, record parsing and validation, and the three
HitDiscConfig decoders including the delayed hit bookkeeping.
"""

import warnings

from fei4cluster.calibration import ChargeEstimator, create_uniform_calibration
from fei4cluster.config import DiscriminatorConfig
from fei4cluster.data_types import RawRecord
from fei4cluster.record_parser import (
    LineKind, classify_line, parse_data_record, check_record,
    RecordParseError, DataCorruptionError, RecordWarning
)
from fei4cluster.tot_decoder import (
    cantor_pair, true_tot_hit_disc1, true_tot_hit_disc2,
    decode_hits, decode_hit_disc0, decode_hit_disc1, decode_hit_disc2
)


def make_estimator() -> ChargeEstimator:
    # charge == ToT
    return ChargeEstimator(create_uniform_calibration())


def test_classify_line():
    """Test classification of log lines by marker"""
    print("Testing line classification...")

    assert classify_line("DH 1 29 0") == LineKind.DATA_HEADER
    assert classify_line("DR 37 144 2 15") == LineKind.DATA_RECORD
    assert classify_line("TD 0 0 12") == LineKind.TRIGGER_DATA
    assert classify_line("CHANNEL 3") == LineKind.CHANNEL
    assert classify_line("AR 1 2") == LineKind.UNKNOWN
    assert classify_line("") == LineKind.UNKNOWN
    assert classify_line("D") == LineKind.UNKNOWN
    assert classify_line("CHAN") == LineKind.UNKNOWN

    print("✓ Line classification")


def test_parse_data_record():
    """Test parsing of data record lines"""
    print("Testing data record parsing...")

    record = parse_data_record("DR 37 144 2 15", lvl1=3)
    assert record == RawRecord(x=37, y=144, tot1=2, tot2=15, lvl1=3)

    # Extra whitespace and trailing tokens are tolerated
    record = parse_data_record("DR\t1   2 3 4  extra", lvl1=0)
    assert (record.x, record.y, record.tot1, record.tot2) == (1, 2, 3, 4)

    for line in ["DR 37 144 2", "DR", "DR 37 144 two 15", "DR 1.5 2 3 4"]:
        try:
            parse_data_record(line, lvl1=0)
            assert False, f"Should have raised RecordParseError for {line!r}"
        except RecordParseError:
            pass  # Expected

    print("✓ Data record parsing")


def test_check_record():
    """Test range checks on records"""
    print("Testing record checks...")

    check_record(RawRecord(1, 1, 0, 15, 0), second_hit=False)
    check_record(RawRecord(80, 335, 13, 13, 0), second_hit=True)
    check_record(RawRecord(80, 336, 13, 15, 0), second_hit=False)

    bad_records = [
        (RawRecord(1, 1, 16, 15, 0), False),
        (RawRecord(1, 1, -1, 15, 0), False),
        (RawRecord(1, 1, 0, 16, 0), False),
        (RawRecord(0, 1, 0, 15, 0), False),
        (RawRecord(81, 1, 0, 15, 0), False),
        (RawRecord(1, 0, 0, 15, 0), False),
        (RawRecord(1, 337, 0, 15, 0), False),
        (RawRecord(1, 336, 0, 3, 0), True),
    ]
    for record, second_hit in bad_records:
        try:
            check_record(record, second_hit)
            assert False, f"Should have raised DataCorruptionError for {record}"
        except DataCorruptionError:
            pass  # Expected

    print("✓ Record checks")


def test_cantor_pair():
    """Test that the pairing is collision free on the pixel grid"""
    print("Testing cantor pairing...")

    assert cantor_pair(0, 0) == 0
    assert cantor_pair(1, 0) == 1
    assert cantor_pair(0, 1) == 2
    assert cantor_pair(3, 6) == 51

    keys = {cantor_pair(x, y) for x in range(1, 81) for y in range(1, 338)}
    assert len(keys) == 80 * 337

    print("✓ Cantor pairing")


def test_true_tot_mappings():
    """Test ToT code to real ToT mappings"""
    print("Testing ToT mappings...")

    assert true_tot_hit_disc1(0) == 2
    assert true_tot_hit_disc1(13) == 15
    assert true_tot_hit_disc1(14) == 1

    assert true_tot_hit_disc2(0) == (3, False)
    assert true_tot_hit_disc2(13) == (16, False)
    assert true_tot_hit_disc2(14) == (1, True)

    print("✓ ToT mappings")


def test_hit_disc0():
    """Test decoding with HitDiscConfig 0"""
    print("Testing HitDiscConfig 0...")

    estimator = make_estimator()

    # Single hit: ToT = code + 1
    hits = decode_hit_disc0([RawRecord(10, 20, 5, 15, 2)], estimator)
    assert len(hits) == 1
    assert (hits[0].x, hits[0].y, hits[0].tot, hits[0].lvl1) == (10, 20, 6, 2)
    assert hits[0].charge == 6.0

    # Double hit
    hits = decode_hit_disc0([RawRecord(10, 20, 0, 13, 2)], estimator)
    assert [(h.x, h.y, h.tot, h.lvl1) for h in hits] == [(10, 20, 1, 2), (10, 21, 14, 2)]

    # A delayed hit announcement alone yields nothing
    assert decode_hit_disc0([RawRecord(10, 20, 5, 14, 2)], estimator) == []

    print("✓ HitDiscConfig 0")


def test_delayed_hit_protocol():
    """Test that a delayed hit takes the lvl1 of its announcing record"""
    print("Testing delayed hit protocol...")

    estimator = make_estimator()
    records = [RawRecord(x=3, y=5, tot1=2, tot2=14, lvl1=0),
               RawRecord(x=3, y=6, tot1=7, tot2=15, lvl1=4)]

    ledger = {}
    hits = decode_hit_disc0(records, estimator, ledger)
    assert len(hits) == 1
    assert (hits[0].x, hits[0].y, hits[0].tot, hits[0].lvl1) == (3, 6, 8, 0)
    assert ledger == {}  # Entry was consumed

    # The announcement is for (x, y+1), not for (x, y)
    records = [RawRecord(3, 5, 2, 14, 0), RawRecord(3, 5, 7, 15, 4)]
    hits = decode_hit_disc0(records, estimator)
    assert hits[0].lvl1 == 4

    # Each entry is used once
    records = [RawRecord(3, 5, 2, 14, 0), RawRecord(3, 6, 7, 15, 4), RawRecord(3, 6, 1, 15, 5)]
    hits = decode_hit_disc0(records, estimator)
    assert [h.lvl1 for h in hits] == [0, 5]

    print("✓ Delayed hit protocol")


def test_delayed_hits_stay_in_window():
    """Test that pending delayed hits do not leak into the next window"""
    print("Testing window-local ledger...")

    estimator = make_estimator()

    first = decode_hits([RawRecord(3, 5, 2, 14, 0)], 0, estimator)
    assert first == []

    second = decode_hits([RawRecord(3, 6, 7, 15, 4)], 0, estimator)
    assert len(second) == 1
    assert second[0].lvl1 == 4

    print("✓ Window-local ledger")


def test_hit_disc1():
    """Test decoding with HitDiscConfig 1"""
    print("Testing HitDiscConfig 1...")

    estimator = make_estimator()

    hits = decode_hit_disc1([RawRecord(8, 9, 5, 15, 1)], estimator)
    assert len(hits) == 1
    assert (hits[0].x, hits[0].y, hits[0].tot) == (8, 9, 7)

    hits = decode_hit_disc1([RawRecord(8, 9, 14, 3, 1)], estimator)
    assert [(h.x, h.y, h.tot, h.lvl1) for h in hits] == [(8, 9, 1, 1), (8, 10, 5, 1)]
    assert not any(h.small_tot for h in hits)

    print("✓ HitDiscConfig 1")


def test_hit_disc2():
    """Test decoding with HitDiscConfig 2"""
    print("Testing HitDiscConfig 2...")

    estimator = make_estimator()

    hits = decode_hit_disc2([RawRecord(8, 9, 5, 15, 1)], estimator)
    assert len(hits) == 1
    assert (hits[0].tot, hits[0].small_tot) == (8, False)

    hits = decode_hit_disc2([RawRecord(8, 9, 14, 15, 1)], estimator)
    assert (hits[0].tot, hits[0].small_tot) == (1, True)

    hits = decode_hit_disc2([RawRecord(8, 9, 4, 14, 1)], estimator)
    assert [(h.x, h.y, h.tot, h.small_tot) for h in hits] == [(8, 9, 7, False), (8, 10, 1, True)]

    print("✓ HitDiscConfig 2")


def test_decode_hits_dispatch():
    """Test selection of the decoder by HitDiscConfig"""
    print("Testing decoder dispatch...")

    estimator = make_estimator()
    records = [RawRecord(8, 9, 5, 15, 1)]

    assert decode_hits(records, 0, estimator)[0].tot == 6
    assert decode_hits(records, DiscriminatorConfig.HIT_DISC_1, estimator)[0].tot == 7
    assert decode_hits(records, 2, estimator)[0].tot == 8

    try:
        decode_hits(records, 3, estimator)
        assert False, "Should have raised ValueError for unknown HitDiscConfig"
    except ValueError:
        pass  # Expected

    print("✓ Decoder dispatch")


def test_corrupt_records_rejected():
    """Test that corrupt records are skipped, warned about and collected"""
    print("Testing corrupt record rejection...")

    estimator = make_estimator()
    records = [RawRecord(1, 1, 3, 15, 0),
               RawRecord(1, 2, 17, 15, 0),     # ToT code out of range
               RawRecord(90, 2, 3, 15, 0),     # column out of range
               RawRecord(1, 336, 3, 4, 0),     # second hit off the sensor
               RawRecord(2, 2, 3, 15, 0)]

    for config in (0, 1, 2):
        rejected = []
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            hits = decode_hits(records, config, estimator, rejected)

        assert [(h.x, h.y) for h in hits] == [(1, 1), (2, 2)]
        assert [record for record, _ in rejected] == records[1:4]
        assert all(isinstance(error, DataCorruptionError) for _, error in rejected)
        assert sum(issubclass(w.category, RecordWarning) for w in caught) == 3

    # A delayed hit announcement in the last row emits nothing, so it is accepted
    rejected = []
    assert decode_hit_disc0([RawRecord(1, 336, 3, 14, 0)], estimator, rejected=rejected) == []
    assert rejected == []

    print("✓ Corrupt record rejection")


def run_all_tests():
    """Run all decoder tests"""
    print("Running Decoder Tests...")
    print()

    try:
        test_classify_line()
        test_parse_data_record()
        test_check_record()
        test_cantor_pair()
        test_true_tot_mappings()
        test_hit_disc0()
        test_delayed_hit_protocol()
        test_delayed_hits_stay_in_window()
        test_hit_disc1()
        test_hit_disc2()
        test_decode_hits_dispatch()
        test_corrupt_records_rejected()

        print()
        print("✅ All decoder tests passed!")
        return True

    except Exception as e:
        print(f"\n❌ Decoder test failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = run_all_tests()
