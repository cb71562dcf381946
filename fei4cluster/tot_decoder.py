"""
Decoding of data records into hits.

The meaning of the ToT codes depends on the HitDiscConfig of the front-end:

HitDiscConfig 0:
    15: no hit, 14: delayed hit, 0-13: ToT - 1
    A delayed hit belongs to the lvl1 of the record that announced it.
HitDiscConfig 1:
    15: no hit, 14: ToT 1, 0-13: ToT - 2
HitDiscConfig 2:
    15: no hit, 14: ToT 1 (flagged as small), 0-13: ToT - 3

Each record yields a hit for (x, y) and, unless tot2 is 15, one for (x, y+1).
"""

import warnings
from typing import Dict, Iterable, List, Optional, Tuple

from .calibration import ChargeEstimator
from .config import DiscriminatorConfig
from .data_types import Hit, RawRecord, TOT_CODE_NO_HIT, TOT_CODE_SPECIAL
from .record_parser import (
    DataCorruptionError, RecordWarning, check_record, has_second_hit
)


Rejected = List[Tuple[RawRecord, DataCorruptionError]]


def cantor_pair(x: int, y: int) -> int:
    """Cantor pairing of two non-negative integers into a unique key"""
    return y + (x + y) * (x + y + 1) // 2


def true_tot_hit_disc1(code: int) -> int:
    """Real ToT of a ToT code with HitDiscConfig 1"""
    if code == TOT_CODE_SPECIAL:
        return 1
    return code + 2


def true_tot_hit_disc2(code: int) -> Tuple[int, bool]:
    """Real ToT of a ToT code with HitDiscConfig 2, and whether it is the small ToT"""
    if code == TOT_CODE_SPECIAL:
        return 1, True
    return code + 3, False


def _accept(record: RawRecord, delayed_hits: bool, rejected: Optional[Rejected]) -> bool:
    try:
        check_record(record, has_second_hit(record, delayed_hits))
    except DataCorruptionError as e:
        warnings.warn(f"Rejecting corrupt data record: {e}", RecordWarning)
        if rejected is not None:
            rejected.append((record, e))
        return False
    return True


def decode_hit_disc0(records: Iterable[RawRecord], estimator: ChargeEstimator,
                     delayed_hits: Optional[Dict[int, int]] = None,
                     rejected: Optional[Rejected] = None) -> List[Hit]:
    """
    Decode records taken with HitDiscConfig 0.

    A record with tot2 = 14 only announces a delayed hit in (x, y+1); its
    lvl1 is kept until the record for that pixel arrives.

    Args:
        records: Records of one readout window, in datastream order
        estimator: Charge estimator for building hits
        delayed_hits: Pending delayed hits keyed by cantor_pair(x, y);
            a fresh one is used when not given
        rejected: Collects (record, error) for rejected records

    Returns:
        List of hits
    """
    if delayed_hits is None:
        delayed_hits = {}

    result = []
    for raw in records:
        if not _accept(raw, True, rejected):
            continue

        if raw.tot2 == TOT_CODE_NO_HIT:
            lvl1 = delayed_hits.pop(cantor_pair(raw.x, raw.y), raw.lvl1)
            result.append(estimator.make_hit(raw.x, raw.y, raw.tot1 + 1, lvl1))
        elif raw.tot2 == TOT_CODE_SPECIAL:
            delayed_hits[cantor_pair(raw.x, raw.y + 1)] = raw.lvl1
        else:
            result.append(estimator.make_hit(raw.x, raw.y, raw.tot1 + 1, raw.lvl1))
            result.append(estimator.make_hit(raw.x, raw.y + 1, raw.tot2 + 1, raw.lvl1))

    return result


def decode_hit_disc1(records: Iterable[RawRecord], estimator: ChargeEstimator,
                     rejected: Optional[Rejected] = None) -> List[Hit]:
    """Decode records taken with HitDiscConfig 1"""
    result = []
    for raw in records:
        if not _accept(raw, False, rejected):
            continue

        result.append(estimator.make_hit(raw.x, raw.y, true_tot_hit_disc1(raw.tot1), raw.lvl1))
        if raw.tot2 != TOT_CODE_NO_HIT:
            result.append(estimator.make_hit(raw.x, raw.y + 1,
                                             true_tot_hit_disc1(raw.tot2), raw.lvl1))

    return result


def decode_hit_disc2(records: Iterable[RawRecord], estimator: ChargeEstimator,
                     rejected: Optional[Rejected] = None) -> List[Hit]:
    """Decode records taken with HitDiscConfig 2, flagging ToT code 14 hits as small"""
    result = []
    for raw in records:
        if not _accept(raw, False, rejected):
            continue

        tot1, small1 = true_tot_hit_disc2(raw.tot1)
        result.append(estimator.make_hit(raw.x, raw.y, tot1, raw.lvl1, small1))
        if raw.tot2 != TOT_CODE_NO_HIT:
            tot2, small2 = true_tot_hit_disc2(raw.tot2)
            result.append(estimator.make_hit(raw.x, raw.y + 1, tot2, raw.lvl1, small2))

    return result


def decode_hits(records: Iterable[RawRecord], hit_disc_config: int,
                estimator: ChargeEstimator,
                rejected: Optional[Rejected] = None) -> List[Hit]:
    """
    Decode the records of one readout window.

    Args:
        records: Records of one readout window
        hit_disc_config: HitDiscConfig the data was taken with (0, 1 or 2)
        estimator: Charge estimator for building hits
        rejected: Collects (record, error) for rejected records

    Returns:
        List of hits
    """
    try:
        config = DiscriminatorConfig(hit_disc_config)
    except ValueError:
        raise ValueError(f"Unknown HitDiscConfig: {hit_disc_config}") from None

    if config == DiscriminatorConfig.HIT_DISC_0:
        # Delayed hits never carry over into the next window
        return decode_hit_disc0(records, estimator, {}, rejected)
    elif config == DiscriminatorConfig.HIT_DISC_1:
        return decode_hit_disc1(records, estimator, rejected)
    else:
        return decode_hit_disc2(records, estimator, rejected)
