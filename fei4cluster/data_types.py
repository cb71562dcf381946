"""
Data types for FE-I4B readout decoding.

Raw data records as they appear in the datastream, decoded hits with
calibrated charge, and the clusters built from them.
"""

from typing import Iterator, List, NamedTuple, Sequence, Tuple

# Front-end geometry
FE_COLS = 80
FE_ROWS = 336

# ToT code values (4 bit)
TOT_CODE_MAX = 15
TOT_CODE_NO_HIT = 15      # No hit in the second slot
TOT_CODE_SPECIAL = 14     # Delayed hit (HitDiscConfig 0) or smallest ToT (1, 2)


class RawRecord(NamedTuple):
    """
    One data record (DR) of the datastream.

    A record is not necessarily a single hit: depending on the discriminator
    configuration it can announce a delayed hit or carry two hits for
    vertically neighbouring pixels. The ToT fields hold ToT codes, not
    real ToT.
    """
    x: int          # column, 1..80
    y: int          # row, 1..336
    tot1: int       # ToT code of pixel (x, y)
    tot2: int       # ToT code of pixel (x, y+1)
    lvl1: int       # data header index the record was seen at


class Hit(NamedTuple):
    """
    An actually hit pixel.

    `tot` is the real ToT (bias corrected), `charge` is computed once from
    the calibration when the hit is built.
    """
    x: int
    y: int
    tot: int
    lvl1: int
    charge: float
    small_tot: bool = False


class Cluster:
    """
    Spatiotemporally connected hits, in the order they were added.
    """

    def __init__(self, hits: Sequence[Hit]):
        if len(hits) == 0:
            raise ValueError("A cluster needs at least one hit")
        self._hits: Tuple[Hit, ...] = tuple(hits)

    @property
    def hits(self) -> Tuple[Hit, ...]:
        return self._hits

    @property
    def size(self) -> int:
        """Number of hits in the cluster"""
        return len(self._hits)

    @property
    def seed(self) -> Hit:
        """First hit, the one the cluster was grown from"""
        return self._hits[0]

    @property
    def total_tot(self) -> int:
        """Sum of the real ToT of all hits"""
        return sum(hit.tot for hit in self._hits)

    @property
    def total_charge(self) -> float:
        """Sum of the charge of all hits"""
        return sum(hit.charge for hit in self._hits)

    @property
    def lvl1_range(self) -> Tuple[int, int]:
        """(min, max) lvl1 of the member hits"""
        lvl1s = [hit.lvl1 for hit in self._hits]
        return min(lvl1s), max(lvl1s)

    def __len__(self) -> int:
        return len(self._hits)

    def __iter__(self) -> Iterator[Hit]:
        return iter(self._hits)

    def __getitem__(self, index):
        return self._hits[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self._hits == other._hits

    def __hash__(self) -> int:
        return hash(self._hits)

    def __repr__(self) -> str:
        return (f"Cluster(size={self.size}, total_tot={self.total_tot}, "
                f"total_charge={self.total_charge:.1f})")


class TriggerWindow(NamedTuple):
    """Result of one readout window, handed to downstream aggregation"""
    clusters: List[Cluster]
    trigger_index: int           # 1-based trigger counter
    data_record_count: int       # DR lines seen so far
    trigger_marker_count: int    # TD lines seen so far
    hits: List[Hit]
