"""
Run configuration for decoding and clustering.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union


class DiscriminatorConfig(IntEnum):
    """HitDiscConfig setting of the front-end, selects the ToT code mapping"""
    HIT_DISC_0 = 0      # ToT = code + 1, code 14 announces a delayed hit
    HIT_DISC_1 = 1      # ToT = code + 2, code 14 is ToT 1
    HIT_DISC_2 = 2      # ToT = code + 3, code 14 is ToT 1 (flagged small)


# Squared distances for the clustering predicate
DEFAULT_SPATIAL_THRESHOLD = 2     # direct and diagonal neighbours
DEFAULT_TEMPORAL_THRESHOLD = 9    # |delta lvl1| <= 3

DEFAULT_READOUT_HEADERS = 16


@dataclass
class DecoderConfig:
    """
    Settings shared by the segmenter, decoder and clusterer for one run.
    """
    hit_disc_config: Union[DiscriminatorConfig, int] = DiscriminatorConfig.HIT_DISC_2
    readout_headers_per_window: int = DEFAULT_READOUT_HEADERS
    spatial_threshold: int = DEFAULT_SPATIAL_THRESHOLD
    temporal_threshold: int = DEFAULT_TEMPORAL_THRESHOLD

    def __post_init__(self):
        try:
            self.hit_disc_config = DiscriminatorConfig(self.hit_disc_config)
        except ValueError:
            raise ValueError(f"Unknown HitDiscConfig: {self.hit_disc_config} "
                             f"(expected 0, 1 or 2)") from None

        if self.readout_headers_per_window < 1:
            raise ValueError(f"readout_headers_per_window must be positive, "
                             f"got {self.readout_headers_per_window}")

        if self.spatial_threshold < 1:
            raise ValueError(f"spatial_threshold must be positive, got {self.spatial_threshold}")

        if self.temporal_threshold < 0:
            raise ValueError(f"temporal_threshold must not be negative, "
                             f"got {self.temporal_threshold}")
