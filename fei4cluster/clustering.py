"""
Spatiotemporal clustering of decoded hits.

Two hits are neighbours if both their squared pixel distance and their
squared lvl1 distance are within the thresholds. Clusters are the connected
components of the neighbour graph, so two hits can share a cluster through
an intermediate hit without being neighbours themselves.
"""

from collections import deque
import numpy as np
from typing import List, Sequence, TYPE_CHECKING

from .config import DEFAULT_SPATIAL_THRESHOLD, DEFAULT_TEMPORAL_THRESHOLD
from .data_types import Cluster, Hit

if TYPE_CHECKING:
    from numpy.typing import NDArray


def are_adjacent(hit1: Hit, hit2: Hit,
                 spatial_threshold: int = DEFAULT_SPATIAL_THRESHOLD,
                 temporal_threshold: int = DEFAULT_TEMPORAL_THRESHOLD) -> bool:
    """
    Check whether two hits are direct neighbours.

    Args:
        hit1, hit2: Hits to compare
        spatial_threshold: Maximum squared pixel distance
        temporal_threshold: Maximum squared lvl1 distance

    Returns:
        True if both distances are within their thresholds
    """
    dx = hit1.x - hit2.x
    dy = hit1.y - hit2.y
    dlvl1 = hit1.lvl1 - hit2.lvl1
    return dx * dx + dy * dy <= spatial_threshold and dlvl1 * dlvl1 <= temporal_threshold


def _grow_clusters(hits: Sequence[Hit], spatial_threshold: int,
                   temporal_threshold: int) -> List[List[int]]:
    """Connected components as lists of hit indices, in the order hits were added"""
    n_hits = len(hits)
    xs = np.fromiter((hit.x for hit in hits), dtype=np.int64, count=n_hits)
    ys = np.fromiter((hit.y for hit in hits), dtype=np.int64, count=n_hits)
    lvl1s = np.fromiter((hit.lvl1 for hit in hits), dtype=np.int64, count=n_hits)
    clustered = np.zeros(n_hits, dtype=bool)

    components = []
    for seed in range(n_hits):
        if clustered[seed]:
            continue

        clustered[seed] = True
        members = [seed]
        frontier = deque([seed])

        while frontier:
            current = frontier.popleft()
            candidates = np.flatnonzero(~clustered)
            if candidates.size == 0:
                break

            dx = xs[candidates] - xs[current]
            dy = ys[candidates] - ys[current]
            dlvl1 = lvl1s[candidates] - lvl1s[current]
            close = (dx * dx + dy * dy <= spatial_threshold) & (dlvl1 * dlvl1 <= temporal_threshold)

            matches = candidates[close]
            clustered[matches] = True
            members.extend(matches.tolist())
            frontier.extend(matches.tolist())

        components.append(members)

    return components


def cluster_hits(hits: Sequence[Hit],
                 spatial_threshold: int = DEFAULT_SPATIAL_THRESHOLD,
                 temporal_threshold: int = DEFAULT_TEMPORAL_THRESHOLD) -> List[Cluster]:
    """
    Group the hits of one readout window into clusters.

    Each cluster is seeded from the first hit not yet clustered and grown
    breadth first until no unclustered hit neighbours any of its members.
    The result is a partition of the input: every hit ends up in exactly
    one cluster.

    Args:
        hits: Hits of one readout window
        spatial_threshold: Maximum squared pixel distance of neighbours
        temporal_threshold: Maximum squared lvl1 distance of neighbours

    Returns:
        List of clusters, empty for an empty input
    """
    if len(hits) == 0:
        return []
    if len(hits) == 1:
        return [Cluster(hits)]

    components = _grow_clusters(hits, spatial_threshold, temporal_threshold)
    return [Cluster([hits[i] for i in members]) for members in components]


def cluster_labels(hits: Sequence[Hit],
                   spatial_threshold: int = DEFAULT_SPATIAL_THRESHOLD,
                   temporal_threshold: int = DEFAULT_TEMPORAL_THRESHOLD) -> 'NDArray':
    """
    Cluster index of every hit, numbered in the order clusters are found.

    Returns:
        Integer array with one label per input hit
    """
    labels = np.zeros(len(hits), dtype=np.int64)
    for label, members in enumerate(_grow_clusters(hits, spatial_threshold, temporal_threshold)):
        labels[members] = label
    return labels
