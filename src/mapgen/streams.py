"""Independent random streams derived from one master seed.

Each pipeline stage draws from its own generator so that changes in one
stage do not shift the random sequence seen by the others. New streams
must only ever be appended to STREAM_NAMES.
"""

import numpy as np
from numpy.typing import NDArray

STREAM_NAMES = (
    "pick_any",
    "water",
    "beach_tiling",
    "cliff_tiling",
    "forest",
    "forest_tiling",
    "resource",
    "road_tiling",
    "player",
    "expansion",
    "building",
)

_SEED_BOUND = 2**31


class RandomStreams:
    """Master generator plus one named child generator per stage.

    Children are created eagerly, in STREAM_NAMES order, whether or not a
    stage ends up using them.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self.master = np.random.default_rng(seed)
        self._streams: dict[str, np.random.Generator] = {}
        for name in STREAM_NAMES:
            child_seed = int(self.master.integers(_SEED_BOUND))
            self._streams[name] = np.random.default_rng(child_seed)

    def __getitem__(self, name: str) -> np.random.Generator:
        return self._streams[name]

    def __getattr__(self, name: str) -> np.random.Generator:
        streams = self.__dict__.get("_streams", {})
        if name in streams:
            return streams[name]
        raise AttributeError(name)


def pick_weighted(rng: np.random.Generator, weights: NDArray[np.floating] | list[float]) -> int:
    """Pick an index with probability proportional to its weight.

    Raises:
        ValueError: If no weight is positive.
    """
    cumulative = np.cumsum(np.asarray(weights, dtype=np.float64).ravel())
    total = float(cumulative[-1]) if len(cumulative) else 0.0
    if total <= 0.0:
        raise ValueError("Cannot pick from weights that sum to zero")
    choice = rng.random() * total
    index = int(np.searchsorted(cumulative, choice, side="right"))
    return min(index, len(cumulative) - 1)
