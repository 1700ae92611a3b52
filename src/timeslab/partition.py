from typing import Sequence, Tuple

import numpy as np

from timeslab.types import Float64NDArray


class Partition:
    """Grouping of the N components by step size for multi-rate time slabs.

    A partition is built once for a problem and never modified. Each level of a
    recursive time slab asks it to split the components that level is responsible
    for into a group integrated with one element on the slab (the components with
    the largest step sizes) and the rest, which are integrated on finer sub-slabs.

    Parameters
    ----------
    N : int
        Number of components.
    threshold : float
        Components with k_i >= threshold * max(k) go into the group. Must be in (0, 1].
    """

    def __init__(self, N: int, threshold: float = 0.5):
        if N <= 0:
            raise ValueError("Partition must contain at least one component")
        if not 0.0 < threshold <= 1.0:
            raise ValueError("Partitioning threshold must be in (0, 1]")
        self._components = tuple(range(N))
        self.threshold = threshold

    @property
    def components(self) -> Tuple[int, ...]:
        return self._components

    def size(self) -> int:
        return len(self._components)

    def split(self, components: Sequence[int],
              timesteps: Float64NDArray) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """Split components into (group, rest) according to their step sizes.

        Parameters
        ----------
        components : sequence of int
            Non-empty set of component indices.
        timesteps : ndarray (N,)
            Current step size of every component.

        Returns
        -------
        group : tuple of int
            Components with step size >= threshold * largest step, largest first.
        rest : tuple of int
            Remaining components, largest step first. May be empty.
        """
        if len(components) == 0:
            raise ValueError("Cannot split an empty set of components")
        indices = np.asarray(components, dtype=int)
        k = timesteps[indices]

        # Stable sort keeps index order among equal step sizes
        order = np.argsort(-k, kind='stable')
        indices = indices[order]
        k = k[order]

        K = self.threshold * k[0]
        end = int(np.count_nonzero(k >= K))
        return tuple(int(i) for i in indices[:end]), tuple(int(i) for i in indices[end:])
