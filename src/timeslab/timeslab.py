import logging
from typing import List, Optional, Sequence

from timeslab.adaptivity import Adaptivity
from timeslab.partition import Partition
from timeslab.solution import Solution

logger = logging.getLogger(__name__)

# Relative distance to the end time within which a time slab is extended to the end
EPS = 1e-10


class TimeSlab:
    """Interval [t0, t1] over which the elements of all components are solved together.

    Parameters
    ----------
    t0 : float
        Start time.
    t1 : float
        Latest possible end time. The actual end time is set by :meth:`setsize`.
    T : float
        End time of the whole integration.
    """

    def __init__(self, t0: float, t1: float, T: float):
        if t0 >= t1:
            raise ValueError(f"Empty time slab [{t0}, {t1}]")
        self.t0 = t0
        self.t1 = t1
        self.T = T
        self.reached_end = False
        self._elements: List[int] = []

    def starttime(self) -> float:
        return self.t0

    def endtime(self) -> float:
        return self.t1

    def length(self) -> float:
        return self.t1 - self.t0

    def finished(self) -> bool:
        return self.t1 == self.T

    def elements(self) -> List[int]:
        """Element indices in the order they are iterated."""
        return self._elements

    def size(self) -> int:
        return len(self.elements())

    def setsize(self, K: float):
        """Set the length of the time slab to K, without going beyond the end time."""
        if self.t0 + K >= self.t1 - EPS * max(1.0, abs(self.t1)):
            self.reached_end = True
        elif self.t0 + K <= self.t0:
            raise RuntimeError(f"Step size too small: {K:g} vanishes at t = {self.t0:g}")
        else:
            self.t1 = self.t0 + K

    def __repr__(self):
        return f"{type(self).__name__}([{self.t0:g}, {self.t1:g}], {self.size()} elements)"


class UniformTimeSlab(TimeSlab):
    """Time slab with one element per component, all of the same length.

    The length is the smallest step size proposed by the controller.
    """

    def __init__(self, t0: float, t1: float, u: Solution, adaptivity: Adaptivity):
        super().__init__(t0, t1, t1)
        self.setsize(adaptivity.minstep())
        self._elements = [u.create(i, self.t0, self.t1) for i in range(u.size())]
        logger.debug("Created %r", self)


class RecursiveTimeSlab(TimeSlab):
    """Multi-rate time slab.

    The components handed to the slab are split by the partition. The group with
    the largest step sizes gets one element each, over a slab as long as the
    smallest step in the group. The remaining components are covered by a
    sequence of child slabs over the same interval, each of which splits its
    components again. Every level takes at least one component, so the depth is
    bounded by the number of components.

    Parameters
    ----------
    t0 : float
        Start time.
    t1 : float
        Latest possible end time (T for the top level, the parent's end time for children).
    T : float
        End time of the whole integration.
    u : Solution
        Solution the elements are created in.
    adaptivity : Adaptivity
        Supplies the step size of every component.
    partition : Partition
        Splits components by step size.
    components : sequence of int, optional
        Components covered by this slab. Defaults to all.
    depth : int
        Recursion depth, 0 for the top level.
    """

    def __init__(self, t0: float, t1: float, T: float, u: Solution, adaptivity: Adaptivity,
                 partition: Partition, components: Optional[Sequence[int]] = None, depth: int = 0):
        super().__init__(t0, t1, T)
        self.depth = depth
        self.timeslabs: List[RecursiveTimeSlab] = []

        if components is None:
            components = partition.components
        self.group, self.rest = partition.split(components, adaptivity.k)

        # Adjust and set the size of this time slab
        self.setsize(adaptivity.minstep(self.group))

        # Time slabs for the components with small time steps
        if self.rest:
            self._create_timeslabs(u, adaptivity, partition)

        # Elements for the components with large time steps
        self._own = [u.create(i, self.t0, self.t1) for i in self.group]

        self._elements = [e for timeslab in self.timeslabs for e in timeslab.elements()]
        self._elements.extend(self._own)

        if depth == 0:
            logger.debug("Created %r with %d levels", self, self.levels())

    def _create_timeslabs(self, u, adaptivity, partition):
        t = self.t0
        while True:
            timeslab = RecursiveTimeSlab(t, self.t1, self.T, u, adaptivity, partition,
                                         self.rest, self.depth + 1)
            self.timeslabs.append(timeslab)
            t = timeslab.endtime()
            if timeslab.reached_end:
                break

    def levels(self) -> int:
        """Number of levels of the tree of time slabs."""
        return 1 + max((timeslab.levels() for timeslab in self.timeslabs), default=0)

    def count(self, i: int) -> int:
        """Number of elements for component i within the slab."""
        if i in self.group:
            return 1
        return sum(timeslab.count(i) for timeslab in self.timeslabs)
