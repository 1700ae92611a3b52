from bisect import bisect_left
from typing import List

import numpy as np

from timeslab.ode import ODE
from timeslab.types import Float64NDArray


class Solution:
    """Committed solution values plus the elements of the time slab being solved.

    The committed values ``u`` at base time ``t`` are only written by :meth:`shift`.
    A time slab attempt adds elements to a flat arena: one entry per element in
    each of the lists ``_component``, ``_t0``, ``_t1``, ``_u1`` and ``_prev``.
    Every component also keeps the chronological list of its element indices.
    :meth:`reset` drops the arena, which restores exactly the committed state.

    Each element is the continuous piecewise linear approximation of one
    component on [t0, t1]. Its start value is the end value of the previous
    element of the same component, or the committed value for the first element.

    Parameters
    ----------
    ode : ODE
        Problem providing the size and the initial values.
    label : str
        Name of the solution, used to name the sample file.
    """

    def __init__(self, ode: ODE, label: str = "solution"):
        self.N = ode.size()
        self.t = 0.0
        self.u = np.array(ode.initial(), dtype=float)
        if self.u.shape != (self.N,):
            raise ValueError(f"Expected {self.N} initial values, got shape {self.u.shape}")
        self._label = label
        self._clear()

    def _clear(self):
        self._component: List[int] = []
        self._t0: List[float] = []
        self._t1: List[float] = []
        self._u1: List[float] = []
        self._prev: List[int] = []
        self._elements: List[List[int]] = [[] for _ in range(self.N)]
        self._ends: List[List[float]] = [[] for _ in range(self.N)]

    def label(self) -> str:
        return self._label

    def size(self) -> int:
        return self.N

    def create(self, i: int, t0: float, t1: float) -> int:
        """Append an element for component i on [t0, t1] and return its index.

        The element starts out constant, equal to the current end value of the component.
        """
        elements = self._elements[i]
        prev = elements[-1] if elements else -1
        e = len(self._t0)
        self._component.append(i)
        self._t0.append(t0)
        self._t1.append(t1)
        self._u1.append(self._u1[prev] if prev >= 0 else float(self.u[i]))
        self._prev.append(prev)
        elements.append(e)
        self._ends[i].append(t1)
        return e

    def elements(self, i: int) -> List[int]:
        """Indices of the elements of component i, in time order."""
        return self._elements[i]

    def last(self, i: int) -> int:
        return self._elements[i][-1]

    def count(self) -> int:
        return len(self._t0)

    def component(self, e: int) -> int:
        return self._component[e]

    def interval(self, e: int):
        return self._t0[e], self._t1[e]

    def startval(self, e: int) -> float:
        prev = self._prev[e]
        return self._u1[prev] if prev >= 0 else float(self.u[self._component[e]])

    def endval(self, e: int) -> float:
        return self._u1[e]

    def update(self, e: int, value: float) -> float:
        """Set the end value of element e, returning the absolute change."""
        increment = abs(value - self._u1[e])
        self._u1[e] = value
        return increment

    def value(self, i: int, t: float) -> float:
        """Value of component i at time t."""
        ends = self._ends[i]
        if not ends or t <= self.t:
            return float(self.u[i])
        j = min(bisect_left(ends, t), len(ends) - 1)
        e = self._elements[i][j]
        t0, t1 = self._t0[e], self._t1[e]
        u0 = self.startval(e)
        if t >= t1:
            return self._u1[e]
        return u0 + (self._u1[e] - u0) * (t - t0) / (t1 - t0)

    def eval(self, t: float) -> Float64NDArray:
        """Values of all components at time t."""
        if self.count() == 0 or t <= self.t:
            return self.u.copy()
        return np.array([self.value(i, t) for i in range(self.N)])

    def reset(self):
        """Discard all elements of the current attempt."""
        self._clear()

    def shift(self, t: float):
        """Commit the end values of the current elements as the solution at time t."""
        for i in range(self.N):
            if self._elements[i]:
                self.u[i] = self._u1[self._elements[i][-1]]
        self.t = t
        self._clear()


class RHS:
    """Right-hand side evaluated on the current (possibly tentative) solution.

    Parameters
    ----------
    ode : ODE
        Problem providing f.
    u : Solution
        Solution state the right-hand side is evaluated on.
    """

    def __init__(self, ode: ODE, u: Solution):
        self.ode = ode
        self.u = u
        self.evaluations = 0

    def __call__(self, i: int, t: float) -> float:
        """Component i of f(t, u(t))."""
        self.evaluations += 1
        return self.ode.fi(t, self.u.eval(t), i)

    def vector(self, t: float) -> Float64NDArray:
        """All components of f(t, u(t))."""
        self.evaluations += 1
        return np.asarray(self.ode.f(t, self.u.eval(t)), dtype=float)

    def residual(self, e: int) -> float:
        """Residual of element e at its end point.

        For the piecewise linear approximation the derivative on the element is
        (u1 - u0) / k; the residual is its difference from f at the end point.
        """
        i = self.u.component(e)
        t0, t1 = self.u.interval(e)
        dudt = (self.u.endval(e) - self.u.startval(e)) / (t1 - t0)
        return dudt - self(i, t1)
