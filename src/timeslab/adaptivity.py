import logging
from math import sqrt
from typing import Optional, Sequence

import numpy as np

from timeslab.ode import ODE
from timeslab.settings import SolverSettings
from timeslab.solution import RHS, Solution
from timeslab.types import Float64NDArray

logger = logging.getLogger(__name__)

# Largest factor a step size may grow by from one time slab to the next
MAXGROWTH = 2.0


class Adaptivity:
    """Per-component step size control.

    The step sizes in ``k`` are the only state carried from one time slab to the
    next. They are updated from the residuals of each accepted slab in
    :meth:`shift`, and reduced after a failed fixed point iteration in
    :meth:`stabilize`.

    Parameters
    ----------
    ode : ODE
        Problem being solved.
    settings : SolverSettings
        Tolerance, step size limits and the fixed step flag.
    """

    def __init__(self, ode: ODE, settings: SolverSettings):
        self.N = ode.size()
        self.tol = settings.tolerance
        self.safety = settings.safety
        self.kfixed = settings.initial_step
        self.kmax = settings.max_step if settings.max_step is not None else ode.endtime()
        self.kmin = settings.min_step
        self._fixed = settings.fixed_step

        self.k = np.full(self.N, min(settings.initial_step, self.kmax))

        # Number of remaining time slabs during which step sizes may not grow
        self.stabilizing = 0

    def fixed(self) -> bool:
        return self._fixed

    def timestep(self, i: int) -> float:
        return float(self.k[i])

    def minstep(self, components: Optional[Sequence[int]] = None) -> float:
        if components is None:
            return float(self.k.min())
        return float(self.k[list(components)].min())

    def maxstep(self, components: Optional[Sequence[int]] = None) -> float:
        if components is None:
            return float(self.k.max())
        return float(self.k[list(components)].max())

    def errors(self, u: Solution, f: RHS) -> Float64NDArray:
        """Error estimate k * |R| on the last element of every component."""
        e = np.zeros(self.N)
        for i in range(self.N):
            if not u.elements(i):
                continue
            last = u.last(i)
            t0, t1 = u.interval(last)
            e[i] = (t1 - t0) * abs(f.residual(last))
        return e

    def accept(self, timeslab, f: RHS) -> bool:
        """Check that the error estimate of a converged time slab is within tolerance."""
        if self._fixed:
            return True
        e = self.errors(f.u, f)
        emax = float(e.max())
        if emax > self.tol:
            logger.debug("Time slab [%g, %g] rejected, error %.3e > %.3e",
                         timeslab.starttime(), timeslab.endtime(), emax, self.tol)
            return False
        return True

    def shift(self, u: Solution, f: RHS, rejected: bool = False):
        """Compute new step sizes from the elements of the latest time slab.

        Parameters
        ----------
        u : Solution
            Solution still holding the elements of the slab.
        f : RHS
            Right-hand side used for the residuals.
        rejected : bool
            The slab is rejected; every step size is at least halved.
        """
        if self._fixed:
            if self.stabilizing > 0:
                self.stabilizing -= 1
            else:
                self.k[:] = self.kfixed
            return

        e = self.errors(u, f)
        for i in range(self.N):
            if not u.elements(i):
                continue
            t0, t1 = u.interval(u.last(i))
            k = self._regulate(t1 - t0, self.k[i], e[i])
            if rejected:
                k = min(k, 0.5 * (t1 - t0))
            elif self.stabilizing > 0:
                k = min(k, self.k[i])
            self.k[i] = k

        if not rejected and self.stabilizing > 0:
            self.stabilizing -= 1

        if rejected and self.k.min() < self.kmin:
            raise RuntimeError(f"Step size too small: {self.k.min():g} < {self.kmin:g}")
        np.maximum(self.k, self.kmin, out=self.k)

    def _regulate(self, kelem: float, kold: float, error: float) -> float:
        if error <= 0.0:
            knew = self.kmax
        else:
            knew = self.safety * kelem * sqrt(self.tol / error)

        # Smooth increases by a harmonic mean with the previous step size
        if knew > kold:
            knew = min(2.0 * kold * knew / (kold + knew), MAXGROWTH * kold)

        return min(knew, self.kmax)

    def stabilize(self, k: float, m: int):
        """Limit all step sizes to k for the next m time slabs."""
        if k < self.kmin:
            raise RuntimeError(f"Step size too small: {k:g} < {self.kmin:g}")
        logger.debug("Stabilizing: k = %g for %d time slabs", k, m)
        np.minimum(self.k, k, out=self.k)
        self.stabilizing = max(self.stabilizing, m)
