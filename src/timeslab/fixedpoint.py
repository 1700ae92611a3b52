import logging
from math import ceil, isfinite, log2
from typing import Tuple

from timeslab.settings import SolverSettings
from timeslab.solution import RHS, Solution

logger = logging.getLogger(__name__)


class FixedPointIteration:
    """Picard iteration for the implicit system of a time slab.

    Each sweep visits the elements of the slab in order and updates them in place
    (Gauss-Seidel), using the trapezoidal rule on every element:

        u1 = u0 + k/2 * (f_i(t0, u(t0)) + f_i(t1, u(t1)))

    Parameters
    ----------
    u : Solution
        Solution state holding the elements.
    f : RHS
        Right-hand side evaluated on u.
    settings : SolverSettings
        Supplies ``discrete_tolerance`` and ``max_iterations``.
    """

    def __init__(self, u: Solution, f: RHS, settings: SolverSettings):
        self.u = u
        self.f = f
        self.tol = settings.discrete_tolerance
        self.maxiter = settings.max_iterations

        # Stabilization parameters of the most recent attempt
        self.alpha = 1.0
        self.m = 0

        # Statistics
        self.iterations = 0
        self.timeslabs = 0
        self.failures = 0

    def iterate(self, timeslab) -> bool:
        """Iterate until the elements of the time slab converge.

        Returns
        -------
        bool
            True on convergence. On failure the elements are left as they are
            and the solution must be reset before it is used again.
        """
        elements = timeslab.elements()
        self.timeslabs += 1

        d0 = 0.0
        rho = 1.0
        for n in range(self.maxiter):
            d = self._sweep(elements)
            self.iterations += 1

            if not isfinite(d):
                logger.debug("Fixed point iteration produced non-finite values")
                return self._failed(1.0)

            if d <= self.tol:
                logger.debug("Fixed point iteration converged in %d iterations", n + 1)
                self.alpha = 1.0
                self.m = 0
                return True

            if n > 0:
                rho = d / d0
                if rho >= 1.0:
                    logger.debug("Fixed point iteration diverged (rho = %g)", rho)
                    return self._failed(rho)
            d0 = d

        logger.debug("Fixed point iteration did not converge in %d iterations", self.maxiter)
        return self._failed(rho)

    def _sweep(self, elements) -> float:
        u = self.u
        f = self.f
        dmax = 0.0
        for e in elements:
            i = u.component(e)
            t0, t1 = u.interval(e)
            value = u.startval(e) + 0.5 * (t1 - t0) * (f(i, t0) + f(i, t1))
            increment = u.update(e, value)
            if not isfinite(increment):
                return increment
            dmax = max(dmax, increment)
        return dmax

    def _failed(self, rho: float) -> bool:
        # Damping that brings the contraction estimate down to 1/2
        self.alpha = min(1.0, 0.5 / rho)
        self.m = max(1, int(ceil(log2(1.0 / self.alpha))))
        self.failures += 1
        return False

    def stabilization(self) -> Tuple[float, int]:
        """Damping factor alpha and number of stabilizing steps m of the last attempt."""
        return self.alpha, self.m

    def report(self):
        logger.info(
            "Fixed point iteration: %d iterations on %d time slabs, %d stabilizations, %d function evaluations",
            self.iterations, self.timeslabs, self.failures, self.f.evaluations,
        )
