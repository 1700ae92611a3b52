import logging
import os
import threading
from math import ceil
from time import perf_counter
from typing import Optional

from tqdm.auto import tqdm

from timeslab.adaptivity import Adaptivity
from timeslab.fixedpoint import FixedPointIteration
from timeslab.ode import ODE
from timeslab.partition import Partition
from timeslab.samples import Sample, SampleFile
from timeslab.settings import SolverSettings
from timeslab.solution import RHS, Solution
from timeslab.timeslab import RecursiveTimeSlab, TimeSlab, UniformTimeSlab
from timeslab.types import Float64NDArray

logger = logging.getLogger(__name__)


class TimeStepper:
    """Advance the solution of an ODE from t = 0 to T one time slab at a time.

    Each call to :meth:`step` creates time slabs starting at the current time
    until one is accepted. A slab is rejected when the fixed point iteration
    fails to converge (the step sizes are then stabilized) or when its error
    estimate exceeds the tolerance (the step sizes are then recomputed from the
    residuals). In both cases the solution is reset to the start of the slab.

    Parameters
    ----------
    ode : ODE
        Problem to solve.
    settings : SolverSettings, optional
        Solver options. Defaults to ``SolverSettings()``.
    label : str
        Name of the solution; the sample file is ``<label>.dat``.

    Examples
    --------
    >>> from timeslab.models import Decay
    >>> stepper = TimeStepper(Decay(T=1.0), SolverSettings(progress=False))
    >>> while not stepper.finished():
    ...     t = stepper.step()
    >>> stepper.close()
    """

    def __init__(self, ode: ODE, settings: Optional[SolverSettings] = None, label: str = "solution"):
        if settings is None:
            settings = SolverSettings()
        if ode.size() <= 0:
            raise ValueError("ODE must have at least one component")
        if ode.endtime() <= 0.0:
            raise ValueError("End time must be positive")

        self.settings = settings
        self.N = ode.size()
        self.t = 0.0
        self.T = ode.endtime()
        self.no_samples = settings.sample_count
        self.save_solution = settings.save_solution
        self.partition = Partition(self.N, settings.partitioning_threshold)
        self.adaptivity = Adaptivity(ode, settings)
        self.u = Solution(ode, label)
        self.f = RHS(ode, self.u)
        self.fixpoint = FixedPointIteration(self.u, self.f, settings)
        self.file = None
        if self.save_solution:
            self.file = SampleFile(os.path.join(settings.sample_directory, self.u.label() + ".dat"))

        # Progress fraction t / T
        self.p = 0.0
        self.rejections = 0
        self.accepted = 0
        self._finished = False
        self._lock = threading.Lock()
        self._progress = tqdm(total=100, desc="Time-stepping", unit="%",
                              disable=not settings.progress, leave=False)

        logger.warning("Multi-adaptive ODE solver is experimental.")

        # Start timing
        self._tic = perf_counter()

    @staticmethod
    def solve(ode: ODE, settings: Optional[SolverSettings] = None,
              label: str = "solution") -> Float64NDArray:
        """Solve the ODE on [0, T] and return the solution at T."""
        with TimeStepper(ode, settings, label) as stepper:
            while not stepper.finished():
                stepper.step()
            return stepper.u.u.copy()

    def step(self) -> float:
        """Create time slabs until one is accepted and return the new time."""
        with self._lock:
            if self._finished:
                return self.t
            try:
                # Repeat until the time slab has converged
                while not self._create_timeslab():
                    self.rejections += 1
                    if self.rejections > self.settings.max_rejections:
                        raise RuntimeError(
                            f"Too many rejected time slabs at t = {self.t:g} "
                            f"({self.rejections} consecutive rejections)"
                        )
            except Exception:
                # Leave only committed values behind when the run fails mid-attempt
                self.u.reset()
                raise
            self.rejections = 0
            return self.t

    def finished(self) -> bool:
        return self._finished

    def _create_timeslab(self) -> bool:
        if self.t == 0.0:
            return self._create_first_timeslab()
        return self._create_general_timeslab()

    def _create_first_timeslab(self) -> bool:
        timeslab = UniformTimeSlab(self.t, self.T, self.u, self.adaptivity)
        return self._solve_timeslab(timeslab)

    def _create_general_timeslab(self) -> bool:
        timeslab = RecursiveTimeSlab(self.t, self.T, self.T, self.u, self.adaptivity, self.partition)
        return self._solve_timeslab(timeslab)

    def _solve_timeslab(self, timeslab: TimeSlab) -> bool:
        # Try to solve the system using fixed point iteration
        if not self.fixpoint.iterate(timeslab):
            self.stabilize(timeslab.length())
            self.u.reset()
            return False

        # Check if the residual is small enough if the time step is not fixed
        if not self.adaptivity.fixed() and not self.adaptivity.accept(timeslab, self.f):
            logger.info("Residual is too large, creating a new time slab.")
            self.adaptivity.shift(self.u, self.f, rejected=True)
            self.u.reset()
            return False

        # Update time
        self.t = timeslab.endtime()
        self.accepted += 1

        self.save(timeslab)

        # Prepare for next time slab
        self.shift()

        if timeslab.finished():
            self._finished = True
        self._update_progress(1.0 if self._finished else self.t / self.T)

        return True

    def shift(self):
        self.adaptivity.shift(self.u, self.f)
        self.u.shift(self.t)

    def save(self, timeslab: TimeSlab):
        """Write the samples falling within the time slab."""
        if not self.save_solution:
            return

        # Compute time of first sample within time slab
        K = self.T / self.no_samples
        n = ceil(timeslab.starttime() / K)

        while n < self.no_samples and n * K < timeslab.endtime():
            self.file.write(Sample.create(self.u, self.f, n * K))
            n += 1

        # Save end time value
        if timeslab.finished():
            self.file.write(Sample.create(self.u, self.f, timeslab.endtime()))

    def stabilize(self, K: float):
        """Reduce the step sizes after a failed fixed point iteration on a slab of length K."""
        alpha, m = self.fixpoint.stabilization()

        # Compute stabilizing time step, at least a factor 1/2
        k = min(alpha, 0.5) * K

        self.adaptivity.stabilize(k, m)

    def _update_progress(self, p: float):
        self._progress.update(round(100 * p) - round(100 * self.p))
        self.p = p

    def close(self):
        """Close the sample file and report timing and iteration statistics."""
        if self.file is not None:
            self.file.close()
        self._progress.close()
        logger.info("Solution computed in %.3f seconds.", perf_counter() - self._tic)
        self.fixpoint.report()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
