from dataclasses import dataclass
from numbers import Integral
from typing import Optional


@dataclass
class SolverSettings:
    """Options read once when a TimeStepper is constructed.

    Parameters
    ----------
    sample_count : int
        Number of samples written over [0, T]. Samples are spaced T / sample_count apart.
    save_solution : bool
        Write samples to ``<sample_directory>/<label>.dat``.
    fixed_step : bool
        Use ``initial_step`` for every component and skip residual-based rejection.
    initial_step : float
        Step size of the first time slab (and of every slab when ``fixed_step`` is set).
    max_step : float, optional
        Largest step size the controller may propose. Defaults to the end time T.
    min_step : float
        Stabilizing below this step size is a fatal error.
    tolerance : float
        Local error tolerance per component and element.
    discrete_tolerance : float
        Fixed-point iteration stops once a sweep changes no value by more than this.
    max_iterations : int
        Maximum number of fixed-point sweeps per time slab.
    partitioning_threshold : float
        Components with step size >= threshold * (largest step) share a time slab level.
    safety : float
        Safety factor applied to step sizes proposed from the error estimate.
    max_rejections : int
        Maximum number of consecutive rejected time slabs before giving up.
    progress : bool
        Show a progress bar.
    sample_directory : str
        Directory receiving the sample file.
    """
    sample_count: int = 100
    save_solution: bool = False
    fixed_step: bool = False
    initial_step: float = 0.01
    max_step: Optional[float] = None
    min_step: float = 1e-12
    tolerance: float = 1e-6
    discrete_tolerance: float = 1e-10
    max_iterations: int = 100
    partitioning_threshold: float = 0.5
    safety: float = 0.9
    max_rejections: int = 100
    progress: bool = True
    sample_directory: str = "."

    def __post_init__(self):
        if not isinstance(self.sample_count, Integral) or self.sample_count <= 0:
            raise ValueError(f"Number of samples must be a positive integer, got {self.sample_count!r}")
        if self.initial_step <= 0.0:
            raise ValueError("Initial step size must be positive")
        if self.max_step is not None and self.max_step < self.initial_step:
            raise ValueError("Maximum step size must be >= initial step size")
        if self.min_step <= 0.0 or self.min_step > self.initial_step:
            raise ValueError("Minimum step size must be in (0, initial_step]")
        if self.tolerance <= 0.0 or self.discrete_tolerance <= 0.0:
            raise ValueError("Tolerances must be positive")
        if self.max_iterations < 1:
            raise ValueError("Maximum number of iterations must be >= 1")
        if not 0.0 < self.partitioning_threshold <= 1.0:
            raise ValueError("Partitioning threshold must be in (0, 1]")
        if not 0.0 < self.safety <= 1.0:
            raise ValueError("Safety factor must be in (0, 1]")
        if self.max_rejections < 1:
            raise ValueError("Maximum number of rejections must be >= 1")
