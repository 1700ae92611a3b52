"""
timeslab: Multi-adaptive time stepping for systems of ODEs.

This package advances the solution of u' = f(t, u) over time slabs, solving
each slab by fixed point iteration with per-component step sizes.
"""

from timeslab.ode import ODE, FunctionODE, reference_solution
from timeslab.samples import load_samples
from timeslab.settings import SolverSettings
from timeslab.stepper import TimeStepper

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "ODE",
    "FunctionODE",
    "SolverSettings",
    "TimeStepper",
    "load_samples",
    "reference_solution",
]
