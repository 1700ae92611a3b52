"""
Right-hand sides written with jax.numpy.
"""

from typing import Callable, Sequence, Union

import jax
import jax.numpy as jnp
from jax import Array
import numpy as np

from timeslab.ode import ODE
from timeslab.types import Float64NDArray


class JaxODE(ODE):
    """ODE whose right-hand side is a JIT-compiled jax function.

    Parameters
    ----------
    f : callable
        f(t, u) -> dudt written with ``jax.numpy``.
    u0 : array_like (N,)
        Initial values at t = 0.
    T : float
        End time.
    enable_x64 : bool, optional
        Enable double precision in jax. Default is True; the solver tolerances
        assume float64 right-hand sides.

    Examples
    --------
    >>> import numpy as np
    >>> from timeslab.jaxode import JaxODE
    >>> ode = JaxODE(lambda t, u: -u, [1.0], T=1.0)
    >>> ode.f(0.0, np.array([2.0]))
    array([-2.])
    """

    def __init__(self, f: Callable[[float, Array], Array],
                 u0: Union[Sequence[float], Float64NDArray], T: float,
                 enable_x64: bool = True):
        if enable_x64:
            jax.config.update('jax_enable_x64', True)
        values = np.atleast_1d(np.asarray(u0, dtype=float))
        super().__init__(values.size, T)
        self._u0 = values.copy()
        self._f = jax.jit(f)

    def u0(self, i):
        return float(self._u0[i])

    def initial(self):
        return self._u0.copy()

    def f(self, t, u):
        return np.asarray(self._f(t, jnp.asarray(u)), dtype=float)
