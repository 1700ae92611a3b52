from typing import Callable, Sequence, Union

import numpy as np

import scipy.integrate

from timeslab.types import Float64NDArray


class ODE:
    """Initial value problem u'(t) = f(t, u(t)) on [0, T] with N components.

    Subclasses implement :meth:`f` and either :meth:`u0` or :meth:`initial`.
    Override :meth:`fi` when a single component of the right-hand side can be
    evaluated more cheaply than the whole vector.

    Parameters
    ----------
    N : int
        Number of scalar components.
    T : float
        End time of the integration interval.
    """

    def __init__(self, N: int, T: float):
        if N <= 0:
            raise ValueError("ODE must have at least one component")
        if T <= 0.0:
            raise ValueError("End time must be positive")
        self.N = int(N)
        self.T = float(T)

    def size(self) -> int:
        return self.N

    def endtime(self) -> float:
        return self.T

    def u0(self, i: int) -> float:
        """Initial value of component i."""
        raise NotImplementedError

    def initial(self) -> Float64NDArray:
        """Vector of initial values."""
        return np.array([self.u0(i) for i in range(self.N)], dtype=float)

    def f(self, t: float, u: Float64NDArray) -> Float64NDArray:
        """Right-hand side evaluated for all components."""
        raise NotImplementedError

    def fi(self, t: float, u: Float64NDArray, i: int) -> float:
        """Component i of the right-hand side."""
        return float(self.f(t, u)[i])


class FunctionODE(ODE):
    """ODE defined by a plain callable f(t, u) and an initial value vector.

    Parameters
    ----------
    f : callable
        f(t, u) -> dudt, with u and dudt arrays of shape (N,).
    u0 : array_like (N,)
        Initial values at t = 0.
    T : float
        End time.
    """

    def __init__(self, f: Callable[[float, Float64NDArray], Float64NDArray],
                 u0: Union[Sequence[float], Float64NDArray], T: float):
        values = np.atleast_1d(np.asarray(u0, dtype=float))
        super().__init__(values.size, T)
        self._f = f
        self._u0 = values.copy()

    def u0(self, i):
        return float(self._u0[i])

    def initial(self):
        return self._u0.copy()

    def f(self, t, u):
        return np.asarray(self._f(t, u), dtype=float)


def reference_solution(ode: ODE, times: Union[Sequence[float], Float64NDArray],
                       rtol: float = 1e-10, atol: float = 1e-12) -> Float64NDArray:
    """Solve the ODE with scipy for validation purposes.

    Parameters
    ----------
    ode : ODE
        Problem to solve.
    times : array_like
        Increasing output times in [0, T].
    rtol, atol : float
        Tolerances passed to :func:`scipy.integrate.solve_ivp`.

    Returns
    -------
    ndarray
        Solution with shape (len(times), N).

    Notes
    -----
    Uses LSODA, which switches automatically between stiff and non-stiff methods,
    so the multi-rate test problems are handled without tuning.
    """
    times = np.asarray(times, dtype=float)
    soln = scipy.integrate.solve_ivp(
        ode.f, (0.0, ode.endtime()), ode.initial(), method='LSODA',
        t_eval=times, rtol=rtol, atol=atol,
    )
    if not soln.success:
        raise RuntimeError(f"Reference solution failed: {soln.message}")
    return soln.y.T
