"""Test problems with known solutions."""

import numpy as np

from timeslab.ode import ODE


class Decay(ODE):
    """Scalar linear decay u' = -lam * u, u(0) = u0.

    Parameters
    ----------
    lam : float
        Decay rate.
    u0 : float
        Initial value.
    T : float
        End time.
    """

    def __init__(self, lam=1.0, u0=1.0, T=1.0):
        super().__init__(1, T)
        self.lam = lam
        self.value = u0

    def u0(self, i):
        return self.value

    def f(self, t, u):
        return -self.lam * u

    def exact(self, t):
        return self.value * np.exp(-self.lam * np.asarray(t))


class TwoScaleDecay(ODE):
    """Two uncoupled decaying components with different time scales.

    Component 0 decays with rate ``fast``, component 1 with rate ``slow``.
    Multi-rate time slabs should give component 0 more, smaller elements.

    Parameters
    ----------
    fast : float
        Decay rate of component 0.
    slow : float
        Decay rate of component 1.
    T : float
        End time.
    """

    def __init__(self, fast=100.0, slow=1.0, T=1.0):
        super().__init__(2, T)
        self.rates = np.array([fast, slow])

    def u0(self, i):
        return 1.0

    def f(self, t, u):
        return -self.rates * u

    def fi(self, t, u, i):
        return -self.rates[i] * u[i]

    def exact(self, t):
        return np.exp(-np.outer(np.atleast_1d(t), self.rates))


class HarmonicOscillator(ODE):
    """Harmonic oscillator u0'' = -omega^2 u0 written as a first order system.

    Parameters
    ----------
    omega : float
        Angular frequency.
    T : float
        End time.
    """

    def __init__(self, omega=1.0, T=1.0):
        super().__init__(2, T)
        self.omega = omega

    def u0(self, i):
        return 1.0 if i == 0 else 0.0

    def f(self, t, u):
        return np.array([u[1], -self.omega**2 * u[0]])

    def exact(self, t):
        wt = self.omega * np.atleast_1d(t)
        return np.column_stack((np.cos(wt), -self.omega * np.sin(wt)))
