"""
Tests for the fixed point iteration on time slabs.
"""

import logging

import pytest
import numpy as np

from timeslab import SolverSettings
from timeslab.adaptivity import Adaptivity
from timeslab.fixedpoint import FixedPointIteration
from timeslab.models import Decay, HarmonicOscillator
from timeslab.solution import RHS, Solution
from timeslab.timeslab import UniformTimeSlab


def make_solver(ode, **kwargs):
    settings = SolverSettings(progress=False, **kwargs)
    u = Solution(ode)
    f = RHS(ode, u)
    return u, f, Adaptivity(ode, settings), FixedPointIteration(u, f, settings)


def test_converges_to_trapezoidal_rule() -> None:
    """Test that a converged element satisfies the trapezoidal rule."""
    u, f, adaptivity, fixpoint = make_solver(Decay(lam=1.0), initial_step=0.1)
    timeslab = UniformTimeSlab(0.0, 1.0, u, adaptivity)
    assert fixpoint.iterate(timeslab)
    assert u.endval(0) == pytest.approx(0.95 / 1.05, rel=1e-9)
    assert fixpoint.stabilization() == (1.0, 0)
    assert fixpoint.iterations > 1


def test_converges_for_coupled_system() -> None:
    """Test convergence for a system of two coupled components."""
    u, f, adaptivity, fixpoint = make_solver(HarmonicOscillator(), initial_step=0.1)
    timeslab = UniformTimeSlab(0.0, 1.0, u, adaptivity)
    assert fixpoint.iterate(timeslab)
    # Trapezoidal rule for the oscillator is a Cayley transform, preserving |u|
    u1 = np.array([u.endval(e) for e in timeslab.elements()])
    assert np.linalg.norm(u1) == pytest.approx(1.0, rel=1e-8)


def test_divergence() -> None:
    """Test that a step beyond the contraction limit fails with a damping factor."""
    u, f, adaptivity, fixpoint = make_solver(Decay(lam=100.0), initial_step=0.1)
    timeslab = UniformTimeSlab(0.0, 1.0, u, adaptivity)
    assert not fixpoint.iterate(timeslab)

    # The contraction factor is k * lam / 2 = 5
    alpha, m = fixpoint.stabilization()
    assert alpha == pytest.approx(0.1)
    assert m == 4
    assert fixpoint.failures == 1
    assert fixpoint.iterations == 2


def test_iteration_limit() -> None:
    """Test that slow convergence fails once the iteration limit is reached."""
    u, f, adaptivity, fixpoint = make_solver(Decay(lam=18.0), initial_step=0.1, max_iterations=3)
    timeslab = UniformTimeSlab(0.0, 1.0, u, adaptivity)
    assert not fixpoint.iterate(timeslab)
    alpha, m = fixpoint.stabilization()
    assert alpha == pytest.approx(0.5 / 0.9)
    assert m == 1
    assert fixpoint.iterations == 3


def test_non_finite_values() -> None:
    """Test that non-finite right-hand sides count as divergence."""
    class Blowup(Decay):
        def f(self, t, u):
            return np.full_like(u, np.inf)

    u, f, adaptivity, fixpoint = make_solver(Blowup(), initial_step=0.1)
    timeslab = UniformTimeSlab(0.0, 1.0, u, adaptivity)
    assert not fixpoint.iterate(timeslab)
    assert fixpoint.stabilization() == (0.5, 1)


def test_report(caplog) -> None:
    """Test that the report logs the iteration statistics."""
    u, f, adaptivity, fixpoint = make_solver(Decay(), initial_step=0.1)
    fixpoint.iterate(UniformTimeSlab(0.0, 1.0, u, adaptivity))
    with caplog.at_level(logging.INFO, logger="timeslab.fixedpoint"):
        fixpoint.report()
    assert f"{fixpoint.iterations} iterations on 1 time slabs" in caplog.text
    assert "0 stabilizations" in caplog.text
