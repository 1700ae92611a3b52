"""
Tests for the solution state and the right-hand side.
"""

import pytest
import numpy as np

from timeslab import FunctionODE
from timeslab.models import Decay, TwoScaleDecay
from timeslab.solution import RHS, Solution


def test_initial_state() -> None:
    """Test that the solution starts from the initial values at t = 0."""
    u = Solution(FunctionODE(lambda t, u: u, [1.0, 2.0], T=1.0), label="test")
    assert u.t == 0.0
    assert np.array_equal(u.u, [1.0, 2.0])
    assert u.label() == "test"
    assert u.count() == 0


def test_create_element() -> None:
    """Test that new elements start out constant."""
    u = Solution(Decay(u0=2.0))
    e0 = u.create(0, 0.0, 0.1)
    e1 = u.create(0, 0.1, 0.2)
    assert (e0, e1) == (0, 1)
    assert u.elements(0) == [0, 1]
    assert u.last(0) == 1
    assert u.startval(e0) == 2.0
    assert u.endval(e1) == 2.0


def test_linear_interpolation() -> None:
    """Test values between and at element end points."""
    u = Solution(Decay(u0=1.0))
    e0 = u.create(0, 0.0, 0.1)
    e1 = u.create(0, 0.1, 0.3)
    u.update(e0, 0.8)
    u.update(e1, 0.4)
    assert u.value(0, 0.0) == 1.0
    assert u.value(0, 0.05) == pytest.approx(0.9)
    assert u.value(0, 0.1) == pytest.approx(0.8)
    assert u.value(0, 0.2) == pytest.approx(0.6)
    assert u.value(0, 0.3) == pytest.approx(0.4)
    assert u.startval(e1) == 0.8


def test_update_returns_increment() -> None:
    """Test that update reports the absolute change of the end value."""
    u = Solution(Decay(u0=1.0))
    e = u.create(0, 0.0, 0.1)
    assert u.update(e, 0.7) == pytest.approx(0.3)
    assert u.update(e, 0.7) == 0.0


def test_eval_multirate() -> None:
    """Test evaluating components with elements of different lengths."""
    u = Solution(TwoScaleDecay())
    for a in (0.0, 0.05):
        u.update(u.create(0, a, a + 0.05), 0.5 if a == 0.0 else 0.25)
    u.update(u.create(1, 0.0, 0.1), 0.9)
    assert np.allclose(u.eval(0.025), [0.75, 0.975])
    assert np.allclose(u.eval(0.075), [0.375, 0.925])
    assert np.array_equal(u.eval(0.0), [1.0, 1.0])


def test_reset_restores_committed_state() -> None:
    """Test that reset drops all elements and keeps the committed values."""
    u = Solution(TwoScaleDecay())
    before = u.u.copy()
    u.update(u.create(0, 0.0, 0.1), 0.3)
    u.update(u.create(1, 0.0, 0.1), 0.6)
    u.reset()
    assert u.count() == 0
    assert u.elements(0) == [] and u.elements(1) == []
    assert np.array_equal(u.u, before)
    assert np.array_equal(u.eval(0.05), before)


def test_shift_commits_end_values() -> None:
    """Test that shift commits the last end value of every component."""
    u = Solution(TwoScaleDecay())
    u.update(u.create(0, 0.0, 0.05), 0.5)
    u.update(u.create(0, 0.05, 0.1), 0.25)
    u.update(u.create(1, 0.0, 0.1), 0.9)
    u.shift(0.1)
    assert u.t == 0.1
    assert np.array_equal(u.u, [0.25, 0.9])
    assert u.count() == 0
    e = u.create(0, 0.1, 0.2)
    assert u.startval(e) == 0.25


def test_wrong_number_of_initial_values() -> None:
    """Test that initial values must match the number of components."""
    class BadODE(Decay):
        def initial(self):
            return np.ones(3)

    with pytest.raises(ValueError, match="Expected 1 initial values"):
        Solution(BadODE())


def test_rhs_component_and_vector() -> None:
    """Test component and vector evaluation of the right-hand side."""
    ode = TwoScaleDecay(fast=10.0, slow=1.0)
    u = Solution(ode)
    f = RHS(ode, u)
    assert f(0, 0.0) == pytest.approx(-10.0)
    assert f(1, 0.0) == pytest.approx(-1.0)
    assert np.allclose(f.vector(0.0), [-10.0, -1.0])
    assert f.evaluations == 3


def test_rhs_residual() -> None:
    """Test the residual of a piecewise linear element."""
    ode = Decay(lam=1.0)
    u = Solution(ode)
    f = RHS(ode, u)
    e = u.create(0, 0.0, 0.5)
    u.update(e, 0.6)
    # (0.6 - 1.0) / 0.5 - (-0.6)
    assert f.residual(e) == pytest.approx(-0.2)


def test_initial_values_are_copied() -> None:
    """Test that committing values leaves the array returned by initial() untouched."""
    class StoredODE(Decay):
        def __init__(self):
            super().__init__()
            self.values = np.array([1.0])

        def initial(self):
            return self.values

    ode = StoredODE()
    u = Solution(ode)
    u.update(u.create(0, 0.0, 0.1), 0.5)
    u.shift(0.1)
    assert u.u[0] == 0.5
    assert ode.values[0] == 1.0
