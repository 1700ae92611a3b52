import os
from dataclasses import dataclass

import numpy as np

from timeslab.solution import RHS, Solution
from timeslab.types import Float64NDArray


@dataclass
class Sample:
    """Solution and right-hand side at one time"""
    t: float
    u: Float64NDArray  # u(t)
    f: Float64NDArray  # f(t, u(t))

    @classmethod
    def create(cls, u: Solution, f: RHS, t: float) -> "Sample":
        return cls(t=t, u=u.eval(t), f=f.vector(t))


@dataclass
class Samples:
    """All samples of a run, loaded from a sample file"""
    t: Float64NDArray  # (nsamples,)
    u: Float64NDArray  # (nsamples, N)
    f: Float64NDArray  # (nsamples, N)

    def __len__(self):
        return self.t.size


class SampleFile:
    """Sample file written during a run, one line ``t u_1 .. u_N f_1 .. f_N`` per sample.

    Parameters
    ----------
    filename : str
        File to write. An existing file is truncated.
    """

    def __init__(self, filename: str):
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.filename = filename
        self.count = 0
        self._file = open(filename, 'w')

    def write(self, sample: Sample):
        row = np.concatenate(([sample.t], sample.u, sample.f))
        np.savetxt(self._file, row[np.newaxis, :], fmt='%.16e')
        self._file.flush()
        self.count += 1

    def close(self):
        if not self._file.closed:
            self._file.close()


def load_samples(filename: str) -> Samples:
    """Load all samples from a sample file.

    Args:
        filename: Path to a file written by SampleFile

    Returns:
        Samples object with times, solution values and right-hand sides
    """
    data = np.loadtxt(filename, ndmin=2)
    if data.shape[1] % 2 != 1:
        raise ValueError(f"Malformed sample file {filename}: {data.shape[1]} columns")

    # Columns: t, then N solution values, then N right-hand side values
    N = (data.shape[1] - 1) // 2
    return Samples(
        t=data[:, 0],
        u=data[:, 1:N + 1],
        f=data[:, N + 1:],
    )
