import numpy as np
from numpy.typing import NDArray

Float64NDArray = NDArray[np.float64]
