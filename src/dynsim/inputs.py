"""Driver signals evaluated on the time-index axis.

Drivers are supplied as one value per time point. Solvers also need
driver values between time points (Runge-Kutta stages and adaptive
sub-steps), which are obtained by linear interpolation between the
neighbouring points.

Notes
-----
At integral time indices the stored value is returned exactly, so a
fixed-step solver never sees interpolation round-off and two runs over
the same drivers record bit-identical driver columns.
"""

from typing import Sequence, Union

import numpy as np


class InterpolatedInput:
    """Input signal defined by values at consecutive time indices.

    Parameters
    ----------
    values : array-like
        Value at each time index 0, 1, ..., n - 1
    kind : str, optional
        Interpolation kind passed to scipy's interp1d, by default
        'linear'

    Examples
    --------
    >>> u = InterpolatedInput([0.0, 1.0, 0.5, 0.0])
    >>> u(1)
    1.0
    >>> u(1.5)
    0.75
    """

    def __init__(
        self,
        values: Union[Sequence[float], np.ndarray],
        kind: str = "linear",
    ):
        self.values = np.array(values, dtype=float)
        self.values.flags.writeable = False
        self.kind = kind
        self.interp = None

        if len(self.values) > 1:
            from scipy.interpolate import interp1d

            self.interp = interp1d(
                np.arange(len(self.values)),
                self.values,
                kind=kind,
                fill_value="extrapolate",
            )

    def __len__(self):
        return len(self.values)

    def __call__(self, t: float) -> float:
        """Return the value at time index t."""
        if float(t).is_integer() and 0 <= t < len(self.values):
            return float(self.values[int(t)])
        if self.interp is None:
            return float(self.values[0])
        return float(self.interp(t))

    def __repr__(self):
        return (
            f"InterpolatedInput(kind='{self.kind}', "
            f"n_points={len(self.values)})"
        )
