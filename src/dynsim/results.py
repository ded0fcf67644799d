"""Simulation results storage.

This module provides the ResultBuilder used by the solvers to collect
one row of quantity values per time point, and the SimulationResult
class returned to the caller.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd


@dataclass(eq=False)
class SimulationResult(Mapping):
    """Container for simulation results.

    Stores the time series of every recorded quantity as pandas
    DataFrames indexed by time index. The result also behaves as a
    read-only mapping from quantity name to an array with one value per
    time point.

    Parameters
    ----------
    time : ndarray
        Time indices, shape (n_steps,)
    drivers : DataFrame
        Driver values, shape (n_steps, n_drivers)
    states : DataFrame
        Differential quantity values, shape (n_steps, n_states)
    outputs : DataFrame
        Steady-state module outputs, shape (n_steps, n_outputs)

    Notes
    -----
    Consumers should not rely on the iteration order of quantity names.

    Examples
    --------
    >>> result = simulator.run_simulation()
    >>> round(result['TTc'][-1], 4)
    3.4167
    >>> df = result.to_dataframe()
    """

    time: np.ndarray
    drivers: pd.DataFrame
    states: pd.DataFrame
    outputs: pd.DataFrame

    def __post_init__(self):
        """Validate result dimensions and ensure time indices are set."""
        n_steps = len(self.time)
        for label, frame in (
            ("Drivers", self.drivers),
            ("States", self.states),
            ("Outputs", self.outputs),
        ):
            if len(frame) != n_steps:
                raise ValueError(
                    f"{label} length {len(frame)} != time length {n_steps}"
                )
            frame.index = pd.Index(self.time, name="time_index")

    def equals(self, other: "SimulationResult") -> bool:
        """True if both results hold exactly the same values."""
        return (
            np.array_equal(self.time, other.time)
            and self.drivers.equals(other.drivers)
            and self.states.equals(other.states)
            and self.outputs.equals(other.outputs)
        )

    def __eq__(self, other):
        if not isinstance(other, SimulationResult):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def _frame_for(self, name: str) -> Optional[pd.DataFrame]:
        for frame in (self.drivers, self.states, self.outputs):
            if name in frame.columns:
                return frame
        return None

    def __getitem__(self, name: str) -> np.ndarray:
        frame = self._frame_for(name)
        if frame is None:
            raise KeyError(name)
        return frame[name].to_numpy(copy=True)

    def __iter__(self) -> Iterator[str]:
        for frame in (self.drivers, self.states, self.outputs):
            yield from frame.columns

    def __len__(self):
        return self.n_drivers + self.n_states + self.n_outputs

    @property
    def n_steps(self) -> int:
        """Number of time points (rows)."""
        return len(self.time)

    @property
    def n_drivers(self) -> int:
        return len(self.drivers.columns)

    @property
    def n_states(self) -> int:
        return len(self.states.columns)

    @property
    def n_outputs(self) -> int:
        return len(self.outputs.columns)

    def row(self, i: int) -> Dict[str, float]:
        """Return the value of every quantity at row i."""
        if not -self.n_steps <= i < self.n_steps:
            raise IndexError(f"row {i} out of range for {self.n_steps} rows")
        return {name: float(self[name][i]) for name in self}

    def initial_row(self) -> Dict[str, float]:
        return self.row(0)

    def final_row(self) -> Dict[str, float]:
        return self.row(self.n_steps - 1)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert results to a single pandas DataFrame.

        Concatenates drivers, states and outputs into one DataFrame with
        the time index as a column (not index).

        Returns
        -------
        df : pandas.DataFrame
            DataFrame with columns: time_index, drivers, states, outputs
        """
        result_df = pd.concat([self.drivers, self.states, self.outputs], axis=1)
        return result_df.reset_index()

    def save(self, filename: str):
        """Save results to file.

        Supports .npz (NumPy) and .csv (via pandas) formats.

        Examples
        --------
        >>> result.save('simulation_results.npz')
        >>> result.save('simulation_results.csv')
        """
        ext = os.path.splitext(filename)[1].lower()

        if ext == ".npz":
            np.savez_compressed(
                filename,
                time=self.time,
                drivers=self.drivers.to_numpy(),
                driver_columns=np.array(self.drivers.columns, dtype=str),
                states=self.states.to_numpy(),
                state_columns=np.array(self.states.columns, dtype=str),
                outputs=self.outputs.to_numpy(),
                output_columns=np.array(self.outputs.columns, dtype=str),
            )

        elif ext == ".csv":
            self.to_dataframe().to_csv(filename, index=False)

        else:
            raise ValueError(
                f"Unsupported file extension '{ext}'. Use .npz or .csv"
            )

    @classmethod
    def load(cls, filename: str) -> "SimulationResult":
        """Load results saved in .npz format."""
        ext = os.path.splitext(filename)[1].lower()
        if ext != ".npz":
            raise ValueError(f"Unsupported file extension '{ext}'. Use .npz")

        with np.load(filename) as data:
            time = data["time"]
            frames = {}
            for key in ("drivers", "states", "outputs"):
                columns = data[key[:-1] + "_columns"].tolist()
                values = data[key].reshape(len(time), len(columns))
                frames[key] = pd.DataFrame(values, columns=columns)

        return cls(time=time, **frames)

    def __repr__(self):
        return (
            f"SimulationResult(n_steps={self.n_steps}, "
            f"n_drivers={self.n_drivers}, n_states={self.n_states}, "
            f"n_outputs={self.n_outputs})"
        )


class ResultBuilder:
    """Accumulate per-time-point snapshots into a SimulationResult.

    Parameters
    ----------
    driver_names, state_names, output_names : sequence of str
        Names of the quantities recorded in each group
    """

    def __init__(
        self,
        driver_names: Sequence[str],
        state_names: Sequence[str],
        output_names: Sequence[str],
    ):
        self.groups = {
            "drivers": list(driver_names),
            "states": list(state_names),
            "outputs": list(output_names),
        }
        self._columns: Dict[str, List[float]] = {
            name: [] for names in self.groups.values() for name in names
        }

    @property
    def n_rows(self) -> int:
        return len(next(iter(self._columns.values()), []))

    def record(self, snapshot: Mapping) -> None:
        """Append one row; snapshot must hold every recorded quantity."""
        for name, values in self._columns.items():
            values.append(float(snapshot[name]))

    def build(self) -> SimulationResult:
        n_rows = self.n_rows if self._columns else 0
        frames = {
            group: pd.DataFrame(
                {name: np.array(self._columns[name], dtype=float) for name in names},
                index=pd.RangeIndex(n_rows),
                columns=names,
            )
            for group, names in self.groups.items()
        }
        return SimulationResult(
            time=np.arange(n_rows),
            **frames,
        )
