"""
ToT to charge calibration for FE-I4B pixels.

Every pixel has a quadratic calibration charge(tot) = a + b*tot + c*tot^2.
The coefficients are held in three planes of shape (80, 336), indexed by
[column - 1, row - 1]. A table is built once before decoding starts and is
read-only afterwards, so it can be shared between windows freely.
"""

import numpy as np
from typing import Mapping, Optional, Tuple, TYPE_CHECKING

from .data_types import Hit, FE_COLS, FE_ROWS

if TYPE_CHECKING:
    from numpy.typing import NDArray


CALIBRATION_SHAPE = (FE_COLS, FE_ROWS)
PLANE_NAMES = ("a", "b", "c")


class CalibrationError(ValueError):
    """Raised for missing, malformed or out-of-range calibration access"""
    pass


class CalibrationTable:
    """
    Per-pixel quadratic ToT to charge coefficients.
    """

    def __init__(self, par_a: 'NDArray', par_b: 'NDArray', par_c: 'NDArray'):
        """
        Args:
            par_a: Constant term per pixel, shape (80, 336)
            par_b: Linear term per pixel, shape (80, 336)
            par_c: Quadratic term per pixel, shape (80, 336)

        Raises:
            CalibrationError: if a plane has the wrong shape or non-finite values
        """
        planes = []
        for name, plane in zip(PLANE_NAMES, (par_a, par_b, par_c)):
            if plane is None:
                raise CalibrationError(f"Calibration plane {name} is missing")

            array = np.array(plane, dtype=np.float64)
            if array.shape != CALIBRATION_SHAPE:
                raise CalibrationError(f"Calibration plane {name} has shape {array.shape}, "
                                       f"expected {CALIBRATION_SHAPE}")
            if not np.all(np.isfinite(array)):
                raise CalibrationError(f"Calibration plane {name} contains non-finite values")

            array.flags.writeable = False
            planes.append(array)

        self._par_a, self._par_b, self._par_c = planes

    @classmethod
    def from_planes(cls, planes: Mapping[str, 'NDArray']) -> 'CalibrationTable':
        """
        Build a table from a mapping with the planes "a", "b" and "c".

        Args:
            planes: Mapping as produced by an external calibration loader

        Returns:
            CalibrationTable
        """
        missing = [name for name in PLANE_NAMES if name not in planes]
        if missing:
            raise CalibrationError(f"Calibration planes missing: {', '.join(missing)}")
        return cls(planes["a"], planes["b"], planes["c"])

    @property
    def par_a(self) -> 'NDArray':
        return self._par_a

    @property
    def par_b(self) -> 'NDArray':
        return self._par_b

    @property
    def par_c(self) -> 'NDArray':
        return self._par_c

    def coefficients(self, x: int, y: int) -> Tuple[float, float, float]:
        """
        Coefficients (a, b, c) of pixel (x, y), both 1-based.

        Raises:
            CalibrationError: if the pixel is outside the 80x336 grid
        """
        if not (1 <= x <= FE_COLS and 1 <= y <= FE_ROWS):
            raise CalibrationError(f"Pixel ({x}, {y}) outside calibration grid "
                                   f"1..{FE_COLS} x 1..{FE_ROWS}")
        i, j = x - 1, y - 1
        return (float(self._par_a[i, j]), float(self._par_b[i, j]), float(self._par_c[i, j]))

    def charge(self, x: int, y: int, tot: int) -> float:
        """Charge of a hit with real ToT `tot` in pixel (x, y)"""
        a, b, c = self.coefficients(x, y)
        return a + b * tot + c * tot * tot

    def charge_map(self, tot: int) -> 'NDArray':
        """Charge of every pixel for the same real ToT, shape (80, 336)"""
        return self._par_a + self._par_b * tot + self._par_c * tot * tot


def create_uniform_calibration(a: float = 0.0, b: float = 1.0,
                               c: float = 0.0) -> CalibrationTable:
    """
    Create a calibration with the same coefficients for every pixel.

    Useful for testing or when the charge is not of interest; the
    defaults make the charge equal to the ToT.

    Args:
        a: Constant term
        b: Linear term
        c: Quadratic term

    Returns:
        CalibrationTable
    """
    return CalibrationTable(np.full(CALIBRATION_SHAPE, a),
                            np.full(CALIBRATION_SHAPE, b),
                            np.full(CALIBRATION_SHAPE, c))


class ChargeEstimator:
    """
    Builds hits with their charge taken from a calibration table.
    """

    def __init__(self, table: Optional[CalibrationTable]):
        """
        Args:
            table: Initialized calibration table

        Raises:
            CalibrationError: if no table is given
        """
        if table is None:
            raise CalibrationError("No calibration table given, load the calibration "
                                   "before decoding")
        if not isinstance(table, CalibrationTable):
            raise CalibrationError(f"Expected a CalibrationTable, got {type(table).__name__}")
        self.table = table

    def charge(self, x: int, y: int, tot: int) -> float:
        return self.table.charge(x, y, tot)

    def make_hit(self, x: int, y: int, tot: int, lvl1: int, small_tot: bool = False) -> Hit:
        """Build a hit with its charge filled in"""
        return Hit(x, y, tot, lvl1, self.table.charge(x, y, tot), small_tot)
