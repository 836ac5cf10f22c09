# src/landclassifier/contracts/geo.py

from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Tuple

import numpy as np

from .errors import FormatError, SingularTransformError

# Orden GDAL: (x0, px, rx, y0, ry, py)
Coefficients = Tuple[float, float, float, float, float, float]

_DET_EPS = 1e-18


class Bounds(NamedTuple):
    minx: float; miny: float; maxx: float; maxy: float


# ---------- Dominio numérico de píxel ----------
class PixelDomain(str, Enum):
    UINT8 = "uint8"
    UINT16 = "uint16"
    FLOAT32 = "float32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def byte_width(self) -> int:
        # stride por píxel; siempre coherente con el dtype
        return self.dtype.itemsize

    @property
    def is_float(self) -> bool:
        return self is PixelDomain.FLOAT32

    @property
    def max_value(self) -> float:
        """Máximo del rango de salida del realce (1.0 para flotante normalizado)."""
        if self.is_float:
            return 1.0
        return float(np.iinfo(self.dtype).max)

    @staticmethod
    def from_dtype(dt) -> "PixelDomain":
        d = np.dtype(dt)
        if d == np.uint8:
            return PixelDomain.UINT8
        if d == np.uint16:
            return PixelDomain.UINT16
        if d in (np.dtype("float32"), np.dtype("float64")):
            return PixelDomain.FLOAT32
        raise FormatError(f"dominio de píxel no soportado: {d}")


# ---------- CRS (solo descriptor, sin GDAL) ----------
@dataclass(frozen=True)
class CRSRef:
    wkt: Optional[str] = None
    epsg: Optional[int] = None

    @staticmethod
    def from_epsg(code: int) -> "CRSRef":
        return CRSRef(epsg=int(code))

    @staticmethod
    def from_wkt(wkt: str) -> "CRSRef":
        return CRSRef(wkt=wkt)

    @property
    def is_empty(self) -> bool:
        return not self.wkt and self.epsg is None

    def to_wkt(self) -> str:
        """
        Representación de texto del CRS.
        - WKT si existe; si no, 'EPSG:<code>'.
        - Si no hay nada, error.
        """
        if self.wkt:
            return self.wkt
        if self.epsg is not None:
            return f"EPSG:{int(self.epsg)}"
        raise ValueError("CRSRef vacío: no hay WKT ni EPSG.")


# ---------- GeoTransform afín ----------
@dataclass(frozen=True)
class GeoTransform:
    """
    Matriz afín 3x3 pixel -> mundo:

        | px  rx  x0 |   | col |   | x |
        | ry  py  y0 | * | row | = | y |
        | 0   0   1  |   |  1  |   | 1 |

    El signo de `py` no es fijo: depende de la orientación del producto.
    """
    coefficients: Coefficients
    _matrix: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        c = tuple(float(v) for v in self.coefficients)
        if len(c) != 6:
            raise ValueError(f"Se esperaban 6 coeficientes, llegaron {len(c)}")
        if not all(math.isfinite(v) for v in c):
            raise ValueError(f"Coeficientes no finitos: {c}")
        x0, px, rx, y0, ry, py = c
        m = np.array([[px, rx, x0], [ry, py, y0], [0.0, 0.0, 1.0]], dtype=np.float64)
        m.setflags(write=False)
        object.__setattr__(self, "coefficients", c)
        object.__setattr__(self, "_matrix", m)

    @classmethod
    def build(cls, a0: float, a1: float, a2: float, a3: float, a4: float, a5: float) -> "GeoTransform":
        return cls((a0, a1, a2, a3, a4, a5))

    @classmethod
    def identity(cls) -> "GeoTransform":
        return cls((0.0, 1.0, 0.0, 0.0, 0.0, 1.0))

    @classmethod
    def screen_to_world(cls, coeffs: Coefficients) -> "GeoTransform":
        """
        Convención del compuesto RGB: escala unitaria y eje Y invertido,
        conservando origen y términos de rotación del producto.
        """
        x0, _, rx, y0, ry, _ = coeffs
        return cls((x0, 1.0, rx, y0, ry, -1.0))

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    @property
    def x_resolution(self) -> float:
        return self.coefficients[1]

    @property
    def y_resolution(self) -> float:
        return self.coefficients[5]

    @property
    def determinant(self) -> float:
        _, px, rx, _, ry, py = self.coefficients
        return px * py - rx * ry

    @property
    def is_invertible(self) -> bool:
        return abs(self.determinant) >= _DET_EPS

    def pixel_to_world(self, col: float, row: float) -> Tuple[float, float]:
        x, y, _ = self._matrix @ np.array([col, row, 1.0])
        return float(x), float(y)

    def world_to_pixel(self, x: float, y: float) -> Tuple[float, float]:
        x0, px, rx, y0, ry, py = self.coefficients
        det = self.determinant
        if abs(det) < _DET_EPS:
            raise SingularTransformError(f"GeoTransform no invertible (det={det!r}).")
        dx = x - x0; dy = y - y0
        col = (py * dx - rx * dy) / det
        row = (-ry * dx + px * dy) / det
        return col, row

    def upper_left(self) -> Tuple[float, float]:
        return self.pixel_to_world(0, 0)

    def bottom_right(self, width: int, height: int) -> Tuple[float, float]:
        return self.pixel_to_world(width, height)

    def bounds(self, width: int, height: int) -> Bounds:
        corners = [self.pixel_to_world(c, r) for c, r in ((0, 0), (width, 0), (0, height), (width, height))]
        xs = [p[0] for p in corners]; ys = [p[1] for p in corners]
        return Bounds(min(xs), min(ys), max(xs), max(ys))

    def is_close(self, other: "GeoTransform", tol: float = 1e-6) -> bool:
        return all(math.isclose(a, b, rel_tol=0.0, abs_tol=tol)
                   for a, b in zip(self.coefficients, other.coefficients))


def pretty_bounds(b: Bounds, ndigits: int = 3) -> str:
    return (f"Bounds(minx={b.minx:.{ndigits}f}, miny={b.miny:.{ndigits}f}, "
            f"maxx={b.maxx:.{ndigits}f}, maxy={b.maxy:.{ndigits}f})")


__all__ = [
    "Coefficients", "Bounds", "PixelDomain", "CRSRef", "GeoTransform", "pretty_bounds",
]
