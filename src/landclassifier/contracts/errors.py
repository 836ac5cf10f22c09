# src/landclassifier/contracts/errors.py
from __future__ import annotations


class LandClassifierError(Exception):
    """Base de todos los errores del paquete."""


# ---------- Carga de rasters ----------
class RasterIOError(LandClassifierError, OSError):
    """La fuente raster no se puede abrir o leer."""


class FormatError(LandClassifierError, ValueError):
    """Dominio de píxel o driver no soportado."""


# ---------- Geometría ----------
class DimensionError(LandClassifierError, ValueError):
    """Extensiones de bandas o largo de vector incompatibles."""


class CoordinateOutOfRangeError(LandClassifierError, IndexError):
    def __init__(self, band: str, col: float, row: float, width: int, height: int):
        self.band = band
        self.col = col
        self.row = row
        super().__init__(
            f"({col:.3f}, {row:.3f}) fuera de la banda '{band}' ({width}x{height})"
        )


class SingularTransformError(LandClassifierError, ValueError):
    """GeoTransform no invertible (bloque lineal 2x2 con det≈0)."""


# ---------- Clasificación ----------
class TrainingError(LandClassifierError, ValueError):
    pass


class ModelNotTrainedError(LandClassifierError, RuntimeError):
    pass


class DimensionMismatchError(DimensionError):
    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"vector de largo {got}, el modelo espera {expected}")


class SymbolDomainError(LandClassifierError, ValueError):
    """Símbolo fuera del dominio discreto del modelo en predicción."""


# ---------- Avisos ----------
class DegenerateStretchWarning(UserWarning):
    """Histograma vacío o maxCut <= minCut: no se aplica realce."""


__all__ = [
    "LandClassifierError", "RasterIOError", "FormatError", "DimensionError",
    "CoordinateOutOfRangeError", "SingularTransformError", "TrainingError",
    "ModelNotTrainedError", "DimensionMismatchError", "SymbolDomainError",
    "DegenerateStretchWarning",
]
