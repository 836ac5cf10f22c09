# src/landclassifier/ports/raster_read.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable, Tuple

import numpy as np

from ..contracts.geo import Coefficients, CRSRef

URI = str


@dataclass(frozen=True)
class DecodedRaster:
    """Lo que entrega el decodificador externo: buffer crudo + 6 coeficientes afines."""
    data: np.ndarray
    coefficients: Coefficients
    projection: CRSRef = CRSRef()

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


@runtime_checkable
class RasterReaderPort(Protocol):
    """
    Lector de raster genérico (GeoTIFF/JP2/COG, etc.).
    Reglas:
      - read() devuelve SIEMPRE un buffer 2D (una banda).
      - Fuente ilegible -> RasterIOError.
    """
    def read(self, uri: URI, band_index: int | None = None) -> DecodedRaster: ...
    def size(self, uri: URI) -> Tuple[int, int]: ...  # (width, height)
    def exists(self, uri: URI) -> bool: ...

__all__ = ["RasterReaderPort", "DecodedRaster", "URI"]
