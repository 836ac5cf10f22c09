# src/landclassifier/ports/raster_write.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Optional

import numpy as np

from ..contracts.geo import CRSRef, GeoTransform

URI = str

@runtime_checkable
class RasterWriterPort(Protocol):
    """
    Escritor de rasters (GeoTIFF). Usado para exportar mapas de clases.
    """
    def write(self, uri: URI, data: np.ndarray, transform: GeoTransform, *, crs: Optional[CRSRef] = None,
              nodata: Optional[float] = None, compress: Optional[str] = None) -> URI: ...

__all__ = ["RasterWriterPort", "URI"]
