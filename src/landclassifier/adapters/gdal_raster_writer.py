# src/landclassifier/adapters/gdal_raster_writer.py
from __future__ import annotations

import os
from typing import Optional

import numpy as np
import rasterio
from rasterio.transform import Affine

from ..contracts.geo import CRSRef, GeoTransform
from ..logging_config import get_module_logger
from ..ports.raster_write import RasterWriterPort

logger = get_module_logger(__name__)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _to_affine(t: GeoTransform) -> Affine:
    x0, px, rx, y0, ry, py = t.coefficients
    return Affine(px, rx, x0, ry, py, y0)


class GdalRasterWriter(RasterWriterPort):
    """GeoTIFF vía rasterio. Acepta (H, W) o (count, H, W)."""

    def write(self, uri: str, data: np.ndarray, transform: GeoTransform, *, crs: Optional[CRSRef] = None,
              nodata: Optional[float] = None, compress: Optional[str] = None) -> str:
        if data.ndim not in (2, 3):
            raise ValueError(f"Se esperaba (H, W) o (count, H, W); ndim={data.ndim}")
        _ensure_dir(uri)
        stack = data[None, ...] if data.ndim == 2 else data
        count, height, width = stack.shape
        profile = {
            "driver": "GTiff",
            "height": height,
            "width": width,
            "count": count,
            "dtype": stack.dtype,
            "transform": _to_affine(transform),
            "compress": (compress or "DEFLATE").upper(),
            "nodata": nodata,
        }
        if crs is not None and crs.epsg is not None:
            profile["crs"] = f"EPSG:{crs.epsg}"
        elif crs is not None and crs.wkt:
            profile["crs"] = crs.wkt
        with rasterio.open(uri, "w", **profile) as dst:
            for i in range(count):
                dst.write(stack[i], i + 1)
        logger.info("GeoTIFF escrito: %s (%dx%d, %d bandas)", uri, width, height, count)
        return uri


__all__ = ["GdalRasterWriter"]
