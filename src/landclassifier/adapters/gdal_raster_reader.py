# src/landclassifier/adapters/gdal_raster_reader.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import math
import os

import rasterio
from rasterio.errors import RasterioIOError

try:  # GDAL path (opcional)
    from osgeo import gdal  # type: ignore
    _HAS_GDAL = True
except Exception:  # pragma: no cover
    _HAS_GDAL = False

from ..contracts.errors import RasterIOError
from ..contracts.geo import CRSRef
from ..logging_config import get_module_logger
from ..ports.raster_read import DecodedRaster, RasterReaderPort

logger = get_module_logger(__name__)


def _rasterio_crs_to_crsref(crs_obj) -> CRSRef:
    """Convierte rasterio CRS → CRSRef (intenta EPSG, si no WKT, si no vacío)."""
    if not crs_obj:
        return CRSRef()
    try:
        epsg = crs_obj.to_epsg()
    except Exception:
        epsg = None
    if epsg is not None:
        return CRSRef.from_epsg(int(epsg))
    wkt = crs_obj.to_wkt()
    return CRSRef.from_wkt(wkt) if wkt else CRSRef()


@dataclass(frozen=True)
class GdalRasterReader(RasterReaderPort):
    """Decodificador de bandas (GeoTIFF/JP2). rasterio por defecto; GDAL con backend="gdal".

    Regla: `read()` devuelve **una** banda 2D y sus 6 coeficientes GDAL
    (x0, px, rx, y0, ry, py). `band_index` es 1-based.
    """
    backend: str = "rasterio"

    def __post_init__(self):
        if self.backend not in ("rasterio", "gdal"):
            raise ValueError(f"backend desconocido: {self.backend}")
        if self.backend == "gdal" and not _HAS_GDAL:
            raise RuntimeError("backend='gdal' requiere osgeo (pip install GDAL)")

    # --------------- rasterio ---------------
    def _read_with_rasterio(self, uri: str, band_index: int | None) -> DecodedRaster:
        try:
            with rasterio.open(uri) as ds:
                arr = ds.read(1 if band_index is None else int(band_index))
                a = ds.transform
                return DecodedRaster(
                    data=arr,
                    coefficients=(a.c, a.a, a.b, a.f, a.d, a.e),
                    projection=_rasterio_crs_to_crsref(ds.crs),
                )
        except (RasterioIOError, IndexError) as e:
            raise RasterIOError(f"No se pudo leer {uri}: {e}") from e

    def _size_with_rasterio(self, uri: str) -> Tuple[int, int]:
        try:
            with rasterio.open(uri) as ds:
                return ds.width, ds.height
        except RasterioIOError as e:
            raise RasterIOError(f"No se pudo abrir {uri}: {e}") from e

    # --------------- GDAL ---------------
    def _open_gdal(self, uri: str):
        ds = gdal.Open(uri, gdal.GA_ReadOnly)
        if ds is None:
            raise RasterIOError(f"GDAL no pudo abrir {uri}")
        return ds

    def _read_with_gdal(self, uri: str, band_index: int | None) -> DecodedRaster:
        ds = self._open_gdal(uri)
        try:
            idx = 1 if band_index is None else int(band_index)
            if not 1 <= idx <= ds.RasterCount:
                raise RasterIOError(f"{uri}: banda {idx} fuera de [1, {ds.RasterCount}]")
            arr = ds.GetRasterBand(idx).ReadAsArray()
            if arr is None:
                raise RasterIOError(f"{uri}: lectura de banda {idx} falló")
            gt = ds.GetGeoTransform()
            srs_wkt = ds.GetProjection() or None
            return DecodedRaster(
                data=arr,
                coefficients=(gt[0], gt[1], gt[2], gt[3], gt[4], gt[5]),
                projection=CRSRef.from_wkt(srs_wkt) if srs_wkt else CRSRef(),
            )
        finally:
            ds = None  # cierre explícito

    def _size_with_gdal(self, uri: str) -> Tuple[int, int]:
        ds = self._open_gdal(uri)
        try:
            return ds.RasterXSize, ds.RasterYSize
        finally:
            ds = None

    # --------------- RasterReaderPort ---------------
    def read(self, uri: str, band_index: int | None = None) -> DecodedRaster:
        if not self.exists(uri):
            raise RasterIOError(f"No existe: {uri}")
        if self.backend == "gdal":
            raster = self._read_with_gdal(uri, band_index)
        else:
            raster = self._read_with_rasterio(uri, band_index)
        if any(not math.isfinite(c) for c in raster.coefficients):
            raise RasterIOError(f"{uri}: geotransform no finito {raster.coefficients}")
        logger.debug("Leído %s (%dx%d, %s)", uri, raster.width, raster.height, raster.data.dtype)
        return raster

    def size(self, uri: str) -> Tuple[int, int]:
        if self.backend == "gdal":
            return self._size_with_gdal(uri)
        return self._size_with_rasterio(uri)

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)


__all__ = ["GdalRasterReader"]
