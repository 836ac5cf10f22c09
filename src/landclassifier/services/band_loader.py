# src/landclassifier/services/band_loader.py
from __future__ import annotations

"""
Raster Band Loader

Pipeline por banda (sin estado compartido; apto para invocación concurrente):
  READ (RasterReaderPort) → DOMAIN → SCAN (un único recorrido: min/max/histograma)
  → CUTOFFS → (STRETCH opcional)
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from ..contracts.errors import FormatError, RasterIOError
from ..contracts.geo import GeoTransform, PixelDomain
from ..contracts.products import Histogram, RasterBand
from ..ports.raster_read import RasterReaderPort
from ..logging_config import get_module_logger
from .contrast_stretcher import ContrastStretcher, Cutoffs

logger = get_module_logger(__name__)


class CutMode(str, Enum):
    PERCENTILE = "percentile"   # bandas satelitales: cortes 2%-98%
    MINMAX = "minmax"           # capas flotantes: min/max de la banda


class RgbRole(str, Enum):
    BLUE = "B"
    GREEN = "G"
    RED = "R"

    @property
    def bgra_offset(self) -> int:
        return {"B": 0, "G": 1, "R": 2}[self.value]


@dataclass(frozen=True)
class LoadOptions:
    name: Optional[str] = None           # si None -> nombre de archivo
    band_number: int = 0
    band_index: Optional[int] = None     # índice dentro del dataset (1-based)
    domain: Optional[PixelDomain] = None # forzar dominio (p.ej. FLOAT32 en capas)
    contrast_enhancement: bool = False
    cut_mode: CutMode = CutMode.PERCENTILE
    is_feature: bool = True
    can_change_is_feature: bool = True
    rgb_role: Optional[RgbRole] = None


@dataclass
class RasterBandLoader:
    reader: RasterReaderPort
    stretcher: ContrastStretcher = field(default_factory=ContrastStretcher)
    max_float_buckets: int = 65536

    # ------ API pública ------
    def load(self, path: str | Path, options: LoadOptions = LoadOptions()) -> RasterBand:
        uri = str(path)
        band = self.decode(uri, options)
        if options.contrast_enhancement:
            self.enhance(band, options.cut_mode)
        return band

    def decode(self, uri: str, options: LoadOptions = LoadOptions()) -> RasterBand:
        """READ + SCAN: banda sin realce, con histograma y cortes calculados."""
        try:
            decoded = self.reader.read(uri, options.band_index)
        except RasterIOError:
            raise
        except OSError as e:
            raise RasterIOError(f"No se pudo abrir {uri}: {e}") from e

        if decoded.data.ndim != 2:
            raise FormatError(f"{uri}: se esperaba banda 2D, ndim={decoded.data.ndim}")
        domain = options.domain or PixelDomain.from_dtype(decoded.data.dtype)
        # Copia propia, contigua y escribible: el worker es dueño exclusivo del buffer
        data = np.require(_coerce(decoded.data, domain, uri), requirements=["C", "W", "O"])

        min_value, max_value, hist = self._scan(data, domain)
        cuts = self.stretcher.compute_cutoffs(hist, warn=False)
        band = RasterBand(
            name=options.name or os.path.basename(uri),
            data=data,
            domain=domain,
            transform=GeoTransform(decoded.coefficients),
            min_value=min_value,
            max_value=max_value,
            histogram=hist,
            path=uri,
            band_number=options.band_number,
            projection=decoded.projection,
            min_cut=cuts.min_cut,
            max_cut=cuts.max_cut,
            is_feature=options.is_feature,
            can_change_is_feature=options.can_change_is_feature,
        )
        logger.info(
            "Banda %s cargada (%dx%d %s, min=%s max=%s, cortes=[%s, %s])",
            band.name, band.width, band.height, domain.value, min_value, max_value, cuts.min_cut, cuts.max_cut,
        )
        return band

    def enhance(self, band: RasterBand, cut_mode: CutMode = CutMode.PERCENTILE) -> bool:
        """STRETCH in place. Corte degenerado -> aviso y banda intacta."""
        if cut_mode is CutMode.MINMAX:
            cuts = Cutoffs(band.min_value, band.max_value)
        else:
            cuts = self.stretcher.compute_cutoffs(band.histogram)
        applied = self.stretcher.apply(band.data, band.domain, cuts.min_cut, cuts.max_cut)
        if applied:
            band.min_cut, band.max_cut = cuts
            band.enhanced = True
        else:
            logger.warning("Banda %s: corte degenerado %s, sin realce", band.name, tuple(cuts))
        return applied

    # ------ Internos ------
    def _scan(self, data: np.ndarray, domain: PixelDomain) -> Tuple[float, float, Histogram]:
        if data.size == 0:
            return 0.0, 0.0, Histogram(np.zeros(0, dtype=np.int64), 0.0)
        if not domain.is_float:
            # Un único recorrido: bincount entrega histograma, y de él min/max
            full = np.bincount(data.ravel())
            nz = np.flatnonzero(full)
            lo, hi = int(nz[0]), int(nz[-1])
            return float(lo), float(hi), Histogram(full[lo:hi + 1].astype(np.int64), float(lo))

        vals = data[np.isfinite(data)]
        if vals.size == 0:
            return 0.0, 0.0, Histogram(np.zeros(0, dtype=np.int64), 0.0)
        vmin, vmax = float(vals.min()), float(vals.max())
        origin = float(np.floor(vmin))
        nb = int(np.floor(vmax) - origin) + 1
        width = 1.0
        if nb > self.max_float_buckets:
            nb = self.max_float_buckets
            width = (vmax - origin) / nb
        counts, _ = np.histogram(vals, bins=nb, range=(origin, origin + nb * width))
        return vmin, vmax, Histogram(counts.astype(np.int64), origin, width)


def _coerce(data: np.ndarray, domain: PixelDomain, uri: str) -> np.ndarray:
    if data.dtype == domain.dtype:
        return data
    if domain.is_float and data.dtype.kind in "uif":
        return data.astype(np.float32)
    if domain is PixelDomain.UINT16 and data.dtype == np.uint8:
        return data.astype(np.uint16)
    raise FormatError(f"{uri}: no se puede leer {data.dtype} como {domain.value}")


__all__ = ["RasterBandLoader", "LoadOptions", "CutMode", "RgbRole"]
