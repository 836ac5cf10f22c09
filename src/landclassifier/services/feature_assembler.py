# src/landclassifier/services/feature_assembler.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ..contracts.core import FeatureVector, LabeledSample
from ..contracts.errors import CoordinateOutOfRangeError, DimensionError
from ..contracts.geo import GeoTransform
from ..contracts.products import RasterBand, order_by_band_number
from ..logging_config import get_module_logger

logger = get_module_logger(__name__)

WorldPoint = Tuple[float, float]

# tolerancia al redondear pixel_to_world -> world_to_pixel en bordes de celda
_EDGE_EPS = 1e-9


@dataclass(frozen=True)
class FeatureLayout:
    """Instantánea de las bandas feature activas al iniciar el entrenamiento."""
    band_names: Tuple[str, ...]
    band_numbers: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.band_names)


@dataclass(frozen=True)
class FeatureGrid:
    """Matriz (H*W, F) lista para predicción por lotes."""
    features: np.ndarray
    shape: Tuple[int, int]
    transform: GeoTransform


class FeatureVectorAssembler:
    """
    Construye vectores de largo fijo a partir de las bandas marcadas como feature.
    Orden determinista: número de banda ascendente (no el orden de carga).
    """

    def snapshot(self, bands: Iterable[RasterBand]) -> FeatureLayout:
        active = order_by_band_number([b for b in bands if b.is_feature])
        if not active:
            raise DimensionError("No hay bandas marcadas como feature")
        return FeatureLayout(
            band_names=tuple(b.name for b in active),
            band_numbers=tuple(b.band_number for b in active),
        )

    def assemble(self, bands: Iterable[RasterBand], point: WorldPoint, layout: FeatureLayout | None = None) -> FeatureVector:
        active = self._resolve(bands, layout)
        x, y = point
        values: List[float] = []
        for band in active:
            col, row = band.transform.world_to_pixel(x, y)
            c = math.floor(col + _EDGE_EPS)
            r = math.floor(row + _EDGE_EPS)
            if not band.contains_pixel(c, r):
                raise CoordinateOutOfRangeError(band.name, col, row, band.width, band.height)
            value = float(band.data[r, c])
            if not math.isfinite(value):
                raise DimensionError(f"Píxel nodata (no finito) en banda '{band.name}' en ({c}, {r})")
            values.append(value)
        return FeatureVector(intensities=tuple(values))

    def labeled_samples(
        self,
        bands: Iterable[RasterBand],
        picks: Iterable[Tuple[WorldPoint, int]],
        layout: FeatureLayout | None = None,
    ) -> List[LabeledSample]:
        """Convierte pares (punto, clase) capturados por la UI en muestras etiquetadas."""
        bands = tuple(bands)
        layout = layout or self.snapshot(bands)
        out = [
            LabeledSample(vector=self.assemble(bands, point, layout), label=int(label))
            for point, label in picks
        ]
        logger.debug("%d muestras ensambladas con layout %s", len(out), layout.band_names)
        return out

    def assemble_grid(self, bands: Iterable[RasterBand], layout: FeatureLayout | None = None) -> FeatureGrid:
        active = self._resolve(bands, layout)
        ref = active[0]
        for b in active[1:]:
            if (b.width, b.height) != (ref.width, ref.height):
                raise DimensionError(
                    f"Extensión de '{b.name}' ({b.width}x{b.height}) != '{ref.name}' ({ref.width}x{ref.height})"
                )
            if not b.transform.is_close(ref.transform):
                raise DimensionError(f"GeoTransform de '{b.name}' no coincide con '{ref.name}'")
        features = np.stack([b.data.reshape(-1) for b in active], axis=1)
        return FeatureGrid(features=features, shape=(ref.height, ref.width), transform=ref.transform)

    # ------ Internos ------
    def _resolve(self, bands: Iterable[RasterBand], layout: FeatureLayout | None) -> Sequence[RasterBand]:
        bands = tuple(bands)
        if layout is None:
            layout = self.snapshot(bands)
        by_name = {b.name: b for b in bands}
        missing = [n for n in layout.band_names if n not in by_name]
        if missing:
            raise DimensionError(f"Bandas del layout ausentes: {missing}")
        active = [by_name[n] for n in layout.band_names]
        for b in active:
            if b.released or b.data.ndim != 2:
                raise DimensionError(f"Banda '{b.name}' no utilizable como feature")
        return active


__all__ = ["FeatureVectorAssembler", "FeatureLayout", "FeatureGrid", "WorldPoint"]
