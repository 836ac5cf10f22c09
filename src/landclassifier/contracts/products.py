# src/landclassifier/contracts/products.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .geo import CRSRef, GeoTransform, PixelDomain


@dataclass(frozen=True)
class Histogram:
    """Conteos por bucket; bucket i cubre [origin + i*w, origin + (i+1)*w)."""
    counts: np.ndarray
    origin: float
    bucket_width: float = 1.0

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def is_empty(self) -> bool:
        return self.counts.size == 0 or self.total == 0


@dataclass
class RasterBand:
    """
    Banda decodificada. La crea RasterBandLoader, la muta (in place) el
    ContrastStretcher y pasa a ser propiedad del coordinador al confirmarse.
    """
    name: str
    data: np.ndarray
    domain: PixelDomain
    transform: GeoTransform
    min_value: float
    max_value: float
    histogram: Histogram
    path: Optional[str] = None
    band_number: int = 0
    projection: CRSRef = CRSRef()
    min_cut: Optional[float] = None
    max_cut: Optional[float] = None
    enhanced: bool = False
    is_feature: bool = True
    can_change_is_feature: bool = True
    is_rgb: bool = False
    is_visible: bool = False

    def __post_init__(self):
        if self.data.ndim not in (2, 3):
            raise ValueError(f"Se esperaba buffer 2D (o 3D para compuestos), ndim={self.data.ndim}")

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def stride(self) -> int:
        return self.width * self.domain.byte_width

    @property
    def meters_per_pixel(self) -> float:
        return abs(self.transform.x_resolution)

    @property
    def upper_left(self) -> Tuple[float, float]:
        return self.transform.upper_left()

    @property
    def bottom_right(self) -> Tuple[float, float]:
        return self.transform.bottom_right(self.width, self.height)

    @property
    def released(self) -> bool:
        return self.data.size == 0

    def contains_pixel(self, col: float, row: float) -> bool:
        return 0 <= col < self.width and 0 <= row < self.height

    def release(self) -> None:
        self.data = np.empty((0, 0), dtype=self.data.dtype)


class BandBuffer:
    """
    Handle de propiedad exclusiva (move-only) sobre una banda recién decodificada.
    El worker lo crea; el coordinador hace `take()` una sola vez.
    """

    def __init__(self, band: RasterBand):
        self._band: Optional[RasterBand] = band
        self._lock = threading.Lock()

    @property
    def is_spent(self) -> bool:
        return self._band is None

    def take(self) -> RasterBand:
        with self._lock:
            if self._band is None:
                raise RuntimeError("BandBuffer ya transferido o liberado")
            band, self._band = self._band, None
        return band

    def release(self) -> None:
        with self._lock:
            band, self._band = self._band, None
        if band is not None:
            band.release()


class LayerCollection:
    """
    Colección ordenada de capas. Solo el hilo dueño (el coordinador) puede mutarla.
    """

    def __init__(self, owner: Optional[int] = None):
        self._layers: List[RasterBand] = []
        self._owner = owner if owner is not None else threading.get_ident()

    def _check_owner(self) -> None:
        if threading.get_ident() != self._owner:
            raise RuntimeError("LayerCollection solo puede mutarse desde el hilo coordinador")

    def add_sorted(self, band: RasterBand) -> int:
        """Inserta por nombre (comparación ordinal); devuelve el índice."""
        self._check_owner()
        idx = len(self._layers)
        for i, existing in enumerate(self._layers):
            if band.name < existing.name:
                idx = i
                break
        self._layers.insert(idx, band)
        return idx

    def insert(self, index: int, band: RasterBand) -> None:
        self._check_owner()
        self._layers.insert(index, band)

    def remove(self, name: str) -> RasterBand:
        self._check_owner()
        for i, b in enumerate(self._layers):
            if b.name == name:
                band = self._layers.pop(i)
                band.release()
                return band
        raise KeyError(f"Capa no encontrada: {name}")

    def get(self, name: str) -> RasterBand:
        for b in self._layers:
            if b.name == name:
                return b
        raise KeyError(f"Capa no encontrada: {name}")

    def names(self) -> Tuple[str, ...]:
        return tuple(b.name for b in self._layers)

    def feature_bands(self) -> Tuple[RasterBand, ...]:
        return tuple(sorted((b for b in self._layers if b.is_feature), key=lambda b: b.band_number))

    def has_features(self) -> bool:
        return any(b.is_feature for b in self._layers)

    def __iter__(self) -> Iterator[RasterBand]:
        return iter(tuple(self._layers))

    def __len__(self) -> int:
        return len(self._layers)


@dataclass(frozen=True)
class ClassMap:
    """Producto discreto de clases por píxel."""
    labels: np.ndarray
    transform: GeoTransform
    counts: Mapping[int, int]
    percents: Mapping[int, float]
    palette: Mapping[int, Tuple[int, int, int]] = field(default_factory=lambda: MappingProxyType({}))
    nodata: Optional[int] = None  # etiqueta de píxeles sin dato (excluida de counts)

    def to_rgb(self) -> np.ndarray:
        h, w = self.labels.shape
        rgb = np.zeros((h, w, 3), dtype=np.uint8)
        for cid, color in self.palette.items():
            rgb[self.labels == cid] = color
        return rgb


def order_by_band_number(bands: Sequence[RasterBand]) -> Tuple[RasterBand, ...]:
    return tuple(sorted(bands, key=lambda b: (b.band_number, b.name)))


__all__ = [
    "Histogram", "RasterBand", "BandBuffer", "LayerCollection", "ClassMap",
    "order_by_band_number",
]
