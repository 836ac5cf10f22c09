# src/landclassifier/services/contrast_stretcher.py
from __future__ import annotations

"""
Contrast Stretcher (realce por percentiles)

  • compute_cutoffs(): recorre el histograma acumulando conteos y toma el
    primer bucket que alcanza total*lo (minCut) y total*hi (maxCut).
  • apply(): reescala in place con mapeo lineal acotado
        out = clamp((in - minCut) / (maxCut - minCut) * domainMax, 0, domainMax)
    particionando el buffer y procesando particiones en paralelo.
  • byte_channel(): canal uint8 para el compuesto RGB (0..254).

Histograma vacío o maxCut <= minCut: se emite DegenerateStretchWarning y
NO se aplica realce.
"""

import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple

import numpy as np

from ..contracts.errors import DegenerateStretchWarning, FormatError
from ..contracts.geo import PixelDomain
from ..contracts.products import Histogram
from ..logging_config import get_module_logger

logger = get_module_logger(__name__)

# Por debajo de este tamaño no vale la pena particionar
_MIN_PARTITION_PIXELS = 4096


class Cutoffs(NamedTuple):
    min_cut: float
    max_cut: float

    @property
    def is_degenerate(self) -> bool:
        return self.max_cut <= self.min_cut


def compute_cutoffs(
    histogram: Sequence[int] | np.ndarray,
    min_value: float,
    lo_percentile: float = 0.02,
    hi_percentile: float = 0.98,
    bucket_width: float = 1.0,
    *,
    warn: bool = True,
) -> Cutoffs:
    counts = np.asarray(histogram, dtype=np.int64).reshape(-1)
    total = int(counts.sum()) if counts.size else 0
    if total <= 0:
        if warn:
            warnings.warn("Histograma vacío: sin realce de contraste", DegenerateStretchWarning, stacklevel=2)
        return Cutoffs(float(min_value), float(min_value))

    cum = np.cumsum(counts)
    # primer bucket cuyo acumulado alcanza el umbral
    lo_idx = int(np.argmax(cum >= total * lo_percentile))
    hi_idx = int(np.argmax(cum >= total * hi_percentile))
    cut = Cutoffs(min_value + lo_idx * bucket_width, min_value + hi_idx * bucket_width)
    if cut.is_degenerate and warn:
        warnings.warn(
            f"maxCut ({cut.max_cut}) <= minCut ({cut.min_cut}): sin realce de contraste",
            DegenerateStretchWarning,
            stacklevel=2,
        )
    return cut


def cutoffs_from_histogram(
    h: Histogram, lo_percentile: float = 0.02, hi_percentile: float = 0.98, *, warn: bool = True
) -> Cutoffs:
    return compute_cutoffs(h.counts, h.origin, lo_percentile, hi_percentile, h.bucket_width, warn=warn)


def _partitions(n: int, parts: int) -> Tuple[Tuple[int, int], ...]:
    parts = max(1, min(parts, n // _MIN_PARTITION_PIXELS or 1))
    edges = np.linspace(0, n, parts + 1).astype(np.int64)
    return tuple((int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a)


@dataclass(frozen=True)
class ContrastStretcher:
    partitions: int = 4
    lo_percentile: float = 0.02
    hi_percentile: float = 0.98

    def compute_cutoffs(self, histogram: Histogram, *, warn: bool = True) -> Cutoffs:
        return cutoffs_from_histogram(histogram, self.lo_percentile, self.hi_percentile, warn=warn)

    def apply(self, buffer: np.ndarray, domain: PixelDomain, min_cut: float, max_cut: float) -> bool:
        """
        Reescala `buffer` in place. Devuelve False (y avisa) si el corte es degenerado.
        """
        if buffer.dtype != domain.dtype:
            raise FormatError(f"buffer {buffer.dtype} no coincide con dominio {domain.value}")
        if not buffer.flags.c_contiguous or not buffer.flags.writeable:
            raise ValueError("El buffer debe ser C-contiguo y escribible")
        if max_cut <= min_cut:
            warnings.warn(
                f"maxCut ({max_cut}) <= minCut ({min_cut}): sin realce de contraste",
                DegenerateStretchWarning,
                stacklevel=2,
            )
            return False

        flat = buffer.reshape(-1)
        dmax = domain.max_value
        scale = float(max_cut) - float(min_cut)

        def _stretch(span: Tuple[int, int]) -> None:
            lo, hi = span
            seg = flat[lo:hi].astype(np.float64)
            seg -= min_cut
            seg *= dmax / scale
            np.clip(seg, 0.0, dmax, out=seg)
            if not domain.is_float:
                np.rint(seg, out=seg)
            flat[lo:hi] = seg.astype(domain.dtype)

        spans = _partitions(flat.size, self.partitions)
        if not spans:
            return True
        if len(spans) == 1:
            _stretch(spans[0])
        else:
            # Píxeles independientes: particiones disjuntas, sin sincronización
            with ThreadPoolExecutor(max_workers=len(spans), thread_name_prefix="stretch") as pool:
                for fut in [pool.submit(_stretch, s) for s in spans]:
                    fut.result()
        logger.debug("stretch [%s, %s] sobre %d px en %d particiones", min_cut, max_cut, flat.size, len(spans))
        return True

    @staticmethod
    def byte_channel(buffer: np.ndarray, min_cut: float, max_cut: float) -> np.ndarray:
        """Canal 8 bits del compuesto RGB, acotado a [0, 254] y truncado."""
        if max_cut <= min_cut:
            warnings.warn(
                f"maxCut ({max_cut}) <= minCut ({min_cut}): canal RGB en cero",
                DegenerateStretchWarning,
                stacklevel=2,
            )
            return np.zeros(buffer.shape, dtype=np.uint8)
        v = (buffer.astype(np.float64) - min_cut) / (float(max_cut) - float(min_cut)) * 255.0
        return np.clip(v, 0.0, 254.0).astype(np.uint8)


__all__ = ["Cutoffs", "compute_cutoffs", "cutoffs_from_histogram", "ContrastStretcher"]
