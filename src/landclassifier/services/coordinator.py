# src/landclassifier/services/coordinator.py
from __future__ import annotations

"""
Coordinador de cargas concurrentes.

Pipeline explícito por lote:
  LOAD (worker) → STRETCH (worker) → COMMIT (coordinador) → NOTIFY (coordinador)

  • Un worker por solicitud en un ThreadPoolExecutor. Cada worker es dueño de
    su buffer hasta entregarlo (BandBuffer) por una cola al coordinador.
  • Solo el hilo coordinador muta la LayerCollection, el contador de lote
    (interaction_enabled) y libera buffers.
  • Un fallo no aborta a los demás workers: se registra y se devuelve como RunError.
  • Sin cancelación ni timeout: una carga colgada bloquea el cierre del lote.
"""

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..contracts.core import RunError, Stage
from ..contracts.geo import CRSRef, GeoTransform, PixelDomain
from ..contracts.products import BandBuffer, Histogram, LayerCollection, RasterBand
from ..logging_config import get_module_logger
from .band_loader import CutMode, LoadOptions, RasterBandLoader, RgbRole

logger = get_module_logger(__name__)

RGB_LAYER_NAME = "RGB"


# ----------------------
# DTOs / mensajes
# ----------------------

@dataclass(frozen=True)
class BandRequest:
    path: str
    options: LoadOptions = LoadOptions()


@dataclass(frozen=True)
class CompositeSpec:
    """Pide un compuesto RGB con las solicitudes que traen rgb_role."""
    satellite_type: Optional[str] = None
    contrast_enhancement: bool = True


@dataclass(frozen=True)
class BandsLoaded:
    satellite_type: Optional[str]
    rgb_contrast_enhancement: bool
    are_bands_unscaled: bool
    projection: CRSRef
    screen_to_world: GeoTransform


@dataclass(frozen=True)
class BatchResult:
    committed: Tuple[str, ...]
    errors: Tuple[RunError, ...]

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class _WorkerResult:
    index: int
    request: BandRequest
    handle: Optional[BandBuffer] = None
    channel: Optional[np.ndarray] = None
    error: Optional[RunError] = None


# ----------------------
# Coordinador
# ----------------------

class ConcurrencyCoordinator:

    def __init__(self, loader: RasterBandLoader, layers: Optional[LayerCollection] = None,
                 max_workers: Optional[int] = None):
        self.loader = loader
        self.max_workers = max_workers
        self._owner = threading.get_ident()
        self.layers = layers if layers is not None else LayerCollection(owner=self._owner)
        self._pending = 0
        self._interaction_listeners: List[Callable[[bool], None]] = []
        self._loaded_listeners: List[Callable[[BandsLoaded], None]] = []

    # ------ señal de interacción ------
    @property
    def interaction_enabled(self) -> bool:
        return self._pending == 0

    def on_interaction_changed(self, callback: Callable[[bool], None]) -> None:
        self._interaction_listeners.append(callback)

    def on_bands_loaded(self, callback: Callable[[BandsLoaded], None]) -> None:
        self._loaded_listeners.append(callback)

    def _add_pending(self, delta: int) -> None:
        was_enabled = self.interaction_enabled
        self._pending += delta
        if was_enabled != self.interaction_enabled:
            for cb in self._interaction_listeners:
                cb(self.interaction_enabled)

    def _check_owner(self) -> None:
        if threading.get_ident() != self._owner:
            raise RuntimeError("El coordinador solo puede usarse desde su hilo dueño")

    # ------ API pública ------
    def load_batch(self, requests: Sequence[BandRequest], composite: Optional[CompositeSpec] = None) -> BatchResult:
        self._check_owner()
        requests = tuple(requests)
        committed: List[str] = []
        errors: List[RunError] = []
        committed_by_req: Dict[int, RasterBand] = {}
        channels: Dict[RgbRole, np.ndarray] = {}
        # +1: el lote sigue abierto hasta cerrar COMMIT del compuesto y NOTIFY
        self._add_pending(len(requests) + 1)
        try:
            channel: "queue.Queue[_WorkerResult]" = queue.Queue()
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="band-load") as pool:
                for i, req in enumerate(requests):
                    pool.submit(self._worker, i, req, composite, channel)
                for _ in requests:
                    res = channel.get()
                    try:
                        band = self._commit(res, errors)
                        if band is not None:
                            committed.append(band.name)
                            committed_by_req[res.index] = band
                            if res.channel is not None and res.request.options.rgb_role is not None:
                                channels[res.request.options.rgb_role] = res.channel
                    finally:
                        self._add_pending(-1)

            # orden de solicitud, no de llegada
            in_order = [committed_by_req[i] for i in range(len(requests)) if i in committed_by_req]
            if composite is not None:
                if channels:
                    rgb_band = next((committed_by_req[i] for i, r in enumerate(requests)
                                     if r.options.rgb_role is not None and i in committed_by_req), None)
                    rgb_transform = rgb_band.transform if rgb_band is not None else None
                    self._commit_composite(channels, rgb_transform, errors)
                self._notify(in_order, requests, composite, errors)
        finally:
            self._add_pending(-1)

        logger.info("Lote terminado: %d capas, %d errores", len(committed), len(errors))
        return BatchResult(committed=tuple(committed), errors=tuple(errors))

    def load_layers(self, requests: Sequence[BandRequest]) -> BatchResult:
        """Capas flotantes (p.ej. DEM derivados): dominio FLOAT32 y corte min/max."""
        float_requests = [
            replace(r, options=replace(r.options, domain=PixelDomain.FLOAT32, cut_mode=CutMode.MINMAX))
            for r in requests
        ]
        return self.load_batch(float_requests)

    def remove_layer(self, name: str) -> None:
        self._check_owner()
        self.layers.remove(name)
        logger.info("Capa %s removida y liberada", name)

    # ------ Etapas ------
    def _worker(self, index: int, req: BandRequest, composite: Optional[CompositeSpec], out: "queue.Queue[_WorkerResult]") -> None:
        stage = Stage.LOAD
        result = _WorkerResult(index=index, request=req)
        try:
            opts = req.options
            band = self.loader.decode(req.path, opts)
            stage = Stage.STRETCH
            rgb = None
            if composite is not None and opts.rgb_role is not None:
                if composite.contrast_enhancement:
                    rgb = self.loader.stretcher.byte_channel(band.data, band.min_cut, band.max_cut)
                else:
                    rgb = self.loader.stretcher.byte_channel(band.data, 0.0, band.domain.max_value)
            if opts.contrast_enhancement:
                self.loader.enhance(band, opts.cut_mode)
            result = _WorkerResult(index=index, request=req, handle=BandBuffer(band), channel=rgb)
        except Exception as e:
            logger.error("Fallo en %s (%s): %s", req.path, stage.value, e)
            result = _WorkerResult(
                index=index,
                request=req,
                error=RunError(stage=stage, message=str(e), source=req.path, detail=type(e).__name__),
            )
        finally:
            out.put(result)

    def _commit(self, res: _WorkerResult, errors: List[RunError]) -> Optional[RasterBand]:
        if res.error is not None:
            errors.append(res.error)
            return None
        assert res.handle is not None
        try:
            band = res.handle.take()
            self.layers.add_sorted(band)
            return band
        except Exception as e:
            logger.error("Fallo confirmando %s: %s", res.request.path, e)
            errors.append(RunError(stage=Stage.COMMIT, message=str(e), source=res.request.path,
                                   detail=type(e).__name__))
            return None
        finally:
            res.handle.release()

    def _commit_composite(self, channels: Dict[RgbRole, np.ndarray], transform: Optional[GeoTransform],
                          errors: List[RunError]) -> None:
        shapes = {c.shape for c in channels.values()}
        if len(shapes) != 1:
            errors.append(RunError(stage=Stage.COMMIT, message=f"Canales RGB de distinto tamaño: {sorted(shapes)}",
                                   source=RGB_LAYER_NAME))
            return
        h, w = shapes.pop()
        bgra = np.zeros((h, w, 4), dtype=np.uint8)
        for role, ch in channels.items():
            bgra[:, :, role.bgra_offset] = ch
        bgra[:, :, 3] = 255
        layer = RasterBand(
            name=RGB_LAYER_NAME,
            data=bgra,
            domain=PixelDomain.UINT8,
            transform=transform or GeoTransform.identity(),
            min_value=0.0,
            max_value=255.0,
            histogram=Histogram(np.zeros(0, dtype=np.int64), 0.0),
            is_feature=False,
            can_change_is_feature=False,
            is_rgb=True,
        )
        self.layers.insert(0, layer)

    def _notify(self, committed: Sequence[RasterBand], requests: Sequence[BandRequest], composite: CompositeSpec,
                errors: List[RunError]) -> None:
        # primera banda confirmada en ESTE lote, en orden de solicitud
        if not committed:
            errors.append(RunError(stage=Stage.NOTIFY, message="Ninguna banda cargada: sin BandsLoaded"))
            return
        first = committed[0]
        msg = BandsLoaded(
            satellite_type=composite.satellite_type,
            rgb_contrast_enhancement=composite.contrast_enhancement,
            are_bands_unscaled=not any(r.options.contrast_enhancement for r in requests),
            projection=first.projection,
            screen_to_world=GeoTransform.screen_to_world(first.transform.coefficients),
        )
        for cb in self._loaded_listeners:
            cb(msg)


__all__ = [
    "ConcurrencyCoordinator", "BandRequest", "CompositeSpec", "BandsLoaded", "BatchResult", "RGB_LAYER_NAME",
]
