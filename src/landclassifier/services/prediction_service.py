# src/landclassifier/services/prediction_service.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np

from ..contracts.core import ClassLabel
from ..contracts.products import ClassMap, RasterBand
from ..logging_config import get_module_logger
from ..ports.classifier import LandCoverClassifierPort
from .feature_assembler import FeatureLayout, FeatureVectorAssembler, WorldPoint

logger = get_module_logger(__name__)


@dataclass
class PredictionService:
    """
    Predicción por punto o por raster completo. El layout debe ser el mismo
    congelado al entrenar (TrainingSession.layout).
    """
    assembler: FeatureVectorAssembler = field(default_factory=FeatureVectorAssembler)

    def predict_point(self, classifier: LandCoverClassifierPort, bands: Iterable[RasterBand],
                      point: WorldPoint, layout: FeatureLayout) -> int:
        return classifier.predict(self.assembler.assemble(bands, point, layout))

    def predict_raster(
        self,
        classifier: LandCoverClassifierPort,
        bands: Iterable[RasterBand],
        layout: FeatureLayout,
        classes: Optional[Sequence[ClassLabel]] = None,
    ) -> ClassMap:
        grid = self.assembler.assemble_grid(bands, layout)
        # píxeles con algún feature no finito (nodata) no se clasifican
        valid = np.isfinite(grid.features).all(axis=1)
        predicted = classifier.predict_many(grid.features[valid])
        dtype = np.uint16 if predicted.max(initial=0) >= 255 else np.uint8
        nodata = int(np.iinfo(dtype).max)
        flat = np.full(valid.shape[0], nodata, dtype=dtype)
        flat[valid] = predicted
        labels = flat.reshape(grid.shape)
        counts = self._counts(labels[labels != nodata])
        total = int(valid.sum())
        if total < valid.size:
            logger.warning("%d píxeles nodata marcados con etiqueta %d", valid.size - total, nodata)
        palette: Mapping[int, tuple[int, int, int]] = {}
        if classes:
            palette = {int(c.id): c.color.as_tuple() for c in classes}
        logger.info("Mapa de clases %dx%d: %s", grid.shape[1], grid.shape[0], dict(counts))
        return ClassMap(
            labels=labels,
            transform=grid.transform,
            counts=MappingProxyType(counts),
            percents=MappingProxyType(self._to_percents(counts, total=total)),
            palette=MappingProxyType(dict(palette)),
            nodata=nodata,
        )

    @staticmethod
    def _counts(labels: np.ndarray) -> dict[int, int]:
        vals, counts = np.unique(labels, return_counts=True)
        return {int(v): int(c) for v, c in zip(vals.tolist(), counts.tolist())}

    @staticmethod
    def _to_percents(counts: Mapping[int, int], *, total: int) -> dict[int, float]:
        if total <= 0:
            return {int(k): 0.0 for k in counts}
        return {int(k): (v / float(total)) * 100.0 for k, v in counts.items()}


__all__ = ["PredictionService"]
