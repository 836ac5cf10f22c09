# src/landclassifier/services/training_service.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ..contracts.core import LabeledSample
from ..contracts.errors import TrainingError
from ..contracts.products import RasterBand
from ..logging_config import get_module_logger
from ..ports.classifier import LandCoverClassifierPort
from .feature_assembler import FeatureLayout, FeatureVectorAssembler, WorldPoint

logger = get_module_logger(__name__)


@dataclass
class TrainingDataset:
    X: np.ndarray  # (N, F) float64
    y: np.ndarray  # (N,) int64
    feature_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TrainingSession:
    """Resultado de un entrenamiento: layout congelado + muestras usadas."""
    layout: FeatureLayout
    samples: Tuple[LabeledSample, ...]


@dataclass
class TrainingService:
    """
    Preparación de datos y entrenamiento (puro dominio):
    - (punto, clase) -> LabeledSample con layout congelado
    - Conversión a matrices X/y
    - Split reproducible
    """
    assembler: FeatureVectorAssembler = field(default_factory=FeatureVectorAssembler)

    def train(
        self,
        classifier: LandCoverClassifierPort,
        bands: Iterable[RasterBand],
        picks: Iterable[Tuple[WorldPoint, int]],
    ) -> TrainingSession:
        bands = tuple(bands)
        layout = self.assembler.snapshot(bands)
        samples = tuple(self.assembler.labeled_samples(bands, picks, layout))
        classifier.train(samples)
        logger.info("Entrenamiento con %d muestras sobre %s", len(samples), layout.band_names)
        return TrainingSession(layout=layout, samples=samples)

    def build_dataset(self, samples: Sequence[LabeledSample], feature_names: Tuple[str, ...] = ()) -> TrainingDataset:
        if not samples:
            raise TrainingError("Conjunto de muestras vacío")
        X = np.array([s.vector.intensities for s in samples], dtype=np.float64)
        y = np.array([int(s.label) for s in samples], dtype=np.int64)
        return TrainingDataset(
            X=X,
            y=y,
            feature_names=feature_names or tuple(f"f{i}" for i in range(X.shape[1])),
        )

    def split(
        self, samples: Sequence[LabeledSample], train_ratio: float = 0.8, seed: int = 42
    ) -> tuple[List[LabeledSample], List[LabeledSample]]:
        if not 0.0 < train_ratio < 1.0:
            raise ValueError(f"train_ratio debe estar en (0, 1): {train_ratio}")
        n = len(samples)
        rng = np.random.default_rng(seed)
        idx = np.arange(n, dtype="int64")
        rng.shuffle(idx)
        ntr = int(round(train_ratio * n))
        tr = [samples[i] for i in idx[:ntr]]
        te = [samples[i] for i in idx[ntr:]]
        return tr, te
