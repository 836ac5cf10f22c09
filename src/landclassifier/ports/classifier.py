# src/landclassifier/ports/classifier.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Sequence

import numpy as np

from ..contracts.core import FeatureVector, LabeledSample


@runtime_checkable
class LandCoverClassifierPort(Protocol):
    """
    Clasificador de cobertura por píxel.
    Reglas:
      - train() es bloqueante y serializado por instancia; si falla, el
        modelo anterior (si existe) sigue vigente.
      - predict() usa una única instantánea del modelo por llamada.
      - predict_probability() es opcional: consultar `supports_probability`.
    """
    @property
    def is_trained(self) -> bool: ...
    @property
    def feature_count(self) -> int: ...
    @property
    def supports_probability(self) -> bool: ...

    def train(self, samples: Sequence[LabeledSample]) -> None: ...
    def predict(self, vector: FeatureVector) -> int: ...
    def predict_probability(self, vector: FeatureVector) -> float: ...
    def predict_many(self, features: np.ndarray) -> np.ndarray: ...
    def name(self) -> str: ...

__all__ = ["LandCoverClassifierPort"]
