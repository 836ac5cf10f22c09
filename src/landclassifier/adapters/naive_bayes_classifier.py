# src/landclassifier/adapters/naive_bayes_classifier.py

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..contracts.core import MAX_SYMBOL_COUNT, FeatureVector, LabeledSample
from ..contracts.errors import (
    DimensionMismatchError,
    ModelNotTrainedError,
    SymbolDomainError,
    TrainingError,
)
from ..logging_config import get_module_logger
from ..ports.classifier import LandCoverClassifierPort

logger = get_module_logger(__name__)

# filas por bloque en predict_many: acota memoria (C x filas) por feature
_PREDICT_CHUNK = 1 << 18


@dataclass(frozen=True)
class NaiveBayesModel:
    """Parámetros entrenados (inmutables). Se reemplazan completos en cada train()."""
    classes: np.ndarray          # (C,) ids de clase ordenados
    log_prior: np.ndarray        # (C,)
    log_likelihood: np.ndarray   # (C, F, S)
    class_counts: np.ndarray     # (C,)

    @property
    def feature_count(self) -> int:
        return int(self.log_likelihood.shape[1])

    @property
    def symbol_count(self) -> int:
        return int(self.log_likelihood.shape[2])


def _to_symbols(values: np.ndarray) -> np.ndarray:
    # intensidades -> símbolos discretos por truncamiento
    return np.trunc(values).astype(np.int64)


class NaiveBayesClassifier(LandCoverClassifierPort):
    """
    Naive Bayes discreto: una tabla de frecuencias de símbolos por clase y feature.

    - `symbol_count` acota el dominio de cada feature (<= 65536).
    - Con `laplace=True` cada celda parte en 1: ninguna combinación símbolo/clase
      tiene probabilidad cero.
    - `classes` fija el catálogo de clases; si es None se infiere de las muestras.
    """

    def __init__(self, symbol_count: int = MAX_SYMBOL_COUNT, laplace: bool = True,
                 classes: Optional[Sequence[int]] = None):
        if not (2 <= symbol_count <= MAX_SYMBOL_COUNT):
            raise ValueError(f"symbol_count debe estar en [2, {MAX_SYMBOL_COUNT}]: {symbol_count}")
        self.symbol_count = int(symbol_count)
        self.laplace = bool(laplace)
        self._fixed_classes = None if classes is None else np.array(sorted({int(c) for c in classes}), dtype=np.int64)
        self._model: Optional[NaiveBayesModel] = None
        self._train_lock = threading.Lock()

    def name(self) -> str:
        return "naive-bayes"

    @property
    def model(self) -> Optional[NaiveBayesModel]:
        return self._model

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def feature_count(self) -> int:
        model = self._model
        if model is None:
            raise ModelNotTrainedError("El clasificador no ha sido entrenado")
        return model.feature_count

    @property
    def supports_probability(self) -> bool:
        return True

    # ---------- Entrenamiento ----------
    def train(self, samples: Sequence[LabeledSample]) -> None:
        with self._train_lock:
            model = self._fit(samples)
            # reemplazo atómico: predict() ve el modelo viejo o el nuevo completo
            self._model = model
        logger.info(
            "Naive Bayes entrenado: %d muestras, %d clases, %d features",
            int(model.class_counts.sum()), len(model.classes), model.feature_count,
        )

    def _fit(self, samples: Sequence[LabeledSample]) -> NaiveBayesModel:
        if not samples:
            raise TrainingError("Conjunto de entrenamiento vacío")
        lengths = {len(s.vector) for s in samples}
        if len(lengths) != 1:
            raise TrainingError(f"Vectores de distinto largo en el entrenamiento: {sorted(lengths)}")
        n_features = lengths.pop()

        X = _to_symbols(np.array([s.vector.intensities for s in samples], dtype=np.float64))
        y = np.array([int(s.label) for s in samples], dtype=np.int64)
        S = self.symbol_count
        bad = (X < 0) | (X >= S)
        if bad.any():
            i, f = np.argwhere(bad)[0]
            raise TrainingError(f"Símbolo {int(X[i, f])} fuera del dominio [0, {S}) (muestra {i}, feature {f})")

        if self._fixed_classes is not None:
            classes = self._fixed_classes
            unknown = sorted(set(y.tolist()) - set(classes.tolist()))
            if unknown:
                raise TrainingError(f"Etiquetas fuera del catálogo de clases: {unknown}")
        else:
            classes = np.unique(y)

        C = len(classes)
        cls_idx = np.searchsorted(classes, y)
        counts = np.zeros((C, n_features, S), dtype=np.float64)
        feat_idx = np.broadcast_to(np.arange(n_features), X.shape)
        np.add.at(counts, (np.broadcast_to(cls_idx[:, None], X.shape), feat_idx, X), 1.0)

        class_counts = np.bincount(cls_idx, minlength=C).astype(np.float64)
        alpha = 1.0 if self.laplace else 0.0
        with np.errstate(divide="ignore", invalid="ignore"):
            lik = (counts + alpha) / (class_counts[:, None, None] + alpha * S)
            log_lik = np.log(lik)
            log_prior = np.log(class_counts / class_counts.sum())
        log_lik[np.isnan(log_lik)] = -np.inf

        for arr in (classes, log_prior, log_lik, class_counts):
            arr.setflags(write=False)
        return NaiveBayesModel(classes=classes, log_prior=log_prior, log_likelihood=log_lik,
                               class_counts=class_counts)

    # ---------- Predicción ----------
    def predict(self, vector: FeatureVector) -> int:
        model = self._snapshot()
        scores = self._scores(model, self._check_vector(model, vector)[None, :])[:, 0]
        return int(model.classes[int(np.argmax(scores))])

    def predict_probability(self, vector: FeatureVector) -> float:
        """Posterior normalizado de la clase ganadora."""
        model = self._snapshot()
        scores = self._scores(model, self._check_vector(model, vector)[None, :])[:, 0]
        top = float(scores.max())
        if not np.isfinite(top):
            return 0.0
        post = np.exp(scores - top)
        return float(1.0 / post.sum())

    def predict_many(self, features: np.ndarray) -> np.ndarray:
        model = self._snapshot()
        X = np.asarray(features)
        if X.ndim != 2:
            raise ValueError(f"Se esperaba matriz (N, F); ndim={X.ndim}")
        if X.shape[1] != model.feature_count:
            raise DimensionMismatchError(model.feature_count, int(X.shape[1]))
        if X.dtype.kind == "f" and not np.isfinite(X).all():
            raise SymbolDomainError("Valores no finitos (nodata): enmascarar antes de predecir")
        out = np.empty(X.shape[0], dtype=np.int64)
        for start in range(0, X.shape[0], _PREDICT_CHUNK):
            sym = self._check_symbols(model, _to_symbols(X[start:start + _PREDICT_CHUNK].astype(np.float64)))
            out[start:start + sym.shape[0]] = model.classes[np.argmax(self._scores(model, sym), axis=0)]
        return out

    # ---------- Internos ----------
    def _snapshot(self) -> NaiveBayesModel:
        model = self._model
        if model is None:
            raise ModelNotTrainedError("predict() antes de un train() exitoso")
        return model

    def _check_vector(self, model: NaiveBayesModel, vector: FeatureVector) -> np.ndarray:
        if len(vector) != model.feature_count:
            raise DimensionMismatchError(model.feature_count, len(vector))
        return self._check_symbols(model, _to_symbols(np.asarray(vector.intensities, dtype=np.float64)))

    @staticmethod
    def _check_symbols(model: NaiveBayesModel, sym: np.ndarray) -> np.ndarray:
        if sym.size and (sym.min() < 0 or sym.max() >= model.symbol_count):
            raise SymbolDomainError(
                f"Símbolos fuera de [0, {model.symbol_count}): min={int(sym.min())} max={int(sym.max())}"
            )
        return sym

    @staticmethod
    def _scores(model: NaiveBayesModel, sym: np.ndarray) -> np.ndarray:
        """Log-posterior no normalizado, forma (C, N)."""
        scores = np.repeat(model.log_prior[:, None], sym.shape[0], axis=1)
        for f in range(model.feature_count):
            scores += model.log_likelihood[:, f, sym[:, f]]
        return scores


__all__ = ["NaiveBayesClassifier", "NaiveBayesModel"]
