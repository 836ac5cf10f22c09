# src/landclassifier/services/accuracy_service.py
from __future__ import annotations

"""
Exactitud de predicción: matriz de confusión (filas = clase real,
columnas = clase predicha), exactitud global, kappa de Cohen y exactitudes
de productor/usuario por clase.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..contracts.core import LabeledSample
from ..contracts.errors import TrainingError
from ..logging_config import get_module_logger
from ..ports.classifier import LandCoverClassifierPort
from ..ports.exporters import ReportExporterPort

logger = get_module_logger(__name__)


@dataclass(frozen=True)
class ConfusionMatrix:
    classes: Tuple[int, ...]
    matrix: np.ndarray  # (C, C) int64

    @property
    def total(self) -> int:
        return int(self.matrix.sum())

    @property
    def overall_accuracy(self) -> float:
        return float(np.trace(self.matrix) / self.total) if self.total else 0.0

    @property
    def kappa(self) -> float:
        n = self.total
        if n == 0:
            return 0.0
        po = np.trace(self.matrix) / n
        pe = float((self.matrix.sum(axis=0) * self.matrix.sum(axis=1)).sum()) / (n * n)
        return float((po - pe) / (1.0 - pe)) if pe < 1.0 else 1.0

    def producer_accuracy(self) -> Dict[int, float]:
        """Por clase real (recall)."""
        rows = self.matrix.sum(axis=1)
        return {c: float(self.matrix[i, i] / rows[i]) if rows[i] else 0.0 for i, c in enumerate(self.classes)}

    def user_accuracy(self) -> Dict[int, float]:
        """Por clase predicha (precisión)."""
        cols = self.matrix.sum(axis=0)
        return {c: float(self.matrix[i, i] / cols[i]) if cols[i] else 0.0 for i, c in enumerate(self.classes)}


@dataclass
class AccuracyService:

    def tally(self, truth: Sequence[int], predicted: Sequence[int],
              classes: Optional[Sequence[int]] = None) -> ConfusionMatrix:
        t = np.asarray(truth, dtype=np.int64)
        p = np.asarray(predicted, dtype=np.int64)
        if t.shape != p.shape:
            raise ValueError(f"truth {t.shape} y predicted {p.shape} difieren")
        ids = sorted({int(c) for c in classes}) if classes is not None else sorted(set(t.tolist()) | set(p.tolist()))
        index = {c: i for i, c in enumerate(ids)}
        m = np.zeros((len(ids), len(ids)), dtype=np.int64)
        for a, b in zip(t.tolist(), p.tolist()):
            if a not in index or b not in index:
                raise ValueError(f"Etiqueta fuera del catálogo: real={a}, predicha={b}")
            m[index[a], index[b]] += 1
        return ConfusionMatrix(classes=tuple(ids), matrix=m)

    def evaluate(self, classifier: LandCoverClassifierPort, samples: Sequence[LabeledSample],
                 classes: Optional[Sequence[int]] = None) -> ConfusionMatrix:
        if not samples:
            raise TrainingError("Sin muestras para evaluar")
        X = np.array([s.vector.intensities for s in samples], dtype=np.float64)
        predicted = classifier.predict_many(X)
        cm = self.tally([s.label for s in samples], predicted.tolist(), classes)
        logger.info("Exactitud global %.3f (kappa %.3f) sobre %d muestras", cm.overall_accuracy, cm.kappa, cm.total)
        return cm

    @staticmethod
    def report_context(cm: ConfusionMatrix, class_names: Optional[Mapping[int, str]] = None) -> Dict[str, Any]:
        names = [class_names.get(c, str(c)) if class_names else str(c) for c in cm.classes]
        producer = cm.producer_accuracy()
        user = cm.user_accuracy()
        headers = ["truth \\ predicted", *names, "producer_accuracy"]
        rows = []
        for i, c in enumerate(cm.classes):
            rows.append([names[i], *cm.matrix[i].tolist(), f"{producer[c]:.4f}"])
        rows.append(["user_accuracy", *[f"{user[c]:.4f}" for c in cm.classes], ""])
        rows.append(["overall_accuracy", f"{cm.overall_accuracy:.4f}"])
        rows.append(["kappa", f"{cm.kappa:.4f}"])
        return {"headers": headers, "rows": rows}

    def export(self, cm: ConfusionMatrix, exporter: ReportExporterPort, out_uri: str,
               class_names: Optional[Mapping[int, str]] = None) -> str:
        return exporter.render("confusion_matrix", self.report_context(cm, class_names), out_uri)


__all__ = ["AccuracyService", "ConfusionMatrix"]
