# src/landclassifier/adapters/csv_samples.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..contracts.errors import TrainingError
from ..logging_config import get_module_logger
from ..services.feature_assembler import WorldPoint

logger = get_module_logger(__name__)


# Column map tolerante a distintas nomenclaturas
PICK_COLMAP: Dict[str, Tuple[str, ...]] = {
    "x": ("x", "X", "easting", "EASTING", "lon", "LON", "longitude"),
    "y": ("y", "Y", "northing", "NORTHING", "lat", "LAT", "latitude"),
    "label": ("label", "LABEL", "class", "CLASS", "class_id", "CLASS_ID", "id"),
}


def _first_present(df: pd.DataFrame, candidates: Tuple[str, ...]) -> Optional[str]:
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _standardize(df: pd.DataFrame) -> pd.DataFrame:
    cols: Dict[str, str] = {}
    for std, cands in PICK_COLMAP.items():
        col = _first_present(df, cands)
        if col is None:
            raise TrainingError(f"Falta columna '{std}' (acepta: {', '.join(cands)})")
        cols[std] = col
    return pd.DataFrame({std: df[col] for std, col in cols.items()})


@dataclass(frozen=True)
class CsvSampleSource:
    """Lee puntos de entrenamiento (x, y, label) en coordenadas de mundo desde un CSV."""
    path: Path
    encoding: str = "utf-8"

    def picks(self) -> List[Tuple[WorldPoint, int]]:
        if not self.path.exists():
            raise FileNotFoundError(f"No existe el CSV de muestras: {self.path}")
        df = _standardize(pd.read_csv(self.path, encoding=self.encoding))
        df = df.apply(pd.to_numeric, errors="coerce")
        clean = df.dropna()
        dropped = len(df) - len(clean)
        if dropped:
            logger.warning("%s: %d filas sin x/y/label numérico descartadas", self.path, dropped)
        if (clean["label"] < 0).any() or (clean["label"] % 1 != 0).any():
            raise TrainingError(f"{self.path}: 'label' debe ser entero no negativo")
        out = [((float(r.x), float(r.y)), int(r.label)) for r in clean.itertuples(index=False)]
        logger.info("%s: %d puntos de entrenamiento", self.path, len(out))
        return out


__all__ = ["CsvSampleSource", "PICK_COLMAP"]
