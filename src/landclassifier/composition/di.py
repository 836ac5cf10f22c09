from __future__ import annotations
from pathlib import Path
from typing import Optional
import json
import yaml

from ..adapters.gdal_raster_reader import GdalRasterReader
from ..adapters.naive_bayes_classifier import NaiveBayesClassifier
from ..config import ClassifierKind, Settings
from ..contracts.core import ClassLabel, RGB8
from ..ports.classifier import LandCoverClassifierPort
from ..ports.raster_read import RasterReaderPort
from ..services.band_loader import RasterBandLoader
from ..services.contrast_stretcher import ContrastStretcher
from ..services.coordinator import ConcurrencyCoordinator

def load_settings_from_yaml(path: Path) -> Settings:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return Settings(**data)

def load_class_labels(path: Path) -> tuple[ClassLabel, ...]:
    items = json.loads(path.read_text(encoding="utf-8"))
    out: list[ClassLabel] = []
    for it in items:
        out.append(
            ClassLabel(
                id=int(it["id"]),
                name=str(it["name"]),
                color=RGB8(**it.get("color", {})),
            )
        )
    return tuple(out)

def build_settings(project_root: Path) -> Settings:
    """settings.yaml y class_labels.json opcionales bajo <root>/config/."""
    cfg = (project_root / "config" / "settings.yaml").resolve()
    st = load_settings_from_yaml(cfg) if cfg.exists() else Settings()
    if "project_root" not in st.model_fields_set:
        st = st.model_copy(update={"project_root": project_root.resolve()})
    labels_json = (project_root / "config" / "class_labels.json").resolve()
    if labels_json.exists():
        st = st.model_copy(update={"classes": load_class_labels(labels_json)})
    return st

def build_classifier(settings: Settings) -> LandCoverClassifierPort:
    # un backend por ClassifierKind
    if settings.classifier is ClassifierKind.NAIVE_BAYES:
        return NaiveBayesClassifier(
            symbol_count=settings.symbol_count,
            laplace=settings.laplace_smoothing,
            classes=[c.id for c in settings.classes],
        )
    raise ValueError(f"Clasificador no soportado: {settings.classifier}")

def build_loader(settings: Settings, reader: Optional[RasterReaderPort] = None) -> RasterBandLoader:
    stretcher = ContrastStretcher(
        partitions=settings.stretch_partitions,
        lo_percentile=settings.lo_percentile,
        hi_percentile=settings.hi_percentile,
    )
    return RasterBandLoader(reader=reader or GdalRasterReader(), stretcher=stretcher)

def build_coordinator(settings: Settings, reader: Optional[RasterReaderPort] = None) -> ConcurrencyCoordinator:
    return ConcurrencyCoordinator(build_loader(settings, reader), max_workers=settings.max_workers)
