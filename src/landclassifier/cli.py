# src/landclassifier/cli.py
from __future__ import annotations

"""
CLI de clasificación de cobertura de suelo (contracts-first, minimal).

Comandos principales:
  - info: metadatos, rango e histograma resumido de una banda.
  - classify: entrena con puntos de un CSV y genera el classmap GeoTIFF.
  - accuracy: split entrenamiento/prueba y matriz de confusión en CSV.

Ejemplos rápidos:
  python -m landclassifier.cli info ./B04.tif

  python -m landclassifier.cli classify --date 20250721 \
      -b B02=./B02.tif -b B03=./B03.tif -b B04=./B04.tif \
      --samples ./training.csv

  python -m landclassifier.cli accuracy --date 20250721 \
      -b B03=./B03.tif -b B04=./B04.tif --samples ./training.csv --train-ratio 0.7
"""

import argparse
import json
import re
import sys
from pathlib import Path
from typing import Dict, Iterable, List

from .adapters.csv_exporter import CSVExporter
from .adapters.csv_samples import CsvSampleSource
from .adapters.gdal_raster_reader import GdalRasterReader
from .adapters.gdal_raster_writer import GdalRasterWriter
from .composition.di import build_classifier, build_coordinator, build_loader, build_settings
from .config import Settings
from .contracts.errors import LandClassifierError
from .contracts.geo import pretty_bounds
from .logging_config import setup_logging
from .services.accuracy_service import AccuracyService
from .services.band_loader import LoadOptions
from .services.coordinator import BandRequest, ConcurrencyCoordinator
from .services.prediction_service import PredictionService
from .services.training_service import TrainingService

# ----------------------
# Utilidades locales
# ----------------------

def _parse_band_args(items: Iterable[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for it in items:
        if "=" not in it:
            raise ValueError("Formato de banda inválido. Usa -b B04=path.tif")
        k, v = it.split("=", 1)
        k, v = k.strip().upper(), v.strip()
        if not k or not v:
            raise ValueError(f"Par banda=path vacío: {it!r}")
        out[k] = v
    if not out:
        raise ValueError("Debes especificar al menos una banda con -b NOMBRE=path.tif")
    return out


def _band_requests(band_map: Dict[str, str], stretch: bool) -> List[BandRequest]:
    reqs = []
    for pos, (name, uri) in enumerate(band_map.items(), start=1):
        # B04 -> 4; nombres sin número usan su posición
        m = re.search(r"(\d+)$", name)
        reqs.append(BandRequest(uri, LoadOptions(
            name=name,
            band_number=int(m.group(1)) if m else pos,
            contrast_enhancement=stretch,
        )))
    return reqs


def _settings(args: argparse.Namespace) -> Settings:
    s = build_settings(Path(args.root or "."))
    if args.log_level:
        s = s.model_copy(update={"log_level": args.log_level.upper()})
    setup_logging(s.log_level, str(s.log_file) if s.log_file else None)
    return s


def _load_bands(s: Settings, args: argparse.Namespace) -> ConcurrencyCoordinator:
    coord = build_coordinator(s, GdalRasterReader(backend=args.backend))
    result = coord.load_batch(_band_requests(_parse_band_args(args.band), args.stretch))
    if not result.ok:
        msgs = "; ".join(f"{e.source} [{e.stage.value}]: {e.message}" for e in result.errors)
        raise LandClassifierError(f"Carga de bandas con errores: {msgs}")
    return coord


# ----------------------
# Comandos
# ----------------------

def cmd_info(args: argparse.Namespace) -> int:
    s = _settings(args)
    loader = build_loader(s, GdalRasterReader(backend=args.backend))
    band = loader.decode(args.path, LoadOptions(band_index=args.band_index))
    w, h = band.width, band.height
    info = {
        "name": band.name,
        "size": [w, h],
        "domain": band.domain.value,
        "min": band.min_value,
        "max": band.max_value,
        "cutoffs": [band.min_cut, band.max_cut],
        "meters_per_pixel": band.meters_per_pixel,
        "bounds": pretty_bounds(band.transform.bounds(w, h)),
        "projection": band.projection.to_wkt() if not band.projection.is_empty else None,
    }
    print(json.dumps(info, indent=2, ensure_ascii=False))
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    s = _settings(args)
    coord = _load_bands(s, args)
    clf = build_classifier(s)
    picks = CsvSampleSource(Path(args.samples)).picks()

    session = TrainingService().train(clf, coord.layers, picks)
    cmap = PredictionService().predict_raster(clf, coord.layers, session.layout, s.classes)

    out_tif = Path(args.out if args.out else s.out_path("classmap", date=args.date))
    first = coord.layers.get(session.layout.band_names[0])
    GdalRasterWriter().write(str(out_tif), cmap.labels, cmap.transform, crs=first.projection, nodata=cmap.nodata)

    names = s.class_names()
    out_csv = out_tif.with_suffix(".csv")
    CSVExporter().render("class_areas", {
        "headers": ["class_id", "class_name", "pixels", "percent"],
        "rows": [[cid, names.get(cid, str(cid)), n, f"{cmap.percents[cid]:.4f}"] for cid, n in cmap.counts.items()],
    }, str(out_csv))

    print(str(out_tif))
    print(str(out_csv))
    return 0


def cmd_accuracy(args: argparse.Namespace) -> int:
    s = _settings(args)
    coord = _load_bands(s, args)
    clf = build_classifier(s)
    picks = CsvSampleSource(Path(args.samples)).picks()

    training = TrainingService()
    layout = training.assembler.snapshot(coord.layers)
    samples = training.assembler.labeled_samples(coord.layers, picks, layout)
    train, test = training.split(samples, train_ratio=args.train_ratio, seed=args.seed)
    clf.train(train)

    acc = AccuracyService()
    cm = acc.evaluate(clf, test, [c.id for c in s.classes])
    out_csv = Path(args.out if args.out else s.out_path("accuracy", date=args.date))
    acc.export(cm, CSVExporter(), str(out_csv), s.class_names())

    print(f"overall_accuracy={cm.overall_accuracy:.4f} kappa={cm.kappa:.4f} n={cm.total}")
    print(str(out_csv))
    return 0


# ----------------------
# Parser
# ----------------------

def _add_band_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--date", required=True, help="YYYYMMDD para rutas de salida")
    p.add_argument("-b", "--band", action="append", default=[], help="Par banda=path (p.ej., B04=./B04.tif)")
    p.add_argument("--samples", required=True, help="CSV de entrenamiento con columnas x, y, label")
    p.add_argument("--stretch", action="store_true", help="aplica realce de contraste 2%%-98%% a cada banda")
    p.add_argument("--out", help="ruta de salida explícita (si no, usa Settings.output_patterns)")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="landclassifier", description="Clasificación de cobertura de suelo por píxel")
    p.add_argument("--root", help="project_root (lee <root>/config/settings.yaml si existe)")
    p.add_argument("--log-level", help="sobre-escribe Settings.log_level")
    p.add_argument("--backend", choices=("rasterio", "gdal"), default="rasterio", help="backend de lectura")
    sub = p.add_subparsers(dest="cmd", required=True)

    # info
    pi = sub.add_parser("info", help="metadatos y rango de una banda")
    pi.add_argument("path")
    pi.add_argument("--band-index", type=int, default=None, help="banda 1-based dentro del dataset")
    pi.set_defaults(func=cmd_info)

    # classify
    pc = sub.add_parser("classify", help="entrena Naive Bayes y genera classmap")
    _add_band_args(pc)
    pc.set_defaults(func=cmd_classify)

    # accuracy
    pa = sub.add_parser("accuracy", help="matriz de confusión con split entrenamiento/prueba")
    _add_band_args(pa)
    pa.add_argument("--train-ratio", type=float, default=0.8)
    pa.add_argument("--seed", type=int, default=42)
    pa.set_defaults(func=cmd_accuracy)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return int(bool(args.func(args)))  # 0 si todo bien
    except KeyboardInterrupt:
        return 130
    except (LandClassifierError, OSError, ValueError) as ex:
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
