# src/landclassifier/adapters/csv_exporter.py

from __future__ import annotations

import csv
import os
from typing import Any, Iterable, Mapping

from ..logging_config import get_module_logger
from ..ports.exporters import ReportExporterPort

logger = get_module_logger(__name__)

TEMPLATES = ("confusion_matrix", "class_areas")


class CSVExporter(ReportExporterPort):
    """Exporter "report" mínimo: escribe un CSV desde `context`.

    Convención:
      - `context["headers"]` -> lista de nombres de columna (opcional)
      - `context["rows"]`    -> iterable de dicts o secuencias (pueden ser más cortas que headers)
    Si no hay `headers`, se infiere desde la primera fila.
    """
    def render(self, template_id: str, context: Mapping[str, Any], out_uri: str) -> str:
        if template_id not in TEMPLATES:
            raise ValueError(f"template_id desconocido: {template_id} (válidos: {TEMPLATES})")
        rows: Iterable[Any] = context.get("rows", [])  # type: ignore[assignment]
        headers = context.get("headers")
        os.makedirs(os.path.dirname(out_uri) or ".", exist_ok=True)
        rows = list(rows)
        if headers is None and rows:
            first = rows[0]
            if isinstance(first, Mapping):
                headers = list(first.keys())
            else:
                headers = [f"col{i+1}" for i in range(len(first))]
        with open(out_uri, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            if headers:
                writer.writerow(headers)
            for r in rows:
                if isinstance(r, Mapping):
                    writer.writerow([r.get(h, "") for h in headers or ()])
                else:
                    writer.writerow(list(r))
        logger.info("Reporte %s escrito: %s (%d filas)", template_id, out_uri, len(rows))
        return out_uri


__all__ = ["CSVExporter", "TEMPLATES"]
