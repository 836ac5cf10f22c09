# src/landclassifier/ports/exporters.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Mapping, Any

URI = str


@runtime_checkable
class ReportExporterPort(Protocol):
    """
    Genera reportes (CSV/HTML/MD) a partir de un contexto.
    Consumidor típico: reporte de exactitud (matriz de confusión).
    """
    def render(self, template_id: str, context: Mapping[str, Any], out_uri: URI) -> URI: ...

__all__ = ["ReportExporterPort", "URI"]
