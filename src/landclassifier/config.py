# src/landclassifier/config.py
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .contracts.core import DEFAULT_LAND_COVER, MAX_SYMBOL_COUNT, ClassLabel

# Placeholders permitidos por clave
OUTPUT_PLACEHOLDERS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "classmap": ("date",),
    "accuracy": ("date",),
})


class ClassifierKind(str, Enum):
    """Backends disponibles; se elige en configuración, nunca por inspección de tipos."""
    NAIVE_BAYES = "naive_bayes"


class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca disco.
    Debe ser construida y provista por composition/di.py (CLI/host).
    """
    model_config = SettingsConfigDict(
        frozen=True,
        env_file=".env",
        env_prefix="LANDCLS_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    # --- básicos ---
    project_root: Path = Path(".")
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # --- realce de contraste ---
    lo_percentile: float = 0.02
    hi_percentile: float = 0.98

    # --- concurrencia ---
    max_workers: Optional[int] = None       # None -> decide ThreadPoolExecutor
    stretch_partitions: int = Field(4, ge=1)

    # --- clasificación ---
    classifier: ClassifierKind = ClassifierKind.NAIVE_BAYES
    symbol_count: int = Field(MAX_SYMBOL_COUNT, ge=2, le=MAX_SYMBOL_COUNT)
    laplace_smoothing: bool = True
    classes: Tuple[ClassLabel, ...] = DEFAULT_LAND_COVER

    output_patterns: Dict[str, str] = Field(default_factory=lambda: {
        "classmap": "products/classmap/{date}/classmap.tif",
        "accuracy": "products/accuracy/{date}/confusion.csv",
    })

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("project_root", mode="before")
    @classmethod
    def _abs_root(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v2 = v.strip().upper()
        if v2 not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level inválido: {v}")
        return v2

    @field_validator("log_file", mode="after")
    @classmethod
    def _rel_to_root(cls, p: Optional[Path], info) -> Optional[Path]:
        if p is None:
            return None
        root: Path = info.data.get("project_root")
        return p if p.is_absolute() else (root / p)

    @model_validator(mode="after")
    def _check_percentiles(self) -> "Settings":
        if not (0.0 <= self.lo_percentile < self.hi_percentile <= 1.0):
            raise ValueError(
                f"percentiles inválidos: lo={self.lo_percentile}, hi={self.hi_percentile} (0 <= lo < hi <= 1)"
            )
        return self

    @field_validator("classes")
    @classmethod
    def _unique_ids(cls, v: Tuple[ClassLabel, ...]) -> Tuple[ClassLabel, ...]:
        ids = [c.id for c in v]
        if len(ids) != len(set(ids)):
            raise ValueError(f"ids de clase duplicados: {ids}")
        return v

    @field_validator("output_patterns")
    @classmethod
    def _check_out(cls, d: Dict[str, str]) -> Dict[str, str]:
        for k, pat in d.items():
            allowed = set(OUTPUT_PLACEHOLDERS.get(k, ()))
            used = {frag[1] for frag in _iter_placeholders(pat)}
            unknown = used - allowed
            if unknown:
                raise ValueError(f"output_patterns[{k}] usa placeholders no permitidos: {sorted(unknown)}")
        return d

    # ----------------------------
    # Helpers puros (sin side-effects)
    # ----------------------------
    def out_path(self, key: str, **fmt) -> Path:
        """Resuelve patrón de salida (no crea carpetas)."""
        pat = self.output_patterns[key]
        return (self.project_root / pat.format(**fmt)).resolve()

    def class_names(self) -> Dict[int, str]:
        return {int(c.id): c.name for c in self.classes}


# Utilidad interna: detectar {placeholders}
def _iter_placeholders(fmt: str):
    start = 0
    while True:
        i = fmt.find("{", start)
        if i == -1:
            break
        j = fmt.find("}", i + 1)
        if j == -1:
            break
        name = fmt[i + 1 : j].strip()
        if name:
            yield (i, name)
        start = j + 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala SOLO desde composition/di.py o CLI.
    Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
