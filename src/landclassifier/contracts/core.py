# src/landclassifier/contracts/core.py
from __future__ import annotations

import math
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

ClassId = NonNegativeInt

# Límite del dominio discreto por feature (símbolos 0..65535)
MAX_SYMBOL_COUNT = 65536

# -------------------------
# Colores tipados
# -------------------------
class RGB8(BaseModel):
    model_config = ConfigDict(frozen=True)
    r: int = Field(200, ge=0, le=255)
    g: int = Field(200, ge=0, le=255)
    b: int = Field(200, ge=0, le=255)
    def as_tuple(self) -> tuple[int, int, int]: return (self.r, self.g, self.b)
    def to_hex(self) -> str: return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

# -------------------------
# Clases de cobertura
# -------------------------
class ClassLabel(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: ClassId
    name: str
    color: RGB8 = RGB8()

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("name no puede ser vacío")
        return v2


DEFAULT_LAND_COVER: Tuple[ClassLabel, ...] = (
    ClassLabel(id=0, name="Water", color=RGB8(r=30, g=90, b=200)),
    ClassLabel(id=1, name="Forest", color=RGB8(r=20, g=110, b=40)),
    ClassLabel(id=2, name="Grass", color=RGB8(r=120, g=200, b=80)),
    ClassLabel(id=3, name="Agriculture", color=RGB8(r=220, g=200, b=90)),
    ClassLabel(id=4, name="Urban", color=RGB8(r=180, g=40, b=40)),
    ClassLabel(id=5, name="Rock", color=RGB8(r=130, g=130, b=130)),
    ClassLabel(id=6, name="Snow", color=RGB8(r=245, g=245, b=250)),
)

# -------------------------
# Vectores de features
# -------------------------
class FeatureVector(BaseModel):
    """Intensidades de un píxel, una por banda feature (orden = número de banda)."""
    model_config = ConfigDict(frozen=True)
    intensities: Tuple[float, ...]

    @field_validator("intensities")
    @classmethod
    def _finite(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if not v:
            raise ValueError("FeatureVector vacío")
        if not all(math.isfinite(x) for x in v):
            raise ValueError(f"FeatureVector con valores no finitos: {v}")
        return v

    @classmethod
    def of(cls, *values: float) -> "FeatureVector":
        return cls(intensities=tuple(float(x) for x in values))

    def __len__(self) -> int:
        return len(self.intensities)


class LabeledSample(BaseModel):
    model_config = ConfigDict(frozen=True)
    vector: FeatureVector
    label: ClassId

# -------------------------
# Ejecuciones / auditoría
# -------------------------
class Stage(str, Enum):
    LOAD = "load"
    STRETCH = "stretch"
    COMMIT = "commit"
    NOTIFY = "notify"
    TRAIN = "train"
    PREDICT = "predict"

class RunError(BaseModel):
    model_config = ConfigDict(frozen=True)
    stage: Stage
    message: str
    source: str | None = None
    detail: str | None = None
