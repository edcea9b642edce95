from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ..core.config import DIMENSIONS


class FeatureVector(NamedTuple):
    """Bliss analysis metrics of a single track, in index order."""

    tempo: float
    zcr: float
    mean_spectral_centroid: float
    std_dev_spectral_centroid: float
    mean_spectral_rolloff: float
    std_dev_spectral_rolloff: float
    mean_spectral_flatness: float
    std_dev_spectral_flatness: float
    mean_loudness: float
    std_dev_loudness: float
    chroma1: float
    chroma2: float
    chroma3: float
    chroma4: float
    chroma5: float
    chroma6: float
    chroma7: float
    chroma8: float
    chroma9: float
    chroma10: float

    @classmethod
    def from_row(cls, row: Any) -> Optional["FeatureVector"]:
        values = [getattr(row, field) for field in cls._fields]
        if any(value is None for value in values):
            return None
        return cls(*(float(value) for value in values))


@dataclass(frozen=True)
class WeightVector:
    values: Tuple[float, ...] = (1.0,) * DIMENSIONS

    def __post_init__(self) -> None:
        if len(self.values) != DIMENSIONS:
            raise ValueError(f"expected {DIMENSIONS} weights, got {len(self.values)}")
        if not all(math.isfinite(v) for v in self.values):
            raise ValueError("weights must be finite numbers")

    @classmethod
    def of(cls, values: Sequence[float]) -> "WeightVector":
        return cls(tuple(float(v) for v in values))

    def apply(self, vector: FeatureVector | Sequence[float]) -> np.ndarray:
        arr = np.asarray(vector, dtype=np.float32)
        return arr * np.asarray(self.values, dtype=np.float32)


def tempo_to_bpm(tempo: float | None) -> int:
    if tempo is None:
        return 0
    return int(round(((tempo + 1.0) * 206.0) / 2.0))
