from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

DEFAULT_COUNT = 5


class MixRequest(BaseModel):
    count: int = Field(DEFAULT_COUNT, description="Number of tracks wanted, clamped to [1, 50]")
    filtergenre: bool = False
    filterxmas: bool = False
    min: int = Field(0, ge=0, description="Minimum duration in seconds, 0 = unbounded")
    max: int = Field(0, ge=0, description="Maximum duration in seconds, 0 = unbounded")
    maxbpmdiff: int = Field(0, ge=0, description="Allowed BPM difference from the seed, 0 = unbounded")
    tracks: List[str] = Field(default_factory=list, description="Seed track locators")
    previous: List[str] = Field(default_factory=list, description="Previously played locators, most recent first")
    shuffle: bool = False
    norepart: int = Field(0, ge=0, description="Previous tracks whose artist must not repeat")
    norepalb: int = Field(0, ge=0, description="Previous tracks whose album must not repeat")
    genregroups: List[List[str]] = Field(default_factory=list)
    forest: bool = False

    @field_validator("count", mode="before")
    @classmethod
    def _default_count(cls, value: int | None) -> int:
        return DEFAULT_COUNT if value is None else value

    @field_validator("previous", "genregroups", mode="before")
    @classmethod
    def _none_to_empty(cls, value: list | None) -> list:
        return [] if value is None else value


class ListRequest(MixRequest):
    byartist: bool = False
