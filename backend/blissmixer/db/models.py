from __future__ import annotations

from sqlalchemy import Float, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Track(Base):
    """A row of the Bliss analyser's ``Tracks`` table."""

    __tablename__ = "Tracks"

    rowid: Mapped[int] = mapped_column("rowid", Integer, primary_key=True)
    file: Mapped[str] = mapped_column("File", Text, unique=True, nullable=False)
    title: Mapped[str | None] = mapped_column("Title", Text)
    artist: Mapped[str | None] = mapped_column("Artist", Text)
    album_artist: Mapped[str | None] = mapped_column("AlbumArtist", Text)
    album: Mapped[str | None] = mapped_column("Album", Text)
    genre: Mapped[str | None] = mapped_column("Genre", Text)
    duration: Mapped[int | None] = mapped_column("Duration", Integer)
    ignore: Mapped[int | None] = mapped_column("Ignore", Integer)

    tempo: Mapped[float | None] = mapped_column("Tempo", Float)
    zcr: Mapped[float | None] = mapped_column("Zcr", Float)
    mean_spectral_centroid: Mapped[float | None] = mapped_column("MeanSpectralCentroid", Float)
    std_dev_spectral_centroid: Mapped[float | None] = mapped_column("StdDevSpectralCentroid", Float)
    mean_spectral_rolloff: Mapped[float | None] = mapped_column("MeanSpectralRolloff", Float)
    std_dev_spectral_rolloff: Mapped[float | None] = mapped_column("StdDevSpectralRolloff", Float)
    mean_spectral_flatness: Mapped[float | None] = mapped_column("MeanSpectralFlatness", Float)
    std_dev_spectral_flatness: Mapped[float | None] = mapped_column("StdDevSpectralFlatness", Float)
    mean_loudness: Mapped[float | None] = mapped_column("MeanLoudness", Float)
    std_dev_loudness: Mapped[float | None] = mapped_column("StdDevLoudness", Float)
    chroma1: Mapped[float | None] = mapped_column("Chroma1", Float)
    chroma2: Mapped[float | None] = mapped_column("Chroma2", Float)
    chroma3: Mapped[float | None] = mapped_column("Chroma3", Float)
    chroma4: Mapped[float | None] = mapped_column("Chroma4", Float)
    chroma5: Mapped[float | None] = mapped_column("Chroma5", Float)
    chroma6: Mapped[float | None] = mapped_column("Chroma6", Float)
    chroma7: Mapped[float | None] = mapped_column("Chroma7", Float)
    chroma8: Mapped[float | None] = mapped_column("Chroma8", Float)
    chroma9: Mapped[float | None] = mapped_column("Chroma9", Float)
    chroma10: Mapped[float | None] = mapped_column("Chroma10", Float)
