from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

import numpy as np

from ..core.config import Settings
from ..schemas.mixer import ListRequest, MixRequest
from . import forest
from .genres import GenreFilter
from .index import Library, SpatialIndex, build_artist_index
from .paths import decode_path, encode_path, fix_music_root
from .store import TrackRecord

logger = logging.getLogger("mixer")

CHRISTMAS = "christmas"
DECEMBER = 12
MIN_COUNT = 1
MAX_COUNT = 50
MIN_NUM_SIM = 5000
SHUFFLE_FACTOR = 5
SHUFFLE_MAX_COUNT = 20
MIN_TRACKS_PER_SEED = 15
MIN_RESULTS = 2
MAX_ARTIST_TRACKS = 5
# squared euclidean units
MAX_ARTIST_TRACK_SCORE_DIFF = 0.01
FOREST_POOL_SIZE = 10000
FOREST_MAX_PER_SEED = 1000
# derived BPM values are rounded integers
BPM_SLACK = 1


@dataclass(frozen=True, order=True)
class Distance:
    """Squared euclidean distance in weighted feature space."""

    value: float


@dataclass(frozen=True, order=True)
class AnomalyScore:
    """Isolation forest score against the request's seeds."""

    value: float


Score = Union[Distance, AnomalyScore]


@dataclass(slots=True)
class TrackFile:
    file: str
    score: Score


@dataclass(slots=True)
class MatchedArtist:
    pos: int
    tracks: List[TrackFile]


@dataclass(slots=True)
class Exclusions:
    ids: Set[int] = field(default_factory=set)
    titles: Set[str] = field(default_factory=set)
    artists: Set[str] = field(default_factory=set)
    albums: Set[str] = field(default_factory=set)


def clamp_count(count: int) -> int:
    return max(MIN_COUNT, min(count, MAX_COUNT))


def similarity_count_for(count: int, shuffle: bool) -> int:
    if shuffle and count < SHUFFLE_MAX_COUNT:
        return count * SHUFFLE_FACTOR
    return count


def tracks_per_seed_for(count: int, similarity_count: int) -> int:
    if count < MIN_TRACKS_PER_SEED:
        return similarity_count * 3
    return similarity_count


def num_sim_for(count: int, seed_count: int) -> int:
    return max(count * seed_count * 50, MIN_NUM_SIM)


def forest_neighbours_per_seed(seed_count: int) -> int:
    return min(FOREST_POOL_SIZE // seed_count, FOREST_MAX_PER_SEED)


def bpm_band(low_bpm: int, high_bpm: int, max_diff: int) -> Optional[Tuple[int, int]]:
    if max_diff <= 0 or low_bpm <= 0 or high_bpm <= 0:
        return None
    return low_bpm - max_diff - BPM_SLACK, high_bpm + max_diff + BPM_SLACK


def outside_band(bpm: int, band: Optional[Tuple[int, int]]) -> bool:
    if band is None or bpm <= 0:
        return False
    return bpm < band[0] or bpm > band[1]


def format_locators(files: Sequence[str], music_root: str = "") -> str:
    return "".join(f"{encode_path(path, music_root)}\n" for path in files)


def _log(reason: str, track: TrackRecord, score: Score | None = None) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug(
        "%s File:%s, Title:%s, Album:%s, Dur:%d, BPM:%d, Score:%s, Genres:%s",
        reason,
        track.file,
        track.title,
        track.album,
        track.duration,
        track.bpm,
        f"{score.value:.18f}" if score is not None else "-",
        sorted(track.genres),
    )


class Mixer:
    """Turns seed tracks into a filtered, de-duplicated list of similar tracks.

    One instance serves one request: all exclusion state lives on the
    instance, the library snapshot is shared and only read.
    """

    def __init__(
        self,
        library: Library,
        settings: Settings,
        *,
        rng: random.Random | None = None,
        today: date | None = None,
    ) -> None:
        self.library = library
        self.catalog = library.catalog
        self.settings = settings
        self.music_root = fix_music_root(settings.music_root)
        self.rng = rng if rng is not None else random.Random()
        self.today = today or date.today()

    def resolve(self, locator: str) -> Optional[TrackRecord]:
        path = decode_path(locator, self.music_root)
        track_id = self.catalog.resolve_path_to_id(path)
        if track_id is None:
            logger.warning("Could not find '%s' in DB", path)
            return None
        return self.catalog.lookup_by_id(track_id)

    def _holiday_filter(self, requested: bool) -> bool:
        return requested and self.today.month != DECEMBER

    async def mix(self, request: MixRequest) -> List[str]:
        count = clamp_count(request.count)
        filterxmas = self._holiday_filter(request.filterxmas)
        genre_filter = GenreFilter.resolve(request.genregroups, self.library.genres)
        excluded = Exclusions()
        acceptable_genres: Set[str] = set()
        seed_genres: Set[str] = set()

        resolved = 0
        for locator in request.previous:
            track = self.resolve(locator)
            if track is None:
                continue
            excluded.ids.add(track.id)
            if track.title:
                excluded.titles.add(track.title)
            if resolved < request.norepart and track.artist:
                excluded.artists.add(track.artist)
            if resolved < request.norepalb and track.album:
                excluded.albums.add(track.album)
            resolved += 1
            if request.filtergenre and track.genres:
                acceptable_genres.update(genre_filter.matching_groups(track.genres))

        seeds: List[TrackRecord] = []
        min_bpm = max_bpm = 0
        for locator in request.tracks:
            track = self.resolve(locator)
            if track is None:
                continue
            excluded.ids.add(track.id)
            if track.title:
                excluded.titles.add(track.title)
            matched = genre_filter.matching_groups(track.genres)
            acceptable_genres.update(matched)
            seed_genres.update(track.genres)
            seed_genres.update(matched)
            if track.vector is None:
                logger.warning("No metrics for '%s', skipping seed", track.file)
                continue
            if track.bpm > 0:
                min_bpm = track.bpm if min_bpm == 0 else min(min_bpm, track.bpm)
                max_bpm = max(max_bpm, track.bpm)
            seeds.append(track)

        if not seeds:
            logger.debug("No usable seeds")
            return []

        logger.debug("Seed genres: %s, acceptable genres: %s", sorted(seed_genres), sorted(acceptable_genres))
        run = _MixRun(
            self,
            request,
            count=count,
            filterxmas=filterxmas,
            genre_filter=genre_filter,
            acceptable_genres=acceptable_genres,
            excluded=excluded,
        )
        if request.forest and len(seeds) > self.settings.forest_min_seeds:
            await run.select_by_forest(seeds, bpm_band(min_bpm, max_bpm, request.maxbpmdiff))
        else:
            run.select_by_index(seeds)
            run.substitute_artist_tracks()
            run.backfill()
        return run.finish()

    async def list_tracks(self, request: ListRequest) -> List[str]:
        count = clamp_count(request.count)
        filterxmas = self._holiday_filter(request.filterxmas)
        genre_filter = GenreFilter.resolve(request.genregroups, self.library.genres)

        seed: Optional[TrackRecord] = None
        for locator in request.tracks:
            track = self.resolve(locator)
            if track is None:
                continue
            if track.vector is None:
                logger.warning("No metrics for '%s', skipping seed", track.file)
                continue
            seed = track
            break
        if seed is None:
            return []

        index: SpatialIndex = self.library.index
        if request.byartist:
            index = build_artist_index(self.catalog, seed.artist_original)

        acceptable_genres = genre_filter.matching_groups(seed.genres)
        band = bpm_band(seed.bpm, seed.bpm, request.maxbpmdiff)
        seen_ids = {seed.id}
        titles = {seed.title} if seed.title else set()
        chosen: List[str] = []
        for neighbour in index.query(seed.vector, self.settings.list_neighbours):
            if neighbour.id in seen_ids:
                continue
            seen_ids.add(neighbour.id)
            track = self.catalog.lookup_by_id(neighbour.id)
            if track is None:
                continue
            score = Distance(neighbour.distance)
            if (request.min > 0 and track.duration < request.min) or (request.max > 0 and track.duration > request.max):
                _log("DISCARD(duration)", track, score)
                continue
            if outside_band(track.bpm, band):
                _log("DISCARD(bpm)", track, score)
                continue
            if request.filtergenre and genre_filter.filter_genre(track.genres, acceptable_genres):
                _log("DISCARD(genre)", track, score)
                continue
            if filterxmas and CHRISTMAS in track.genres:
                _log("DISCARD(christmas)", track, score)
                continue
            if track.title and track.title in titles:
                _log("DISCARD(title)", track, score)
                continue
            _log("USABLE", track, score)
            if track.title:
                titles.add(track.title)
            chosen.append(track.file)
            if len(chosen) >= count:
                break
        return chosen


class _MixRun:
    def __init__(
        self,
        mixer: Mixer,
        request: MixRequest,
        *,
        count: int,
        filterxmas: bool,
        genre_filter: GenreFilter,
        acceptable_genres: Set[str],
        excluded: Exclusions,
    ) -> None:
        self.mixer = mixer
        self.request = request
        self.count = count
        self.filterxmas = filterxmas
        self.genre_filter = genre_filter
        self.acceptable_genres = acceptable_genres
        self.excluded = excluded
        self.similarity_count = similarity_count_for(count, request.shuffle)
        # tracks that passed every filter
        self.chosen: List[TrackFile] = []
        # tracks only rejected by artist/album/title repetition, used as fallback
        self.filtered: List[TrackFile] = []
        self.chosen_albums: Set[str] = set()
        # id -> position in chosen, so a track matching several seeds keeps its best distance
        self.id_to_pos: Dict[int, int] = {}
        # artist -> similar tracks, one of which is picked at random when shuffling
        self.matched_artists: Dict[str, MatchedArtist] = {}

    def select_by_index(self, seeds: Sequence[TrackRecord]) -> None:
        library = self.mixer.library
        tracks_per_seed = tracks_per_seed_for(self.count, self.similarity_count)
        num_sim = num_sim_for(self.count, len(seeds))
        for seed in seeds:
            band = bpm_band(seed.bpm, seed.bpm, self.request.maxbpmdiff)
            accepted_for_seed = 0
            for neighbour in library.index.query(seed.vector, num_sim):
                score = Distance(neighbour.distance)
                if neighbour.id in self.excluded.ids:
                    pos = self.id_to_pos.get(neighbour.id)
                    if pos is not None and self.chosen[pos].score > score:
                        self.chosen[pos].score = score
                    continue
                self.excluded.ids.add(neighbour.id)
                track = library.catalog.lookup_by_id(neighbour.id)
                if track is None:
                    continue
                if self.consider(track, score, band, track_alternates=True):
                    accepted_for_seed += 1
                    if accepted_for_seed >= tracks_per_seed:
                        break

    async def select_by_forest(self, seeds: Sequence[TrackRecord], band: Optional[Tuple[int, int]]) -> None:
        library = self.mixer.library
        settings = self.mixer.settings
        per_seed = forest_neighbours_per_seed(len(seeds))
        pool: List[Tuple[int, np.ndarray]] = []
        pooled: Set[int] = set()
        for seed in seeds:
            for neighbour in library.index.query(seed.vector, per_seed):
                if neighbour.id in pooled:
                    continue
                pooled.add(neighbour.id)
                pool.append((neighbour.id, library.index.vector(neighbour.id)))

        logger.debug("Forest pool: %d track(s) from %d seed(s)", len(pool), len(seeds))
        ranked = await asyncio.to_thread(
            forest.rank,
            pool,
            [seed.vector for seed in seeds],
            trees=settings.forest_trees,
            max_sample_size=settings.forest_max_sample_size,
            extension_level=settings.forest_extension_level,
            workers=settings.forest_workers,
            rng=np.random.default_rng(settings.forest_random_seed),
        )
        for track_id, value in ranked:
            if track_id in self.excluded.ids:
                continue
            self.excluded.ids.add(track_id)
            track = library.catalog.lookup_by_id(track_id)
            if track is None:
                continue
            if self.consider(track, AnomalyScore(value), band, track_alternates=False):
                if len(self.chosen) >= self.similarity_count:
                    break

    def consider(self, track: TrackRecord, score: Score, band: Optional[Tuple[int, int]], *, track_alternates: bool) -> bool:
        """Run the filter chain for one candidate; True when it was chosen."""
        request = self.request
        if (request.min > 0 and track.duration < request.min) or (request.max > 0 and track.duration > request.max):
            _log("DISCARD(duration)", track, score)
            return False
        if outside_band(track.bpm, band):
            _log("DISCARD(bpm)", track, score)
            return False
        if request.filtergenre and self.genre_filter.filter_genre(track.genres, self.acceptable_genres):
            _log("DISCARD(genre)", track, score)
            return False
        if self.filterxmas and CHRISTMAS in track.genres:
            _log("DISCARD(christmas)", track, score)
            return False
        if track.album and track.album in self.chosen_albums:
            _log("DISCARD(album)", track, score)
            return False

        track_file = TrackFile(file=track.file, score=score)
        if request.norepart > 0 and track.artist in self.excluded.artists:
            _log("FILTER(artist)", track, score)
            if request.shuffle and track_alternates:
                matched = self.matched_artists.get(track.artist)
                if (
                    matched is not None
                    and len(matched.tracks) < MAX_ARTIST_TRACKS
                    and abs(score.value - matched.tracks[0].score.value) < MAX_ARTIST_TRACK_SCORE_DIFF
                ):
                    matched.tracks.append(TrackFile(file=track.file, score=score))
            self.filtered.append(track_file)
            return False
        if request.norepalb > 0 and track.album in self.excluded.albums and not track.is_various:
            _log("FILTER(album)", track, score)
            self.filtered.append(track_file)
            return False
        if track.title and track.title in self.excluded.titles:
            _log("FILTER(title)", track, score)
            self.filtered.append(track_file)
            return False

        _log("USABLE", track, score)
        if track.title:
            self.excluded.titles.add(track.title)
        if request.norepart > 0 and track.artist:
            self.excluded.artists.add(track.artist)
        if track.album:
            if request.norepalb > 0:
                self.excluded.albums.add(track.album)
            self.chosen_albums.add(track.album)
        self.id_to_pos[track.id] = len(self.chosen)
        self.chosen.append(track_file)
        if request.shuffle and track_alternates:
            self.matched_artists[track.artist] = MatchedArtist(
                pos=len(self.chosen) - 1,
                tracks=[TrackFile(file=track.file, score=score)],
            )
        return True

    def substitute_artist_tracks(self) -> None:
        if not self.request.shuffle:
            return
        for name, info in self.matched_artists.items():
            if len(info.tracks) > 1:
                logger.debug("Choosing random track for %s (%d tracks)", name, len(info.tracks))
                self.chosen[info.pos].file = self.mixer.rng.choice(info.tracks).file

    def backfill(self) -> None:
        min_count = min(MIN_RESULTS, self.count)
        logger.debug("similar_tracks: %d, filtered_tracks: %d", len(self.chosen), len(self.filtered))
        if len(self.chosen) >= min_count or not self.filtered:
            return
        self.filtered.sort(key=lambda item: item.score)
        files = {item.file for item in self.chosen}
        for item in self.filtered:
            if len(self.chosen) >= min_count:
                break
            if item.file in files:
                continue
            files.add(item.file)
            self.chosen.append(item)

    def finish(self) -> List[str]:
        self.chosen.sort(key=lambda item: item.score)
        if self.request.shuffle:
            self.chosen = self.chosen[:self.similarity_count]
            self.mixer.rng.shuffle(self.chosen)
        return [item.file for item in self.chosen[:self.count]]
