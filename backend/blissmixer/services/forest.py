from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core.config import DIMENSIONS

logger = logging.getLogger("forest")

EULER_GAMMA = 0.5772156649015329
DEFAULT_TREES = 1000
DEFAULT_MAX_SAMPLE_SIZE = 256
DEFAULT_EXTENSION_LEVEL = 10


def average_path_length(n: int) -> float:
    """Expected path length of an unsuccessful BST search among ``n`` points."""
    if n <= 1:
        return 0.0
    if n == 2:
        return 1.0
    return 2.0 * (math.log(n - 1) + EULER_GAMMA) - 2.0 * (n - 1) / n


@dataclass(slots=True)
class _Node:
    size: int
    normal: Optional[np.ndarray] = None
    intercept: Optional[np.ndarray] = None
    left: Optional["_Node"] = None
    right: Optional["_Node"] = None

    @property
    def is_leaf(self) -> bool:
        return self.normal is None


class _Tree:
    def __init__(self, data: np.ndarray, max_depth: int, extension_level: int, rng: np.random.Generator) -> None:
        self.extension_level = extension_level
        self.rng = rng
        self.root = self._grow(data, 0, max_depth)

    def _grow(self, data: np.ndarray, depth: int, max_depth: int) -> _Node:
        size = data.shape[0]
        if depth >= max_depth or size <= 1:
            return _Node(size=size)
        dims = data.shape[1]
        normal = self.rng.normal(size=dims)
        zeroed = dims - self.extension_level - 1
        if zeroed > 0:
            normal[self.rng.choice(dims, zeroed, replace=False)] = 0.0
        intercept = self.rng.uniform(data.min(axis=0), data.max(axis=0))
        goes_left = (data - intercept) @ normal <= 0.0
        return _Node(
            size=size,
            normal=normal,
            intercept=intercept,
            left=self._grow(data[goes_left], depth + 1, max_depth),
            right=self._grow(data[~goes_left], depth + 1, max_depth),
        )

    def path_lengths(self, points: np.ndarray) -> np.ndarray:
        out = np.zeros(points.shape[0], dtype=np.float64)
        self._descend(self.root, points, np.arange(points.shape[0]), 0, out)
        return out

    def _descend(self, node: _Node, points: np.ndarray, rows: np.ndarray, depth: int, out: np.ndarray) -> None:
        if rows.size == 0:
            return
        if node.is_leaf:
            out[rows] = depth + average_path_length(node.size)
            return
        goes_left = (points[rows] - node.intercept) @ node.normal <= 0.0
        self._descend(node.left, points, rows[goes_left], depth + 1, out)
        self._descend(node.right, points, rows[~goes_left], depth + 1, out)


class ExtendedIsolationForest:
    """Extended isolation forest (Hariri, Carrasco Kind & Brunner).

    Lower scores mean a point looks more like the data the forest was fitted
    on.
    """

    def __init__(
        self,
        *,
        trees: int = DEFAULT_TREES,
        sample_size: int = DEFAULT_MAX_SAMPLE_SIZE,
        extension_level: int = DEFAULT_EXTENSION_LEVEL,
        rng: np.random.Generator | None = None,
    ) -> None:
        if trees <= 0:
            raise ValueError("trees must be positive")
        if sample_size <= 0:
            raise ValueError("sample_size must be positive")
        if not 0 <= extension_level < DIMENSIONS:
            raise ValueError(f"extension_level must be in [0, {DIMENSIONS - 1}]")
        self.trees = trees
        self.sample_size = sample_size
        self.extension_level = extension_level
        self.rng = rng if rng is not None else np.random.default_rng()
        self._trees: List[_Tree] = []

    def fit(self, data: np.ndarray) -> "ExtendedIsolationForest":
        data = np.asarray(data, dtype=np.float64)
        if data.ndim != 2 or data.shape[0] == 0:
            raise ValueError("cannot fit an isolation forest without data")
        sample_size = min(self.sample_size, data.shape[0])
        max_depth = int(math.ceil(math.log2(sample_size))) if sample_size > 1 else 0
        self.sample_size = sample_size
        self._trees = []
        for _ in range(self.trees):
            rows = self.rng.choice(data.shape[0], sample_size, replace=False)
            self._trees.append(_Tree(data[rows], max_depth, self.extension_level, self.rng))
        return self

    def _sum_path_lengths(self, trees: Sequence[_Tree], points: np.ndarray) -> np.ndarray:
        total = np.zeros(points.shape[0], dtype=np.float64)
        for tree in trees:
            total += tree.path_lengths(points)
        return total

    def score(self, points: np.ndarray, *, workers: int = 1) -> np.ndarray:
        if not self._trees:
            raise RuntimeError("forest has not been fitted")
        points = np.asarray(points, dtype=np.float64)
        if points.shape[0] == 0:
            return np.zeros(0, dtype=np.float64)
        workers = max(1, min(workers, len(self._trees)))
        chunk = int(math.ceil(len(self._trees) / workers))
        chunks = [self._trees[i:i + chunk] for i in range(0, len(self._trees), chunk)]
        if len(chunks) == 1:
            totals = [self._sum_path_lengths(chunks[0], points)]
        else:
            with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix="forest") as pool:
                totals = list(pool.map(lambda trees: self._sum_path_lengths(trees, points), chunks))
        # summed in chunk order so the result does not depend on scheduling
        total = np.zeros(points.shape[0], dtype=np.float64)
        for part in totals:
            total += part
        mean_depth = total / len(self._trees)
        normaliser = average_path_length(self.sample_size)
        if normaliser == 0.0:
            return np.full(points.shape[0], 0.5)
        return np.power(2.0, -mean_depth / normaliser)


def rank(
    pool: Sequence[Tuple[int, np.ndarray]],
    seeds: Sequence[np.ndarray],
    *,
    trees: int = DEFAULT_TREES,
    max_sample_size: int = DEFAULT_MAX_SAMPLE_SIZE,
    extension_level: int = DEFAULT_EXTENSION_LEVEL,
    workers: int = 1,
    rng: np.random.Generator | None = None,
) -> List[Tuple[int, float]]:
    """Order ``pool`` by ascending anomaly score against a forest fitted on ``seeds``."""
    if not seeds:
        raise ValueError("at least one seed is required")
    if not pool:
        return []
    forest = ExtendedIsolationForest(
        trees=trees,
        sample_size=min(len(seeds), max_sample_size),
        extension_level=extension_level,
        rng=rng,
    ).fit(np.stack(seeds))
    scores = forest.score(np.stack([vector for _, vector in pool]), workers=workers)
    order = np.argsort(scores, kind="stable")
    logger.debug("Ranked %d candidate(s) against %d seed(s)", len(pool), len(seeds))
    return [(pool[i][0], float(scores[i])) for i in order]
