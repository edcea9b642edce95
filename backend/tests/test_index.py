import numpy as np
import pytest

from blissmixer.services.index import SpatialIndex


def _vec(*head):
    values = np.zeros(20, dtype=np.float32)
    values[: len(head)] = head
    return values


@pytest.fixture
def index():
    return SpatialIndex.build([10, 20, 30, 40], [_vec(0.0), _vec(1.0), _vec(3.0), _vec(0.0, 2.0)])


def test_query_orders_by_squared_distance(index):
    result = index.query(_vec(0.0), 4)
    assert [n.id for n in result] == [10, 20, 40, 30]
    assert [n.distance for n in result] == pytest.approx([0.0, 1.0, 4.0, 9.0])


def test_query_limits_to_index_size(index):
    assert len(index.query(_vec(0.5), 100)) == 4
    assert len(index.query(_vec(0.5), 2)) == 2
    assert index.query(_vec(0.5), 0) == []


def test_empty_index_returns_nothing():
    empty = SpatialIndex.build([], [])
    assert len(empty) == 0
    assert empty.query(_vec(1.0), 5) == []


def test_vector_lookup(index):
    assert len(index) == 4
    assert index.vector(30)[0] == pytest.approx(3.0)
    assert index.vector(99) is None


def test_build_rejects_wrong_dimensions():
    with pytest.raises(ValueError):
        SpatialIndex.build([1], [np.zeros(5, dtype=np.float32)])
