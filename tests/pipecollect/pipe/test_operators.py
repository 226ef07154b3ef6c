import pytest

from pipecollect.pipe.operators import (
    ChunkOp, FilterOp, FlatMapOp, MapOp, Step, TakeOp, TakeWhileOp, flush, initial_state, step
)


def test_map_emits_one_value():
    result = step(MapOp(str.upper), "a", None)
    assert tuple(result.emit) == ("A",)
    assert result.proceed


def test_filter_emits_zero_or_one():
    keep = FilterOp(lambda n: n > 2)
    assert tuple(step(keep, 3, None).emit) == (3,)
    assert tuple(step(keep, 1, None).emit) == ()
    assert step(keep, 1, None).proceed


def test_take_counts_and_stops():
    op = TakeOp(2)
    state = initial_state(op)
    first = step(op, "x", state)
    assert tuple(first.emit) == ("x",) and first.proceed and first.state == 1
    second = step(op, "y", first.state)
    assert tuple(second.emit) == ("y",) and not second.proceed and second.state == 2


def test_take_rejects_negative_and_non_integers():
    with pytest.raises(ValueError):
        TakeOp(-1)
    with pytest.raises(TypeError):
        TakeOp(1.5)
    with pytest.raises(TypeError):
        TakeOp(True)


def test_take_while_and_until():
    below_three = TakeWhileOp(lambda n: n < 3)
    assert tuple(step(below_three, 1, None).emit) == (1,)
    stopped = step(below_three, 3, None)
    assert tuple(stopped.emit) == () and not stopped.proceed

    until_three = TakeWhileOp(lambda n: n == 3, until=True)
    assert step(until_three, 1, None).proceed
    assert not step(until_three, 3, None).proceed


def test_chunk_buffers_then_emits():
    op = ChunkOp(2)
    state = initial_state(op)
    first = step(op, 1, state)
    assert tuple(first.emit) == ()
    second = step(op, 2, first.state)
    assert tuple(second.emit) == ([1, 2],)
    assert second.state == []


def test_chunk_validates_size():
    with pytest.raises(ValueError):
        ChunkOp(0)
    with pytest.raises(TypeError):
        ChunkOp("3")


def test_flush_only_releases_chunk_buffers():
    pending, state = flush(ChunkOp(3), [1])
    assert pending == [1] and state == []
    assert flush(ChunkOp(3), []) == (None, [])
    assert flush(TakeOp(3), 2) == (None, 2)
    assert flush(MapOp(str), None) == (None, None)


def test_flat_map_emits_each_element():
    result = step(FlatMapOp(lambda n: [n, n]), 4, None)
    assert list(result.emit) == [4, 4]


def test_callbacks_must_be_callable():
    for factory in (MapOp, FilterOp, FlatMapOp, TakeWhileOp):
        with pytest.raises(TypeError):
            factory("not callable")


def test_initial_state_is_fresh_per_call():
    op = ChunkOp(2)
    assert initial_state(op) is not initial_state(op)


def test_unknown_operator_is_rejected():
    with pytest.raises(TypeError):
        step(object(), 1, None)
    with pytest.raises(TypeError):
        initial_state(object())


def test_operators_are_immutable():
    op = TakeOp(3)
    with pytest.raises(AttributeError):
        op.limit = 4
    assert Step().proceed
