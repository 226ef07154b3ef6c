from testutils import CountingSequence

from pipecollect.pipe.source import SourceSequence


def test_sequence_is_held_by_reference():
    items = [1, 2, 3]
    source = SourceSequence(items)
    assert source.items is items
    assert len(source) == 3


def test_non_sequence_iterables_are_materialized_once():
    generator = (n * n for n in range(4))
    source = SourceSequence(generator)
    assert list(source) == [0, 1, 4, 9]
    assert list(source) == [0, 1, 4, 9]


def test_iterate_reads_lazily_by_index():
    items = CountingSequence("abcdef")
    traversal = SourceSequence(items).iterate()
    assert items.reads == 0
    assert next(traversal) == "a"
    assert next(traversal) == "b"
    assert items.reads == 2


def test_each_traversal_is_independent():
    source = SourceSequence([1, 2])
    first = source.iterate()
    second = source.iterate()
    assert next(first) == 1
    assert next(second) == 1
    assert next(first) == 2


def test_wrapping_a_source_reuses_its_items():
    inner = SourceSequence((1, 2))
    outer = SourceSequence(inner)
    assert outer.items is inner.items
    assert repr(outer) == "SourceSequence(length=2)"
