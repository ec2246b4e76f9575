"""Tests for the read-through download cache."""

import pytest

from server.apps.files.infrastructure.cache import ReadThroughCache


def _leftovers(cache):
    return sorted(path.name for path in cache.cache_dir.iterdir())


def test_tee_publishes_complete_copy(cache):
    """Test that a fully consumed stream becomes a cache entry."""
    chunks = list(cache.tee(iter([b'abc', b'def']), 'file.txt'))

    assert chunks == [b'abc', b'def']
    assert cache.lookup('file.txt').read_bytes() == b'abcdef'
    assert _leftovers(cache) == ['file.txt']


def test_tee_discards_abandoned_stream(cache):
    """Test that a consumer stopping early leaves no entry behind."""
    stream = cache.tee(iter([b'abc', b'def']), 'file.txt')

    assert next(stream) == b'abc'
    stream.close()

    assert cache.lookup('file.txt') is None
    assert _leftovers(cache) == []


def test_tee_discards_on_source_error(cache):
    """Test that a failing backend stream leaves no entry behind."""

    def broken_source():
        yield b'abc'
        raise OSError('connection reset')

    with pytest.raises(OSError, match='connection reset'):
        list(cache.tee(broken_source(), 'file.txt'))

    assert cache.lookup('file.txt') is None
    assert _leftovers(cache) == []


def test_tee_survives_cache_write_failure(cache, monkeypatch):
    """Test that cache write errors never reach the consumer."""

    def failing_write(self, chunk):
        raise OSError('disk full')

    monkeypatch.setattr(
        'server.apps.files.infrastructure.cache.CacheWriter.write',
        failing_write,
    )

    chunks = list(cache.tee(iter([b'abc', b'def']), 'file.txt'))

    assert chunks == [b'abc', b'def']
    assert cache.lookup('file.txt') is None
    assert _leftovers(cache) == []


def test_tee_without_writable_directory(tmp_path):
    """Test streaming when the cache directory cannot be created."""
    blocker = tmp_path / 'blocker'
    blocker.write_bytes(b'')
    cache = ReadThroughCache(blocker / 'cache')

    assert list(cache.tee(iter([b'abc']), 'file.txt')) == [b'abc']
    assert cache.lookup('file.txt') is None


@pytest.mark.parametrize('name', ['', '.', '..', 'a/b', 'a\\b'])
def test_invalid_keys(cache, name):
    """Test that names escaping the cache directory are rejected."""
    with pytest.raises(ValueError, match='Invalid cache key'):
        cache.path_for(name)
    assert cache.lookup(name) is None


def test_remove(cache):
    """Test removing present and missing entries."""
    list(cache.tee(iter([b'abc']), 'file.txt'))

    cache.remove('file.txt')
    cache.remove('file.txt')

    assert cache.lookup('file.txt') is None
