"""Tests for identifier generators."""

import re

from server.apps.files.infrastructure.generators import (
    GENERATORS,
    generate_gfycat,
    generate_id,
    generate_nanoid,
    generate_random,
    generate_timestamp,
    generate_zws,
    is_zws,
)


def test_generate_random():
    """Test alphanumeric identifiers of the requested length."""
    value = generate_random(12)
    assert re.fullmatch(r'[A-Za-z0-9]{12}', value)


def test_generate_nanoid():
    """Test URL-safe identifiers."""
    value = generate_nanoid(10)
    assert re.fullmatch(r'[A-Za-z0-9_-]{10}', value)


def test_generate_timestamp():
    """Test millisecond timestamp identifiers."""
    assert generate_timestamp().isdigit()


def test_generate_zws():
    """Test invisible identifiers with a minimum length."""
    value = generate_zws(6)

    assert len(value) == 12
    assert is_zws(value)
    assert not value.isascii()


def test_generate_gfycat():
    """Test adjective-adjective-animal identifiers."""
    words = generate_gfycat(2).split('-')
    assert len(words) == 3
    assert all(word.isalpha() for word in words)


def test_is_zws():
    """Test zero-width detection."""
    assert not is_zws('')
    assert not is_zws('abc')
    assert is_zws('\u200b\u200c')


def test_generate_id_uses_strategy():
    """Test dispatch to the named strategy."""
    assert is_zws(generate_id('zws'))
    assert len(generate_id('gfycat', 2).split('-')) == 3


def test_generate_id_unknown_strategy_falls_back_to_random():
    """Test fallback for unknown or missing strategy names."""
    assert re.fullmatch(r'[A-Za-z0-9]{6}', generate_id('unknown'))
    assert re.fullmatch(r'[A-Za-z0-9]{6}', generate_id(None))


def test_all_generators_registered():
    """Test the strategy registry."""
    assert set(GENERATORS) == {'random', 'gfycat', 'zws', 'nanoid', 'timestamp'}
