"""Identifier generators for public file ids and short link tags.

Every strategy is a ``generate(length) -> str`` callable. Users pick
a strategy in their profile (``UserProfile.shortener``).
"""

import secrets
import string
import time
from collections.abc import Callable
from typing import Final

_ALPHANUMERIC: Final = string.ascii_letters + string.digits
_NANOID_ALPHABET: Final = string.ascii_letters + string.digits + '_-'

_ZERO_WIDTH_CHARS: Final = ('\u200b', '\u200c', '\u200d', '\u2060')
_ZWS_MIN_LENGTH: Final = 12

_GFYCAT_ADJECTIVE_COUNT: Final = 2

_ADJECTIVES: Final = (
    'able', 'amber', 'ancient', 'brave', 'bright', 'brisk', 'calm',
    'clever', 'cosmic', 'crisp', 'curly', 'daring', 'eager', 'fancy',
    'fluffy', 'frosty', 'gentle', 'giant', 'golden', 'happy', 'hidden',
    'humble', 'icy', 'jolly', 'keen', 'lively', 'lucky', 'mellow',
    'mighty', 'misty', 'nimble', 'noble', 'odd', 'plucky', 'proud',
    'quick', 'quiet', 'rapid', 'rusty', 'shiny', 'silent', 'sleepy',
    'spicy', 'sunny', 'swift', 'tidy', 'tiny', 'vivid', 'wild', 'witty',
)

_ANIMALS: Final = (
    'aardvark', 'albatross', 'alpaca', 'badger', 'beaver', 'bison',
    'bobcat', 'camel', 'capybara', 'cheetah', 'cougar', 'coyote', 'crane',
    'dingo', 'dolphin', 'eagle', 'falcon', 'ferret', 'gazelle', 'gecko',
    'gibbon', 'heron', 'hyena', 'ibex', 'iguana', 'jackal', 'jaguar',
    'koala', 'lemur', 'lynx', 'macaw', 'marmot', 'meerkat', 'narwhal',
    'ocelot', 'otter', 'panda', 'pelican', 'puffin', 'quokka', 'raccoon',
    'salamander', 'seal', 'tapir', 'toucan', 'walrus', 'wombat', 'yak',
    'zebra', 'wolverine',
)


def generate_random(length: int = 6) -> str:
    """Random alphanumeric string."""
    return ''.join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_nanoid(length: int = 21) -> str:
    """URL-safe random string in the nanoid alphabet."""
    return ''.join(secrets.choice(_NANOID_ALPHABET) for _ in range(length))


def generate_timestamp(length: int = 0) -> str:
    """Current time in milliseconds. Length is ignored."""
    return str(time.time_ns() // 1_000_000)


def generate_zws(length: int = _ZWS_MIN_LENGTH) -> str:
    """Invisible identifier made of zero-width characters.

    The result always ends with a zero-width space so that it can be
    told apart from an empty path segment.
    """
    length = max(length, _ZWS_MIN_LENGTH)
    chars = [secrets.choice(_ZERO_WIDTH_CHARS) for _ in range(length)]
    return ''.join(chars[1:]) + _ZERO_WIDTH_CHARS[0]


def generate_gfycat(length: int = _GFYCAT_ADJECTIVE_COUNT) -> str:
    """Word pair such as ``brave-sunny-otter``. Length is ignored."""
    words = [
        secrets.choice(_ADJECTIVES)
        for _ in range(_GFYCAT_ADJECTIVE_COUNT)
    ]
    words.append(secrets.choice(_ANIMALS))
    return '-'.join(words)


def is_zws(value: str) -> bool:
    """Check whether a string consists only of zero-width characters."""
    return bool(value) and all(char in _ZERO_WIDTH_CHARS for char in value)


GENERATORS: Final[dict[str, Callable[[int], str]]] = {
    'random': generate_random,
    'gfycat': generate_gfycat,
    'zws': generate_zws,
    'nanoid': generate_nanoid,
    'timestamp': generate_timestamp,
}

DEFAULT_GENERATOR: Final = 'random'


def generate_id(strategy: str | None, length: int = 6) -> str:
    """Generate an identifier with the named strategy.

    Unknown strategy names fall back to ``random``.

    Args:
        strategy: Generator name from ``GENERATORS``.
        length: Requested length (ignored by some strategies).

    Returns:
        Generated identifier.
    """
    generator = GENERATORS.get(strategy or '', GENERATORS[DEFAULT_GENERATOR])
    return generator(length)
