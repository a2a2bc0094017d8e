"""Random guest display names such as ``QuietOtter417``.

Names are built from an English adjective supplied by Faker, an animal from a
fixed list and a number in 0..999. Nothing is persisted: a name is a
convenience for guests, not an identity.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from faker import Faker

logger = logging.getLogger(__name__)

ANIMALS: Sequence[str] = (
    "badger", "bear", "bee", "bison", "cat", "cheetah", "crane", "crow",
    "deer", "dolphin", "eagle", "falcon", "ferret", "fox", "gecko", "giraffe",
    "hawk", "hedgehog", "heron", "horse", "jaguar", "koala", "lemur", "leopard",
    "lion", "lynx", "moose", "newt", "octopus", "orca", "otter", "owl",
    "panda", "panther", "parrot", "pelican", "penguin", "puffin", "rabbit",
    "raccoon", "raven", "salamander", "seal", "shark", "sparrow", "squirrel",
    "swan", "tiger", "toucan", "turtle", "walrus", "whale", "wolf", "yak",
    "zebra",
)

_STRIP = re.compile(r"[\s-]+")


def _clean(word: str) -> str:
    word = _STRIP.sub("", word)
    return word[:1].upper() + word[1:]


class UsernameGenerator:
    """Produces ``Adjective + Animal + number`` guest names."""

    def __init__(self, seed: Optional[int] = None, locale: str = "en_US"):
        """Initialize the generator.

        Args:
            seed: Optional seed for reproducible names
            locale: Faker locale supplying the adjective word list
        """
        self._faker = Faker(locale)
        if seed is not None:
            self._faker.seed_instance(seed)

    def generate(self) -> str:
        adjective = _clean(self._faker.word(part_of_speech="adjective"))
        animal = _clean(self._faker.random_element(ANIMALS))
        number = self._faker.random_int(min=0, max=999)
        username = f"{adjective}{animal}{number}"
        logger.debug("Generated guest username", extra={"username": username})
        return username


_generator: Optional[UsernameGenerator] = None


def generate_username() -> str:
    """Generate a guest name using the shared generator."""
    global _generator
    if _generator is None:
        _generator = UsernameGenerator()
    return _generator.generate()
