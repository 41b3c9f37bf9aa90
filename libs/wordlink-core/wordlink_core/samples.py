"""Demo sentences offered when no source text is supplied."""

import random
from typing import List

DUTCH_SENTENCES: List[str] = [
    "De kat slaapt op de bank.",
    "Ik hou van Nederlandse kaas en stroopwafels.",
    "Het weer is vandaag erg mooi en zonnig.",
    "Mijn broer woont in Amsterdam bij het kanaal.",
    "We gaan morgen naar de markt om groenten te kopen.",
]


def random_sentence(rng: random.Random | None = None) -> str:
    return (rng or random).choice(DUTCH_SENTENCES)
