"""
core/services/naming.py
Gerador de rótulos no estilo Docker (adjetivo_substantivo) para alvos
cadastrados sem nome.

Colisões entre hosts são aceitas: o rótulo é só para exibição, a chave
do alvo continua sendo o IP.
"""

from __future__ import annotations

import random

ADJECTIVES: tuple[str, ...] = (
    "tipsy", "buzzed", "wobbly", "woozy", "dizzy", "sloshed", "boozy",
    "malty", "foamy", "spirited", "bubbly", "fermented", "distilled",
    "pickled", "hoppy", "frothy", "intoxicated", "groggy", "staggering",
    "tequila", "whiskey", "bourbon", "scotch", "vodka", "drunken",
    "brewed", "merry", "jolly", "barley", "potent", "spiked",
)

NOUNS: tuple[str, ...] = (
    "penguin", "octopus", "falcon", "walrus", "koala", "badger", "otter",
    "tiger", "panda", "jaguar", "elephant", "wombat", "platypus", "meerkat",
    "gorilla", "dolphin", "raccoon", "narwhal", "salmon", "buffalo", "mongoose",
    "ferret", "squirrel", "lobster", "hedgehog", "beaver", "armadillo",
    "gecko", "iguana", "pelican", "ostrich", "flamingo", "hippo", "turtle",
)


def generate_host_name(rng: random.Random) -> str:
    """Sorteia ``adjetivo_substantivo`` usando a fonte aleatória recebida."""
    return f"{rng.choice(ADJECTIVES)}_{rng.choice(NOUNS)}"
