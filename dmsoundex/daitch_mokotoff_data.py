# ═════════════════════════════════════════════════════════════════════════════════
# STATIC DATA FOR THE DAITCH-MOKOTOFF ENCODER
# ═════════════════════════════════════════════════════════════════════════════════
#
# The phonetic rules themselves live in dmrules.txt next to this module. This file
# holds the small tables the encoder needs besides the rules:
# 1. ACCENT_FOLDING: accented Latin letters -> base letters, applied after lowercasing
# 2. VOWELS: letters that select the "before a vowel" replacement of a rule
#
# All structures are read-only so they can be shared between threads.
# ═════════════════════════════════════════════════════════════════════════════════

from pathlib import Path
from types import MappingProxyType

DEFAULT_RULES_PATH = Path(__file__).parent / "dmrules.txt"

_ACCENT_FOLDING = {
    "ß": "s",  # German sharp s
    # a
    "à": "a",
    "á": "a",
    "â": "a",
    "ã": "a",
    "ä": "a",
    "å": "a",
    "æ": "a",
    # c
    "ç": "c",
    "ć": "c",  # Polish
    # e
    "è": "e",
    "é": "e",
    "ê": "e",
    "ë": "e",
    # i
    "ì": "i",
    "í": "i",
    "î": "i",
    "ï": "i",
    # d
    "ð": "d",  # eth
    # n
    "ñ": "n",
    # o
    "ò": "o",
    "ó": "o",
    "ô": "o",
    "õ": "o",
    "ö": "o",
    "ø": "o",
    # u
    "ù": "u",
    "ú": "u",
    "û": "u",
    # y
    "ý": "y",
    "ÿ": "y",
    # b
    "þ": "b",  # thorn
    # Polish letters without a rule of their own
    "ł": "l",
    "ś": "s",
    "ż": "z",
    "ź": "z",
}

ACCENT_FOLDING = MappingProxyType(_ACCENT_FOLDING)

VOWELS = frozenset("aeiou")
