"""
Column name constants used for schema adaptation.

Every set here is a tuning knob for the column classifier and the
legality discovery. Nothing in this module names a play format: formats
are discovered from the live schema.
"""

from __future__ import annotations

from typing import Final

# Known list columns that don't follow the plural naming convention
# (or that we never want the heuristic to miss). Union over cards and tokens.
ARRAY_COLUMN_BASELINE: Final[frozenset[str]] = frozenset(
    {
        "artistIds",
        "attractionLights",
        "availability",
        "boosterTypes",
        "cardParts",
        "colorIdentity",
        "colorIndicator",
        "colors",
        "finishes",
        "frameEffects",
        "keywords",
        "originalPrintings",
        "otherFaceIds",
        "printings",
        "producedMana",
        "promoTypes",
        "rebalancedPrintings",
        "reverseRelated",
        "subsets",
        "subtypes",
        "supertypes",
        "types",
        "variations",
    }
)

# Always SCALAR, whatever the name looks like: free text that contains
# commas, JSON struct columns, and singular nouns that end in "s".
SCALAR_COLUMN_BLOCKLIST: Final[frozenset[str]] = frozenset(
    {
        "text",
        "originalText",
        "flavorText",
        "printedText",
        "identifiers",
        "legalities",
        "leadershipSkills",
        "purchaseUrls",
        "relatedCards",
        "rulings",
        "sourceProducts",
        "foreignData",
        "translations",
        "power",
        "toughness",
        "status",
        "format",
        "uris",
        "scryfallUri",
    }
)

# VARCHAR columns holding serialized JSON, cast to the engine's JSON type
JSON_CAST_COLUMNS: Final[frozenset[str]] = frozenset(
    {
        "identifiers",
        "legalities",
        "leadershipSkills",
        "purchaseUrls",
        "relatedCards",
        "rulings",
        "sourceProducts",
        "foreignData",
        "translations",
    }
)

# Words ending in "s" that are singular (or uncountable) and must not
# trigger the plural heuristic. Compared against the last camelCase word.
FALSE_PLURAL_NOUNS: Final[frozenset[str]] = frozenset(
    {
        "alias",
        "analysis",
        "atlas",
        "basis",
        "bias",
        "bonus",
        "canvas",
        "chaos",
        "corpus",
        "gas",
        "has",
        "is",
        "its",
        "lens",
        "news",
        "plus",
        "series",
        "species",
        "status",
        "this",
        "thus",
        "was",
        "yes",
    }
)

# Suffixes that mark a singular noun even though the word ends in "s"
SINGULAR_SUFFIXES: Final[tuple[str, ...]] = ("ss", "us", "is")

# Columns in a legality artifact that are never format columns
NON_LEGALITY_COLUMNS: Final[frozenset[str]] = frozenset(
    {
        "uuid",
        "name",
        "setCode",
        "id",
    }
)

# Normalized legality status domain (upstream "Not Legal" -> "not_legal")
LEGALITY_STATUSES: Final[tuple[str, ...]] = (
    "legal",
    "not_legal",
    "banned",
    "restricted",
    "suspended",
)

# Storage types that can hold delimited text destined to become a list
DELIMITED_TEXT_TYPES: Final[frozenset[str]] = frozenset({"VARCHAR", "TEXT", "STRING"})

LIST_DELIMITER: Final[str] = ", "
