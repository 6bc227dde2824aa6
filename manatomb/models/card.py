from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Card:
    """
    A card record from the catalog.

    Attributes:
        name: Exact card name as the catalog spells it
        mana_cost: Mana cost string (e.g., "{1}{U}{U}")
        type_line: Full type line (e.g., "Legendary Creature — Elf Druid")
        oracle_text: Rules text
        image_uri: URL of the normal-size card image
        id: Local store id, None for search results that were never persisted
    """

    name: str
    mana_cost: str | None = None
    type_line: str | None = None
    oracle_text: str | None = None
    image_uri: str | None = None
    id: int | None = None
