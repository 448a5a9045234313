from __future__ import annotations

import random
from enum import StrEnum

from pydantic import BaseModel, Field


class CardRank(StrEnum):
    one = "1"
    two = "2"
    three = "3"
    four = "4"
    five = "5"
    seven = "7"
    eight = "8"
    ten = "10"
    eleven = "11"
    twelve = "12"
    sorry = "Sorry!"

    @property
    def numeric_value(self) -> int | None:
        if self is CardRank.sorry:
            return None
        return int(self.value)


CARD_COUNTS: dict[CardRank, int] = {
    CardRank.one: 5,
    CardRank.two: 4,
    CardRank.three: 4,
    CardRank.four: 4,
    CardRank.five: 4,
    CardRank.seven: 4,
    CardRank.eight: 4,
    CardRank.ten: 4,
    CardRank.eleven: 4,
    CardRank.twelve: 4,
    CardRank.sorry: 4,
}

DECK_SIZE = sum(CARD_COUNTS.values())


def fresh_cards() -> list[CardRank]:
    cards: list[CardRank] = []
    for rank, count in CARD_COUNTS.items():
        cards.extend([rank] * count)
    return cards


class Deck(BaseModel):
    """Draw pile plus discard pile. The top of the draw pile is the end of the list."""

    draw_pile: list[CardRank] = Field(default_factory=list)
    discard_pile: list[CardRank] = Field(default_factory=list)

    @classmethod
    def fresh(cls, *, rng: random.Random) -> "Deck":
        cards = fresh_cards()
        rng.shuffle(cards)
        return cls(draw_pile=cards)

    @property
    def total_cards(self) -> int:
        return len(self.draw_pile) + len(self.discard_pile)

    def reshuffle_if_needed(self, *, rng: random.Random) -> bool:
        """Move the discard pile into the draw pile when the draw pile is exhausted."""

        if self.draw_pile or not self.discard_pile:
            return False
        cards = list(self.discard_pile)
        rng.shuffle(cards)
        self.draw_pile = cards
        self.discard_pile = []
        return True

    def draw(self, *, rng: random.Random) -> CardRank | None:
        """Pop the top card, reshuffling first if needed. None means both piles are empty."""

        self.reshuffle_if_needed(rng=rng)
        if not self.draw_pile:
            return None
        return self.draw_pile.pop()

    def discard(self, card: CardRank) -> None:
        self.discard_pile.append(card)

    def take(self, card: CardRank) -> CardRank:
        """Remove one copy of `card` from wherever it sits (draw pile first)."""

        for pile in (self.draw_pile, self.discard_pile):
            if card in pile:
                pile.remove(card)
                return card
        raise ValueError(f"No '{card.value}' card left in the deck")
