"""Card, hole-card and deck representation."""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator, Optional, Union

import numpy as np
from treys import Card as TreysCard

from headsup.errors import (
    CardNotFoundError,
    DeckExhaustedError,
    DuplicateCardError,
    InvalidCardError,
)


class Rank(IntEnum):
    """Card ranks (2-14 where 14 is Ace)."""
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    @property
    def index(self) -> int:
        """Zero-based index, 0 for a deuce through 12 for an ace."""
        return self.value - 2

    @property
    def successor(self) -> Optional["Rank"]:
        """Next rank up, or None above the ace (ranks do not wrap)."""
        if self is Rank.ACE:
            return None
        return Rank(self.value + 1)


class Suit(IntEnum):
    """Card suits."""
    CLUBS = 0
    DIAMONDS = 1
    HEARTS = 2
    SPADES = 3


# Mapping for string conversion
RANK_STR = {
    2: "2", 3: "3", 4: "4", 5: "5", 6: "6", 7: "7", 8: "8", 9: "9",
    10: "T", 11: "J", 12: "Q", 13: "K", 14: "A"
}
STR_RANK = {v: k for k, v in RANK_STR.items()}

SUIT_STR = {0: "c", 1: "d", 2: "h", 3: "s"}
STR_SUIT = {v: k for k, v in SUIT_STR.items()}

SUIT_SYMBOL = {0: "♣", 1: "♦", 2: "♥", 3: "♠"}

RngLike = Union[np.random.Generator, int, None]


def make_rng(rng: RngLike = None) -> np.random.Generator:
    """Return ``rng`` if it is a Generator, otherwise seed a new one from it."""
    return np.random.default_rng(rng)


@dataclass(frozen=True)
class Card:
    """
    A playing card.

    Equality uses rank and suit; ``<`` compares rank only, which is the
    order hands are sorted in before they are categorised.
    """
    rank: Rank
    suit: Suit

    def __post_init__(self):
        try:
            rank = Rank(self.rank)
            suit = Suit(self.suit)
        except ValueError:
            raise InvalidCardError(
                f"Invalid card: rank={self.rank!r}, suit={self.suit!r}"
            ) from None
        object.__setattr__(self, "rank", rank)
        object.__setattr__(self, "suit", suit)

    def __lt__(self, other: "Card") -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.rank < other.rank

    def __str__(self) -> str:
        return f"{RANK_STR[self.rank]}{SUIT_STR[self.suit]}"

    def __repr__(self) -> str:
        return str(self)

    @property
    def pretty(self) -> str:
        """Rank followed by the suit symbol, e.g. 'A♠'."""
        return f"{RANK_STR[self.rank]}{SUIT_SYMBOL[self.suit]}"

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Parse card from string like 'As', 'Th', '2c' (also '10h')."""
        s = s.strip()
        if len(s) == 3 and s[:2] == "10":
            s = "T" + s[2]
        if len(s) != 2:
            raise InvalidCardError(f"Invalid card string: {s!r}")
        rank_char = s[0].upper()
        suit_char = s[1].lower()

        if rank_char not in STR_RANK:
            raise InvalidCardError(f"Invalid rank: {rank_char}")
        if suit_char not in STR_SUIT:
            raise InvalidCardError(f"Invalid suit: {suit_char}")

        return cls(rank=STR_RANK[rank_char], suit=STR_SUIT[suit_char])

    def to_treys(self) -> int:
        """Convert to treys library card format."""
        return TreysCard.new(str(self))


@dataclass(frozen=True)
class Hand:
    """A two-card starting hand, higher card first."""
    card1: Card
    card2: Card

    def __post_init__(self):
        if self.card1 == self.card2:
            raise DuplicateCardError(f"Hole cards must differ: {self.card1}{self.card2}")
        # Ensure card1 has higher or equal rank
        if self.card1.rank < self.card2.rank:
            card1, card2 = self.card2, self.card1
            object.__setattr__(self, "card1", card1)
            object.__setattr__(self, "card2", card2)

    @property
    def cards(self) -> tuple[Card, Card]:
        return (self.card1, self.card2)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        return f"{self.card1}{self.card2}"

    def __repr__(self) -> str:
        return f"Hand({self.card1}, {self.card2})"

    @classmethod
    def from_cards(cls, cards: Iterable[Card]) -> "Hand":
        """Build from any two cards, e.g. a tuple or list."""
        cards = list(cards)
        if len(cards) != 2:
            raise InvalidCardError(f"A hand needs exactly 2 cards, got {len(cards)}")
        return cls(cards[0], cards[1])

    @classmethod
    def from_string(cls, s: str) -> "Hand":
        """Parse two specific cards, e.g. 'AsKh', 'As Kh' or 's,14;h,13'."""
        s = s.strip()
        if len(s) == 4:
            return cls(Card.from_string(s[:2]), Card.from_string(s[2:]))
        return cls.from_cards(parse_cards(s))

    def to_treys(self) -> list[int]:
        """Convert to treys library format."""
        return [self.card1.to_treys(), self.card2.to_treys()]


HoleCards = Union[Hand, tuple[Card, Card]]


def as_hand(hole: HoleCards) -> Hand:
    """Accept a Hand or a plain pair of cards."""
    if isinstance(hole, Hand):
        return hole
    return Hand.from_cards(hole)


def check_distinct(cards: Iterable[Card]) -> None:
    """Raise DuplicateCardError if any card appears twice."""
    seen: set[Card] = set()
    for card in cards:
        if not isinstance(card, Card):
            raise InvalidCardError(f"Not a card: {card!r}")
        if card in seen:
            raise DuplicateCardError(f"Duplicate card: {card}")
        seen.add(card)


class Deck:
    """
    The cards still available for dealing.

    Each Deck owns its card list. Code that needs to deal from the same
    starting point more than once takes a ``copy()`` rather than sharing
    and mutating one instance.
    """

    def __init__(self, cards: Optional[Iterable[Card]] = None):
        if cards is None:
            self.cards: list[Card] = [
                Card(rank, suit)
                for rank in Rank
                for suit in Suit
            ]
        else:
            self.cards = list(cards)
            check_distinct(self.cards)

    def copy(self) -> "Deck":
        deck = Deck.__new__(Deck)
        deck.cards = list(self.cards)
        return deck

    def deal(self, n: int = 1) -> list[Card]:
        """Deal n cards from the top of the deck."""
        if n > len(self.cards):
            raise DeckExhaustedError(
                f"Cannot deal {n} cards, only {len(self.cards)} remaining"
            )
        dealt = self.cards[:n]
        self.cards = self.cards[n:]
        return dealt

    def draw_random(self, rng: np.random.Generator) -> Card:
        """Remove and return a uniformly chosen card."""
        if not self.cards:
            raise DeckExhaustedError("Cannot draw from an empty deck")
        return self.cards.pop(int(rng.integers(len(self.cards))))

    def card_at(self, index: int) -> Card:
        """Card at a fixed position among the remaining cards."""
        return self.cards[index]

    def remove(self, cards: Iterable[Card]) -> None:
        """Remove specific cards; every card must be present."""
        for card in cards:
            try:
                self.cards.remove(card)
            except ValueError:
                raise CardNotFoundError(f"Card not found: {card}") from None

    def without(self, cards: Iterable[Card]) -> "Deck":
        """Copy of this deck with the given cards removed."""
        deck = self.copy()
        deck.remove(cards)
        return deck

    def __getitem__(self, index: int) -> Card:
        return self.cards[index]

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: object) -> bool:
        return card in self.cards

    def __len__(self) -> int:
        return len(self.cards)


def hand_to_treys(hand: Hand, board: list[Card]) -> tuple[list[int], list[int]]:
    """Convert hand and board to treys format."""
    hand_treys = hand.to_treys()
    board_treys = [c.to_treys() for c in board]
    return hand_treys, board_treys


_SUIT_RANK_RE = re.compile(r"^\s*([shdcSHDC])\s*,\s*(\d{1,2})\s*$")


def parse_cards(text: str) -> list[Card]:
    """
    Parse a list of cards.

    Examples:
        "AsKhTd" -> [As, Kh, Td]
        "As Kh Td" -> [As, Kh, Td]
        "As,Kh,Td" -> [As, Kh, Td]
        "s,14;h,13" -> [As, Kh]
    """
    text = text.strip()
    if not text:
        return []
    if ";" in text or _SUIT_RANK_RE.match(text):
        return parse_suit_rank_cards(text)

    compact = re.sub(r"[\s,]+", "", text).replace("10", "T")
    if len(compact) % 2:
        raise InvalidCardError(f"Invalid card list: {text!r}")
    return [Card.from_string(compact[i:i + 2]) for i in range(0, len(compact), 2)]


def parse_suit_rank_cards(text: str) -> list[Card]:
    """Parse the 'suit,rank' form separated by semicolons, e.g. 's,14;h,2'."""
    cards = []
    for entry in text.split(";"):
        if not entry.strip():
            continue
        match = _SUIT_RANK_RE.match(entry)
        if match is None:
            raise InvalidCardError(f"Invalid card: {entry.strip()!r}")
        suit = STR_SUIT[match.group(1).lower()]
        rank = int(match.group(2))
        if rank not in RANK_STR:
            raise InvalidCardError(f"Invalid rank: {rank}")
        cards.append(Card(rank, suit))
    return cards
