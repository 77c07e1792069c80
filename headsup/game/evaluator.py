"""
Hand categorisation and comparison.

A five-card hand is sorted ascending by rank and passed through nine
category detectors. A detector returns None when the hand is not of its
category, otherwise the cards that decide ties within the category,
ordered from least to most significant. ``break_tie`` walks those keys
from the end, so the last key is compared first.
"""

from collections import Counter
from enum import IntEnum
from itertools import combinations
from typing import Callable, NamedTuple, Optional, Sequence

from headsup.errors import (
    InvalidBoardSizeError,
    KeyLengthMismatchError,
    NoCategoryMatchedError,
)
from .cards import Card, HoleCards, Rank, as_hand, check_distinct


class HandCategory(IntEnum):
    """Hand categories, higher is better."""
    HIGH_CARD = 1
    PAIR = 2
    TWO_PAIR = 3
    THREE_OF_A_KIND = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    FOUR_OF_A_KIND = 8
    STRAIGHT_FLUSH = 9

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    HandCategory.HIGH_CARD: "High Card",
    HandCategory.PAIR: "Pair",
    HandCategory.TWO_PAIR: "Two Pair",
    HandCategory.THREE_OF_A_KIND: "Three of a Kind",
    HandCategory.STRAIGHT: "Straight",
    HandCategory.FLUSH: "Flush",
    HandCategory.FULL_HOUSE: "Full House",
    HandCategory.FOUR_OF_A_KIND: "Four of a Kind",
    HandCategory.STRAIGHT_FLUSH: "Straight Flush",
}

Keys = list[Card]

WHEEL_RANKS = (Rank.TWO, Rank.THREE, Rank.FOUR, Rank.FIVE, Rank.ACE)


class BestHand(NamedTuple):
    """Category of a player's best five cards and its tie-break keys."""
    category: HandCategory
    keys: tuple[Card, ...]


def _shape(hand: Sequence[Card]) -> tuple[int, ...]:
    """Sorted multiplicities of the ranks, e.g. (1, 2, 2) for two pair."""
    return tuple(sorted(Counter(card.rank for card in hand).values()))


def _is_suited(hand: Sequence[Card]) -> bool:
    return all(card.suit == hand[0].suit for card in hand[1:])


def _straight_key(hand: Sequence[Card]) -> Optional[Keys]:
    """High card of the straight (the five for a wheel), or None."""
    ranks = tuple(card.rank for card in hand)
    if ranks == WHEEL_RANKS:
        return [hand[3]]
    for low, high in zip(ranks, ranks[1:]):
        if low.successor != high:
            return None
    return [hand[4]]


def straight_flush(hand: Sequence[Card]) -> Optional[Keys]:
    if not _is_suited(hand):
        return None
    return _straight_key(hand)


def four_of_a_kind(hand: Sequence[Card]) -> Optional[Keys]:
    if hand[0].rank == hand[3].rank:
        return [hand[4], hand[0]]
    if hand[1].rank == hand[4].rank:
        return [hand[0], hand[4]]
    return None


def full_house(hand: Sequence[Card]) -> Optional[Keys]:
    if hand[0].rank != hand[1].rank or hand[3].rank != hand[4].rank:
        return None
    # Trips are the last key so they outrank the pair.
    if hand[1].rank == hand[2].rank:
        return [hand[4], hand[0]]
    if hand[2].rank == hand[3].rank:
        return [hand[0], hand[4]]
    return None


def flush(hand: Sequence[Card]) -> Optional[Keys]:
    if not _is_suited(hand) or _straight_key(hand) is not None:
        return None
    return list(hand)


def straight(hand: Sequence[Card]) -> Optional[Keys]:
    if _is_suited(hand):
        return None
    return _straight_key(hand)


def three_of_a_kind(hand: Sequence[Card]) -> Optional[Keys]:
    if _shape(hand) != (1, 1, 3):
        return None
    if hand[0].rank == hand[2].rank:
        return [hand[3], hand[4], hand[0]]
    if hand[1].rank == hand[3].rank:
        return [hand[0], hand[4], hand[1]]
    return [hand[0], hand[1], hand[2]]


def two_pair(hand: Sequence[Card]) -> Optional[Keys]:
    if _shape(hand) != (1, 2, 2):
        return None
    if hand[0].rank == hand[1].rank and hand[3].rank == hand[4].rank:
        return [hand[2], hand[0], hand[3]]
    if hand[0].rank == hand[1].rank:
        return [hand[4], hand[0], hand[3]]
    return [hand[0], hand[1], hand[3]]


def one_pair(hand: Sequence[Card]) -> Optional[Keys]:
    if _shape(hand) != (1, 1, 1, 2):
        return None
    for i in range(4):
        if hand[i].rank == hand[i + 1].rank:
            kickers = [card for j, card in enumerate(hand) if j not in (i, i + 1)]
            return kickers + [hand[i + 1]]
    return None


def high_card(hand: Sequence[Card]) -> Optional[Keys]:
    if _shape(hand) != (1, 1, 1, 1, 1):
        return None
    if _is_suited(hand) or _straight_key(hand) is not None:
        return None
    return list(hand)


Detector = Callable[[Sequence[Card]], Optional[Keys]]

# Highest category first.
DETECTORS: tuple[tuple[HandCategory, Detector], ...] = (
    (HandCategory.STRAIGHT_FLUSH, straight_flush),
    (HandCategory.FOUR_OF_A_KIND, four_of_a_kind),
    (HandCategory.FULL_HOUSE, full_house),
    (HandCategory.FLUSH, flush),
    (HandCategory.STRAIGHT, straight),
    (HandCategory.THREE_OF_A_KIND, three_of_a_kind),
    (HandCategory.TWO_PAIR, two_pair),
    (HandCategory.PAIR, one_pair),
    (HandCategory.HIGH_CARD, high_card),
)


def _evaluate_sorted(hand: Sequence[Card]) -> BestHand:
    for category, detector in DETECTORS:
        keys = detector(hand)
        if keys is not None:
            return BestHand(category, tuple(keys))
    raise NoCategoryMatchedError(
        f"No category matched: {' '.join(str(c) for c in hand)}"
    )


def evaluate_five(cards: Sequence[Card]) -> BestHand:
    """
    Categorise exactly five cards.

    Args:
        cards: Five distinct cards in any order

    Returns:
        BestHand with the category and tie-break keys
    """
    if len(cards) != 5:
        raise InvalidBoardSizeError(f"Expected 5 cards, got {len(cards)}")
    check_distinct(cards)
    return _evaluate_sorted(sorted(cards))


def break_tie(self_keys: Sequence[Card], opponent_keys: Sequence[Card]) -> int:
    """
    Compare tie-break keys of two hands of the same category.

    Returns:
        -1 if self wins, 1 if the opponent wins, 0 on a tie
    """
    if len(self_keys) != len(opponent_keys):
        raise KeyLengthMismatchError(
            f"Key lengths differ: {list(self_keys)} vs {list(opponent_keys)}"
        )
    for mine, theirs in zip(reversed(self_keys), reversed(opponent_keys)):
        if mine.rank > theirs.rank:
            return -1
        if mine.rank < theirs.rank:
            return 1
    return 0


def _best_of(seven: list[Card]) -> BestHand:
    # Subsets of a sorted list come out sorted, which the detectors require.
    seven.sort()
    best: Optional[BestHand] = None
    for five in combinations(seven, 5):
        current = _evaluate_sorted(five)
        if (
            best is None
            or current.category > best.category
            or (
                current.category == best.category
                and break_tie(current.keys, best.keys) == -1
            )
        ):
            best = current
    return best


def evaluate_best_hand(hole: HoleCards, board: Sequence[Card]) -> BestHand:
    """
    Best five-card hand from two hole cards and a complete board.

    Args:
        hole: The player's two cards
        board: Exactly five community cards

    Returns:
        BestHand(category, keys) of the strongest of the 21 five-card subsets
    """
    if len(board) != 5:
        raise InvalidBoardSizeError(f"Board must have exactly 5 cards, got {len(board)}")
    hand = as_hand(hole)
    seven = [*hand.cards, *board]
    check_distinct(seven)
    return _best_of(seven)


def showdown(self_cards: Sequence[Card], opponent_cards: Sequence[Card],
             board: Sequence[Card]) -> int:
    """compare_hands without input validation."""
    mine = _best_of([*self_cards, *board])
    theirs = _best_of([*opponent_cards, *board])
    if mine.category > theirs.category:
        return -1
    if mine.category < theirs.category:
        return 1
    return break_tie(mine.keys, theirs.keys)


def compare_hands(self_hole: HoleCards, opponent_hole: HoleCards,
                  board: Sequence[Card]) -> int:
    """
    Showdown result on a complete board.

    Returns:
        -1 if self wins, 1 if the opponent wins, 0 on a split
    """
    if len(board) != 5:
        raise InvalidBoardSizeError(f"Board must have exactly 5 cards, got {len(board)}")
    mine = as_hand(self_hole)
    theirs = as_hand(opponent_hole)
    check_distinct([*mine.cards, *theirs.cards, *board])
    return showdown(mine.cards, theirs.cards, board)
