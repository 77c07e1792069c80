"""Game representation and equity module."""

from .cards import Card, Deck, Hand, Rank, Suit, hand_to_treys, parse_cards
from .evaluator import (
    BestHand,
    HandCategory,
    break_tie,
    compare_hands,
    evaluate_best_hand,
    evaluate_five,
)
from .equity import (
    BoardCompletions,
    EquityCalculator,
    OddsConfig,
    OddsResult,
    compute_odds,
    compute_odds_exact,
    compute_odds_monte_carlo,
    get_hand_class,
)

__all__ = [
    "Card",
    "Hand",
    "Deck",
    "Rank",
    "Suit",
    "hand_to_treys",
    "parse_cards",
    "BestHand",
    "HandCategory",
    "break_tie",
    "compare_hands",
    "evaluate_best_hand",
    "evaluate_five",
    "BoardCompletions",
    "EquityCalculator",
    "OddsConfig",
    "OddsResult",
    "compute_odds",
    "compute_odds_exact",
    "compute_odds_monte_carlo",
    "get_hand_class",
]
