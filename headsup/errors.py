"""Exceptions raised by the evaluation and odds engine.

Input problems (bad cards, repeated cards, wrong board length) subclass
``ValueError`` so callers can treat them like any other bad argument.
Consistency failures inside the engine are raised as well and are never
skipped, since a skipped board would corrupt the aggregated probabilities.
"""


class HeadsUpError(Exception):
    """Base class for all errors raised by this package."""


class InvalidCardError(HeadsUpError, ValueError):
    """Unknown rank or suit, or an unparseable card string."""


class DuplicateCardError(HeadsUpError, ValueError):
    """The same card appears more than once across hole cards and board."""


class InvalidBoardSizeError(HeadsUpError, ValueError):
    """Board length is not one the operation accepts."""


class CardNotFoundError(HeadsUpError, LookupError):
    """Tried to remove a card that is not in the deck."""


class DeckExhaustedError(HeadsUpError, LookupError):
    """Tried to draw from an empty deck."""


class EvaluationError(HeadsUpError, RuntimeError):
    """Internal invariant violated while evaluating hands."""


class NoCategoryMatchedError(EvaluationError):
    """A five-card hand matched none of the nine categories."""


class KeyLengthMismatchError(EvaluationError):
    """Tie-break key lists of different length were compared."""
