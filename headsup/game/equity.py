"""
Heads-up equity calculation.

Two strategies are available. Exact enumeration visits every way of
completing the board and is the right choice from the flop on. Monte
Carlo sampling deals random completions and is used pre-flop, where
exact enumeration has to visit C(48, 5) = 1,712,304 boards.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from itertools import combinations
from math import comb
from typing import Callable, Iterator, Optional, Sequence

import numpy as np

from headsup.errors import EvaluationError, InvalidBoardSizeError
from .cards import Card, Deck, HoleCards, RngLike, as_hand, check_distinct, make_rng
from .evaluator import evaluate_best_hand, showdown

logger = logging.getLogger(__name__)

BOARD_SIZES = (0, 3, 4, 5)
METHODS = ("auto", "exact", "monte_carlo")

ProgressCallback = Callable[[int, int], None]


class BoardCompletions:
    """
    Every way to finish a board from the remaining cards.

    Cards are picked at strictly increasing positions in ``remaining``, so
    each set of cards appears once. Only completions whose first card sits
    at a position in ``[start, stop)`` are produced, which lets the full
    sequence be split into independent index ranges. The object can be
    iterated any number of times.
    """

    def __init__(
        self,
        remaining: Sequence[Card],
        needed: int,
        start: int = 0,
        stop: Optional[int] = None,
    ):
        if needed < 0 or needed > len(remaining):
            raise ValueError(f"Cannot pick {needed} of {len(remaining)} cards")
        self.remaining = tuple(remaining)
        self.needed = needed
        last = 1 if needed == 0 else len(remaining) - needed + 1
        self.start = start
        self.stop = last if stop is None else min(stop, last)

    def __iter__(self) -> Iterator[tuple[Card, ...]]:
        if self.needed == 0:
            if self.start < self.stop:
                yield ()
            return
        cards = self.remaining
        n = len(cards)
        for first in range(self.start, self.stop):
            for rest in combinations(range(first + 1, n), self.needed - 1):
                yield (cards[first], *(cards[i] for i in rest))

    def _count_from(self, first: int) -> int:
        return comb(len(self.remaining) - 1 - first, self.needed - 1)

    def __len__(self) -> int:
        if self.needed == 0:
            return max(0, self.stop - self.start)
        return sum(self._count_from(i) for i in range(self.start, self.stop))

    def shard(self, parts: int) -> list["BoardCompletions"]:
        """Split into at most ``parts`` contiguous ranges of similar size."""
        if self.needed == 0 or parts <= 1:
            return [self]
        target = len(self) / parts
        shards = []
        low = self.start
        seen = 0
        for first in range(self.start, self.stop):
            seen += self._count_from(first)
            if len(shards) < parts - 1 and seen >= target * (len(shards) + 1):
                shards.append(BoardCompletions(self.remaining, self.needed, low, first + 1))
                low = first + 1
        if low < self.stop:
            shards.append(BoardCompletions(self.remaining, self.needed, low, self.stop))
        return shards


@dataclass
class Tally:
    """Showdown counts from the first player's point of view."""
    wins: int = 0
    ties: int = 0
    losses: int = 0

    def record(self, result: int) -> None:
        if result == -1:
            self.wins += 1
        elif result == 0:
            self.ties += 1
        else:
            self.losses += 1

    @property
    def total(self) -> int:
        return self.wins + self.ties + self.losses

    def __add__(self, other: "Tally") -> "Tally":
        return Tally(
            self.wins + other.wins,
            self.ties + other.ties,
            self.losses + other.losses,
        )


@dataclass(frozen=True)
class OddsResult:
    """Outcome counts of an equity calculation."""
    wins: int
    ties: int
    losses: int
    method: str

    @property
    def total(self) -> int:
        return self.wins + self.ties + self.losses

    @property
    def win(self) -> float:
        return self.wins / self.total

    @property
    def tie(self) -> float:
        return self.ties / self.total

    @property
    def loss(self) -> float:
        return self.losses / self.total

    @property
    def equity(self) -> float:
        """Win probability plus half the tie probability."""
        return (self.wins + self.ties / 2) / self.total

    def as_tuple(self) -> tuple[float, float]:
        """(win probability, tie probability)."""
        return (self.win, self.tie)

    def swapped(self) -> "OddsResult":
        """The same result seen from the opponent's side."""
        return OddsResult(self.losses, self.ties, self.wins, self.method)


@dataclass
class OddsConfig:
    """Configuration for equity calculations."""
    method: str = "auto"           # "auto", "exact" or "monte_carlo"
    trials: int = 100_000          # Monte Carlo trials
    exact_min_board: int = 3       # "auto" enumerates exactly from this board size
    workers: int = 1               # Processes to shard work across
    seed: Optional[int] = None     # Seed for the default generator
    time_limit: Optional[float] = None  # Seconds; Monte Carlo stops early when reached
    progress_interval: int = 1000  # Trials between progress callbacks

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(f"Unknown method {self.method!r}, expected one of {METHODS}")
        if self.trials <= 0:
            raise ValueError(f"trials must be positive, got {self.trials}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")
        if self.progress_interval <= 0:
            raise ValueError(f"progress_interval must be positive, got {self.progress_interval}")


def _tally_exact(
    self_cards: tuple[Card, Card],
    opponent_cards: tuple[Card, Card],
    board: tuple[Card, ...],
    completions: BoardCompletions,
) -> Tally:
    tally = Tally()
    for extra in completions:
        tally.record(showdown(self_cards, opponent_cards, board + extra))
    return tally


def _tally_monte_carlo(
    self_cards: tuple[Card, Card],
    opponent_cards: tuple[Card, Card],
    board: tuple[Card, ...],
    deck: Deck,
    trials: int,
    rng: np.random.Generator,
    time_limit: Optional[float] = None,
    callback: Optional[ProgressCallback] = None,
    interval: int = 1000,
) -> Tally:
    deadline = None if time_limit is None else time.monotonic() + time_limit
    tally = Tally()
    for trial in range(trials):
        if deadline is not None and time.monotonic() >= deadline:
            logger.info("Time limit reached after %d of %d trials", trial, trials)
            break
        working = deck.copy()
        full_board = list(board)
        while len(full_board) < 5:
            full_board.append(working.draw_random(rng))
        tally.record(showdown(self_cards, opponent_cards, full_board))
        if callback is not None and (trial + 1) % interval == 0:
            callback(trial + 1, trials)
    return tally


class EquityCalculator:
    """
    Heads-up win / tie probabilities on a partial board.

    Supports exact enumeration of every board completion and Monte
    Carlo sampling with a caller-supplied random generator.
    """

    def __init__(self, config: Optional[OddsConfig] = None, rng: RngLike = None):
        """
        Initialize calculator.

        Args:
            config: Calculation settings
            rng: numpy Generator or seed; defaults to ``config.seed``
        """
        self.config = config or OddsConfig()
        self.rng = make_rng(self.config.seed if rng is None else rng)

    def _prepare(
        self,
        self_hole: HoleCards,
        opponent_hole: HoleCards,
        board: Sequence[Card],
    ) -> tuple[tuple[Card, Card], tuple[Card, Card], tuple[Card, ...], Deck]:
        mine = as_hand(self_hole)
        theirs = as_hand(opponent_hole)
        board = tuple(board)
        if len(board) not in BOARD_SIZES:
            raise InvalidBoardSizeError(
                f"Board must have 0, 3, 4 or 5 cards, got {len(board)}"
            )
        known = [*mine.cards, *theirs.cards, *board]
        check_distinct(known)
        return mine.cards, theirs.cards, board, Deck().without(known)

    def choose_method(self, board_size: int) -> str:
        """Exact from the flop on, Monte Carlo before it, unless forced."""
        if self.config.method != "auto":
            return self.config.method
        return "exact" if board_size >= self.config.exact_min_board else "monte_carlo"

    def calculate(
        self,
        self_hole: HoleCards,
        opponent_hole: HoleCards,
        board: Sequence[Card] = (),
        callback: Optional[ProgressCallback] = None,
    ) -> OddsResult:
        """Run whichever strategy ``choose_method`` picks for this board."""
        method = self.choose_method(len(board))
        logger.debug("Board has %d cards, using %s", len(board), method)
        if method == "exact":
            return self.exact(self_hole, opponent_hole, board)
        return self.monte_carlo(self_hole, opponent_hole, board, callback=callback)

    def exact(
        self,
        self_hole: HoleCards,
        opponent_hole: HoleCards,
        board: Sequence[Card] = (),
    ) -> OddsResult:
        """
        Enumerate every completion of the board.

        Args:
            self_hole: First player's hole cards
            opponent_hole: Second player's hole cards
            board: Known board cards (0, 3, 4 or 5)

        Returns:
            OddsResult counted over C(52 - known, 5 - len(board)) boards
        """
        mine, theirs, board, deck = self._prepare(self_hole, opponent_hole, board)
        needed = 5 - len(board)
        expected = comb(len(deck), needed)
        completions = BoardCompletions(deck.cards, needed)
        workers = self.config.workers

        logger.debug("Enumerating %d boards with %d worker(s)", expected, workers)
        started = time.perf_counter()

        if workers == 1:
            tally = _tally_exact(mine, theirs, board, completions)
        else:
            tally = Tally()
            with ProcessPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(_tally_exact, mine, theirs, board, shard)
                    for shard in completions.shard(workers)
                ]
                for future in as_completed(futures):
                    tally = tally + future.result()

        if tally.total != expected:
            raise EvaluationError(
                f"Enumerated {tally.total} boards, expected {expected}"
            )
        logger.debug("Enumeration finished in %.2fs", time.perf_counter() - started)
        return OddsResult(tally.wins, tally.ties, tally.losses, "exact")

    def monte_carlo(
        self,
        self_hole: HoleCards,
        opponent_hole: HoleCards,
        board: Sequence[Card] = (),
        trials: Optional[int] = None,
        callback: Optional[ProgressCallback] = None,
    ) -> OddsResult:
        """
        Estimate odds from random board completions.

        Args:
            self_hole: First player's hole cards
            opponent_hole: Second player's hole cards
            board: Known board cards (0, 3, 4 or 5)
            trials: Number of trials, defaults to ``config.trials``
            callback: Called with (trials done, trials requested)

        Returns:
            OddsResult over the trials that completed
        """
        trials = self.config.trials if trials is None else trials
        if trials <= 0:
            raise ValueError(f"trials must be positive, got {trials}")
        mine, theirs, board, deck = self._prepare(self_hole, opponent_hole, board)
        workers = min(self.config.workers, trials)
        time_limit = self.config.time_limit

        logger.debug("Sampling %d boards with %d worker(s)", trials, workers)
        started = time.perf_counter()

        if workers == 1:
            tally = _tally_monte_carlo(
                mine, theirs, board, deck, trials, self.rng,
                time_limit, callback, self.config.progress_interval,
            )
        else:
            chunks = [trials // workers + (1 if i < trials % workers else 0) for i in range(workers)]
            generators = self.rng.spawn(workers)
            tally = Tally()
            with ProcessPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(
                        _tally_monte_carlo, mine, theirs, board, deck.copy(),
                        chunk, generator, time_limit,
                    )
                    for chunk, generator in zip(chunks, generators)
                ]
                for future in as_completed(futures):
                    tally = tally + future.result()
                    if callback is not None:
                        callback(tally.total, trials)

        if tally.total == 0:
            raise TimeoutError("Time limit expired before any trial completed")
        logger.debug(
            "Sampled %d boards in %.2fs", tally.total, time.perf_counter() - started
        )
        return OddsResult(tally.wins, tally.ties, tally.losses, "monte_carlo")


def compute_odds_exact(
    self_hole: HoleCards,
    opponent_hole: HoleCards,
    board: Sequence[Card] = (),
    workers: int = 1,
) -> tuple[float, float]:
    """Exact (win, tie) probabilities for the first hand."""
    calculator = EquityCalculator(OddsConfig(method="exact", workers=workers))
    return calculator.exact(self_hole, opponent_hole, board).as_tuple()


def compute_odds_monte_carlo(
    trials: int,
    self_hole: HoleCards,
    opponent_hole: HoleCards,
    board: Sequence[Card] = (),
    rng: RngLike = None,
    workers: int = 1,
) -> tuple[float, float]:
    """Sampled (win, tie) probabilities for the first hand."""
    config = OddsConfig(method="monte_carlo", trials=trials, workers=workers)
    calculator = EquityCalculator(config, rng=rng)
    return calculator.monte_carlo(self_hole, opponent_hole, board).as_tuple()


def compute_odds(
    self_hole: HoleCards,
    opponent_hole: HoleCards,
    board: Sequence[Card] = (),
    config: Optional[OddsConfig] = None,
    rng: RngLike = None,
    callback: Optional[ProgressCallback] = None,
) -> OddsResult:
    """
    Calculate odds with the strategy the config selects.

    Exact enumeration once the board has ``config.exact_min_board`` cards,
    Monte Carlo with ``config.trials`` trials before that.
    """
    return EquityCalculator(config, rng=rng).calculate(
        self_hole, opponent_hole, board, callback=callback
    )


def get_hand_class(hand: HoleCards, board: Sequence[Card]) -> str:
    """
    Get the hand class (e.g., "Two Pair", "Flush").

    Args:
        hand: Hand to evaluate
        board: Board cards (5)

    Returns:
        Hand class string
    """
    return evaluate_best_hand(hand, board).category.label
