"""Tests for equity calculations."""

import os
from math import comb

import numpy as np
import pytest

from headsup.errors import DuplicateCardError, InvalidBoardSizeError, NoCategoryMatchedError
from headsup.game import equity
from headsup.game.cards import Deck, Hand, parse_cards
from headsup.game.equity import (
    BoardCompletions,
    EquityCalculator,
    OddsConfig,
    OddsResult,
    compute_odds,
    compute_odds_exact,
    compute_odds_monte_carlo,
    get_hand_class,
)


@pytest.fixture
def board_flop():
    return parse_cards("Qc 7d 2s")


@pytest.fixture
def board_turn():
    return parse_cards("Kd 7c 2d 3s")


@pytest.fixture
def board_river():
    return parse_cards("Qc 7d 2s 9h 4c")


def _failing_tally(*args, **kwargs):
    """Worker entry point that fails the way a broken evaluator would."""
    raise NoCategoryMatchedError("no category matched in worker")


class FailingShowdown:
    """Replaces showdown; fails on the given call after deferring to the real one."""

    def __init__(self, fail_on):
        self.fail_on = fail_on
        self.calls = 0
        self.real = equity.showdown

    def __call__(self, *args):
        self.calls += 1
        if self.calls == self.fail_on:
            raise NoCategoryMatchedError("no category matched")
        return self.real(*args)


class FakeClock:
    """Stands in for the time module; every reading advances one second."""

    def __init__(self):
        self.now = 0.0

    def monotonic(self):
        reading = self.now
        self.now += 1.0
        return reading

    def perf_counter(self):
        return 0.0


class TestBoardCompletions:
    def test_count_and_uniqueness(self):
        remaining = Deck().cards[:10]
        completions = BoardCompletions(remaining, 3)
        boards = list(completions)

        assert len(completions) == comb(10, 3)
        assert len(boards) == comb(10, 3)
        assert len({frozenset(b) for b in boards}) == len(boards)

    def test_increasing_positions(self):
        remaining = Deck().cards[:8]
        for board in BoardCompletions(remaining, 2):
            positions = [remaining.index(card) for card in board]
            assert positions == sorted(positions)
            assert len(set(positions)) == len(positions)

    def test_restartable(self):
        completions = BoardCompletions(Deck().cards[:7], 2)
        assert list(completions) == list(completions)

    def test_shards_cover_everything_once(self):
        completions = BoardCompletions(Deck().cards[:20], 3)
        shards = completions.shard(4)

        assert 1 < len(shards) <= 4
        assert sum(len(s) for s in shards) == len(completions)
        assert [b for s in shards for b in s] == list(completions)

    def test_nothing_needed(self):
        completions = BoardCompletions(Deck().cards, 0)
        assert list(completions) == [()]
        assert len(completions) == 1
        assert completions.shard(3) == [completions]

    def test_too_many_needed(self):
        with pytest.raises(ValueError):
            BoardCompletions(Deck().cards[:2], 3)


class TestOddsResult:
    def test_probabilities(self):
        result = OddsResult(wins=6, ties=2, losses=2, method="exact")
        assert result.total == 10
        assert result.win == pytest.approx(0.6)
        assert result.tie == pytest.approx(0.2)
        assert result.loss == pytest.approx(0.2)
        assert result.equity == pytest.approx(0.7)
        assert result.as_tuple() == (pytest.approx(0.6), pytest.approx(0.2))

    def test_swapped(self):
        result = OddsResult(wins=6, ties=2, losses=2, method="exact").swapped()
        assert (result.wins, result.ties, result.losses) == (2, 2, 6)


class TestOddsConfig:
    def test_defaults(self):
        config = OddsConfig()
        assert config.method == "auto"
        assert config.trials == 100_000
        assert config.exact_min_board == 3

    @pytest.mark.parametrize("kwargs", [
        {"method": "guess"},
        {"trials": 0},
        {"workers": 0},
        {"time_limit": 0},
        {"progress_interval": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            OddsConfig(**kwargs)


class TestExact:
    def test_river_is_decided(self, aces, kings, board_river):
        result = EquityCalculator().exact(aces, kings, board_river)
        assert (result.wins, result.ties, result.losses) == (1, 0, 0)

    def test_turn_two_outs(self, aces, kings, board_turn):
        # Kings hold a set; only the two remaining aces save the aces
        result = EquityCalculator().exact(aces, kings, board_turn)
        assert result.total == 44
        assert (result.wins, result.ties, result.losses) == (2, 0, 42)

    def test_enumeration_total(self, aces, kings, board_flop):
        result = EquityCalculator().exact(aces, kings, board_flop)
        assert result.total == comb(52 - 7, 5 - 3)
        assert result.method == "exact"

    def test_role_swap_symmetry(self, aces, kings, board_flop):
        calculator = EquityCalculator()
        forward = calculator.exact(aces, kings, board_flop)
        backward = calculator.exact(kings, aces, board_flop)
        assert backward == forward.swapped()

    def test_split_board(self):
        board = parse_cards("Ts Js Qd Kc Ah")
        win, tie = compute_odds_exact(Hand.from_string("2c3d"), Hand.from_string("4h5h"), board)
        assert (win, tie) == (0.0, 1.0)

    def test_compute_odds_exact_tuple(self, aces, kings, board_turn):
        win, tie = compute_odds_exact(aces, kings, board_turn)
        assert win == pytest.approx(2 / 44)
        assert tie == 0.0

    def test_workers_match_single_process(self, aces, kings, board_turn):
        single = EquityCalculator().exact(aces, kings, board_turn)
        sharded = EquityCalculator(OddsConfig(workers=2)).exact(aces, kings, board_turn)
        assert sharded == single

    def test_duplicate_cards_raises(self, aces, board_river):
        with pytest.raises(ValueError, match="Duplicate"):
            compute_odds_exact(aces, Hand.from_string("QcJh"), board_river)

    def test_duplicate_between_hands(self, aces):
        with pytest.raises(DuplicateCardError):
            compute_odds_exact(aces, Hand.from_string("AsKd"), [])

    @pytest.mark.parametrize("size", [1, 2, 6])
    def test_board_size(self, aces, kings, size):
        board = Deck().without([*aces, *kings]).deal(size)
        with pytest.raises(InvalidBoardSizeError):
            compute_odds_exact(aces, kings, board)


class TestMonteCarlo:
    def test_seeded_runs_repeat(self, aces, kings, board_flop):
        first = compute_odds_monte_carlo(500, aces, kings, board_flop, rng=11)
        second = compute_odds_monte_carlo(500, aces, kings, board_flop, rng=11)
        assert first == second

    def test_generator_or_seed(self, aces, kings, board_flop):
        from_seed = compute_odds_monte_carlo(300, aces, kings, board_flop, rng=3)
        from_generator = compute_odds_monte_carlo(
            300, aces, kings, board_flop, rng=np.random.default_rng(3)
        )
        assert from_seed == from_generator

    def test_close_to_exact_on_flop(self, aces, kings, board_flop, rng):
        exact = EquityCalculator().exact(aces, kings, board_flop)
        sampled = EquityCalculator(rng=rng).monte_carlo(aces, kings, board_flop, trials=3000)
        assert sampled.total == 3000
        assert sampled.win == pytest.approx(exact.win, abs=0.03)
        assert sampled.tie == pytest.approx(exact.tie, abs=0.01)

    def test_preflop_aces_vs_kings(self, aces, kings, rng):
        win, tie = compute_odds_monte_carlo(2000, aces, kings, [], rng=rng)
        assert 0.77 < win < 0.86
        assert tie < 0.02

    def test_river_board(self, aces, kings, board_river, rng):
        win, tie = compute_odds_monte_carlo(20, aces, kings, board_river, rng=rng)
        assert (win, tie) == (1.0, 0.0)

    def test_trials_must_be_positive(self, aces, kings):
        with pytest.raises(ValueError):
            EquityCalculator().monte_carlo(aces, kings, [], trials=0)

    def test_callback(self, aces, kings, board_turn, rng):
        calls = []
        config = OddsConfig(method="monte_carlo", trials=50, progress_interval=10)
        EquityCalculator(config, rng=rng).monte_carlo(
            aces, kings, board_turn, callback=lambda done, total: calls.append((done, total))
        )
        assert calls == [(10, 50), (20, 50), (30, 50), (40, 50), (50, 50)]

    def test_time_limit_keeps_partial_counts(self, monkeypatch, aces, kings, board_turn, rng):
        monkeypatch.setattr(equity, "time", FakeClock())
        config = OddsConfig(method="monte_carlo", trials=1000, time_limit=5.5)
        result = EquityCalculator(config, rng=rng).monte_carlo(aces, kings, board_turn)
        assert result.total == 5

    def test_time_limit_before_first_trial(self, monkeypatch, aces, kings, board_turn, rng):
        monkeypatch.setattr(equity, "time", FakeClock())
        config = OddsConfig(method="monte_carlo", trials=1000, time_limit=0.5)
        with pytest.raises(TimeoutError):
            EquityCalculator(config, rng=rng).monte_carlo(aces, kings, board_turn)

    def test_workers_are_reproducible(self, aces, kings, board_flop):
        config = OddsConfig(method="monte_carlo", trials=400, workers=2, seed=5)
        first = EquityCalculator(config).monte_carlo(aces, kings, board_flop)
        second = EquityCalculator(config).monte_carlo(aces, kings, board_flop)
        assert first.total == 400
        assert first == second

    def test_duplicate_cards_raises(self, aces, kings):
        with pytest.raises(DuplicateCardError):
            compute_odds_monte_carlo(10, aces, kings, parse_cards("As 7d 2c"))


class TestErrorPropagation:
    def test_exact_stops_on_evaluation_error(self, monkeypatch, aces, kings, board_turn):
        failing = FailingShowdown(fail_on=7)
        monkeypatch.setattr(equity, "showdown", failing)
        with pytest.raises(NoCategoryMatchedError):
            compute_odds_exact(aces, kings, board_turn)
        assert failing.calls == 7

    def test_monte_carlo_stops_on_evaluation_error(self, monkeypatch, aces, kings, board_turn, rng):
        failing = FailingShowdown(fail_on=7)
        monkeypatch.setattr(equity, "showdown", failing)
        with pytest.raises(NoCategoryMatchedError):
            compute_odds_monte_carlo(100, aces, kings, board_turn, rng=rng)
        assert failing.calls == 7

    def test_exact_worker_error_reaches_caller(self, monkeypatch, aces, kings, board_turn):
        monkeypatch.setattr(equity, "_tally_exact", _failing_tally)
        with pytest.raises(NoCategoryMatchedError):
            compute_odds_exact(aces, kings, board_turn, workers=2)

    def test_monte_carlo_worker_error_reaches_caller(self, monkeypatch, aces, kings, board_turn, rng):
        monkeypatch.setattr(equity, "_tally_monte_carlo", _failing_tally)
        with pytest.raises(NoCategoryMatchedError):
            compute_odds_monte_carlo(100, aces, kings, board_turn, rng=rng, workers=2)


class TestPolicy:
    def test_choose_method(self):
        calculator = EquityCalculator()
        assert calculator.choose_method(0) == "monte_carlo"
        assert calculator.choose_method(3) == "exact"
        assert calculator.choose_method(5) == "exact"

    def test_forced_method(self):
        assert EquityCalculator(OddsConfig(method="exact")).choose_method(0) == "exact"
        assert EquityCalculator(OddsConfig(method="monte_carlo")).choose_method(4) == "monte_carlo"

    def test_compute_odds_flop_is_exact(self, aces, kings, board_flop):
        result = compute_odds(aces, kings, board_flop)
        assert result.method == "exact"
        assert result.total == comb(45, 2)

    def test_compute_odds_preflop_samples(self, aces, kings, rng):
        result = compute_odds(aces, kings, [], OddsConfig(trials=200), rng=rng)
        assert result.method == "monte_carlo"
        assert result.total == 200


class TestHandClass:
    def test_get_hand_class(self, board_river):
        assert get_hand_class(Hand.from_string("QsQh"), board_river) == "Three of a Kind"
        assert get_hand_class(Hand.from_string("AsAh"), board_river) == "Pair"


@pytest.mark.slow
class TestSlow:
    def test_preflop_exact_aces_vs_kings(self, aces, kings):
        result = EquityCalculator(OddsConfig(workers=os.cpu_count() or 1)).exact(aces, kings, [])
        assert result.total == comb(48, 5) == 1_712_304
        assert (result.wins, result.ties, result.losses) == (1_410_336, 9_308, 292_660)

    def test_monte_carlo_converges(self, aces, kings, board_flop, rng):
        exact = EquityCalculator().exact(aces, kings, board_flop)
        config = OddsConfig(method="monte_carlo", trials=200_000, workers=os.cpu_count() or 1)
        sampled = EquityCalculator(config, rng=rng).monte_carlo(aces, kings, board_flop)
        assert sampled.win == pytest.approx(exact.win, abs=0.005)
        assert sampled.tie == pytest.approx(exact.tie, abs=0.005)
