#!/usr/bin/env python3
"""Calculate heads-up win/tie odds for two hands."""

import argparse
import logging
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from headsup.errors import HeadsUpError
from headsup.game.cards import Card, Hand, parse_cards
from headsup.game.equity import EquityCalculator, OddsConfig, OddsResult
from headsup.game.evaluator import evaluate_best_hand


def main():
    parser = argparse.ArgumentParser(
        description="Heads-up Texas Hold'em odds (exact after the flop, Monte Carlo before)"
    )
    parser.add_argument(
        "--self",
        dest="self_cards",
        required=True,
        help="Your cards (e.g., 'AsAh' or 's,14;h,14')",
    )
    parser.add_argument(
        "--opp",
        required=True,
        help="Opponent's cards in the same format",
    )
    parser.add_argument(
        "-b", "--board",
        default="",
        help="Board cards, 0, 3, 4 or 5 of them (e.g., 'AsKhTd' or 's,14;h,13;d,10')",
    )
    parser.add_argument(
        "-n", "--trials",
        type=int,
        help="Monte Carlo trials; 0 forces exact enumeration "
             "(default: exact from the flop on, 100000 trials pre-flop)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible Monte Carlo runs",
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Worker processes (default: 1)",
    )
    parser.add_argument(
        "--time-limit",
        type=float,
        help="Stop Monte Carlo after this many seconds",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()
    console = Console()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    try:
        me = Hand.from_cards(parse_cards(args.self_cards))
        opponent = Hand.from_cards(parse_cards(args.opp))
        board = parse_cards(args.board)

        if args.trials is None:
            config = OddsConfig(seed=args.seed, workers=args.workers, time_limit=args.time_limit)
        elif args.trials == 0:
            config = OddsConfig(method="exact", workers=args.workers)
        else:
            config = OddsConfig(
                method="monte_carlo",
                trials=args.trials,
                seed=args.seed,
                workers=args.workers,
                time_limit=args.time_limit,
            )
        calculator = EquityCalculator(config)

        console.print(f"[bold]Your cards:[/] {_format_cards(me.cards)}")
        console.print(f"[bold]Opponent's cards:[/] {_format_cards(opponent.cards)}")
        if board:
            console.print(f"[bold]Board:[/] {_format_cards(board)}")
        console.print()

        method = calculator.choose_method(len(board))
        if method == "exact":
            with console.status("Enumerating boards..."):
                result = calculator.exact(me, opponent, board)
        else:
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Sampling boards", total=config.trials)

                def callback(done, total):
                    progress.update(task, completed=done)

                result = calculator.monte_carlo(me, opponent, board, callback=callback)
    except (HeadsUpError, ValueError, TimeoutError) as e:
        console.print(f"[red]{escape(str(e))}[/]")
        return 1

    _display_result(console, result)

    if len(board) == 5:
        console.print()
        _display_made_hands(console, me, opponent, board)

    return 0


def rounded_percent(probability: float) -> float:
    """Probability as a percentage rounded to 3 decimal places."""
    return int(probability * 100000 + 0.5) / 1000


def _format_cards(cards) -> str:
    colors = {0: "green", 1: "blue", 2: "red", 3: "white"}
    return " ".join(f"[{colors[c.suit]}]{c.pretty}[/]" for c in cards)


def _display_result(console: Console, result: OddsResult) -> None:
    method = "exact enumeration" if result.method == "exact" else "Monte Carlo"
    console.print(f"[bold]Method:[/] {method} ({result.total:,} boards)")

    table = Table(box=box.SIMPLE)
    table.add_column("Outcome", style="bold")
    table.add_column("Probability", justify="right")

    table.add_row("Win", f"{rounded_percent(result.win)}%")
    table.add_row("Tie", f"{rounded_percent(result.tie)}%")
    table.add_row("Loss", f"{rounded_percent(result.loss)}%")
    table.add_row("Equity", f"{rounded_percent(result.equity)}%")

    console.print(table)


def _display_made_hands(console: Console, me: Hand, opponent: Hand, board: list[Card]) -> None:
    for name, hand in (("You", me), ("Opponent", opponent)):
        best = evaluate_best_hand(hand, board)
        keys = " ".join(c.pretty for c in reversed(best.keys))
        console.print(f"[bold]{name}:[/] {best.category.label} ({keys})")


if __name__ == "__main__":
    sys.exit(main())
