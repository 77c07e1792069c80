"""
HeadsUp: heads-up Texas Hold'em equity

Exact and Monte Carlo win/tie probabilities for two hole-card hands
on a partial or complete board, built on a five-card hand evaluator.
"""

__version__ = "0.1.0"
