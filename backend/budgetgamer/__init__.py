"""Budget Gamer backend: free game and giveaway aggregation service."""

__version__ = "0.1.0"
