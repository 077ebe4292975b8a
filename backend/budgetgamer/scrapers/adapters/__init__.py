"""Provider adapters.

Each adapter fetches one external source and returns normalized offers
(or, for article sources, candidate links).
"""

from budgetgamer.scrapers.adapters.steam import SteamAdapter
from budgetgamer.scrapers.adapters.gog import GOGAdapter
from budgetgamer.scrapers.adapters.humble import HumbleAdapter
from budgetgamer.scrapers.adapters.humble_choice import HumbleChoiceAdapter
from budgetgamer.scrapers.adapters.playstation import PlayStationAdapter
from budgetgamer.scrapers.adapters.ps_plus import PSPlusAdapter
from budgetgamer.scrapers.adapters.epic_games import EpicGamesAdapter
from budgetgamer.scrapers.adapters.amazon_prime import AmazonPrimeAdapter
from budgetgamer.scrapers.adapters.reddit import RedditAdapter

__all__ = [
    # Submission adapters
    "SteamAdapter",
    "GOGAdapter",
    "HumbleAdapter",
    "PlayStationAdapter",
    # Scheduled batch adapters
    "HumbleChoiceAdapter",
    "PSPlusAdapter",
    "EpicGamesAdapter",
    "AmazonPrimeAdapter",
    # Article sources
    "RedditAdapter",
]
