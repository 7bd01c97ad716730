"""
Driver registry: the configured set of sources and their run defaults.

Drivers are constructed per run; options are the production defaults used
by ``fetch-all``.
"""

from collections.abc import Callable

from buzzing.config.settings import Settings, get_settings
from buzzing.ingestion.arstechnica_driver import ArsTechnicaDriver
from buzzing.ingestion.base_driver import SourceDriver
from buzzing.ingestion.config import IngestionConfig
from buzzing.ingestion.devto_driver import DevtoDriver
from buzzing.ingestion.guardian_driver import GuardianDriver
from buzzing.ingestion.hackernews_driver import AskHNDriver, HackerNewsDriver, ShowHNDriver
from buzzing.ingestion.lobsters_driver import LobstersDriver
from buzzing.ingestion.nature_driver import NatureDriver
from buzzing.ingestion.producthunt_driver import ProductHuntDriver
from buzzing.ingestion.reddit_driver import RedditDriver
from buzzing.ingestion.skynews_driver import SkyNewsDriver
from buzzing.ingestion.watcha_driver import WatchaDriver

DriverFactory = Callable[[], SourceDriver]

SOURCE_NAMES = (
    "hn",
    "showhn",
    "askhn",
    "lobsters",
    "ph",
    "devto",
    "watcha",
    "reddit",
    "guardian",
    "nature",
    "skynews",
    "arstechnica",
)


def driver_factories(
    settings: Settings | None = None,
    config: IngestionConfig | None = None,
) -> dict[str, DriverFactory]:
    """Source name -> zero-argument driver factory, in fetch order."""
    settings = settings or get_settings()
    config = config or IngestionConfig()

    return {
        "hn": lambda: HackerNewsDriver(story_type="top", limit=50, min_score=100, config=config),
        "showhn": lambda: ShowHNDriver(limit=30, min_score=10, config=config),
        "askhn": lambda: AskHNDriver(limit=30, min_score=50, config=config),
        "lobsters": lambda: LobstersDriver(listing="hottest", limit=50, min_score=5),
        "ph": lambda: ProductHuntDriver(api_key=settings.producthunt_api_key, min_votes=50),
        "devto": lambda: DevtoDriver(limit=30, min_reactions=20),
        "watcha": lambda: WatchaDriver(limit=30),
        "reddit": lambda: RedditDriver(min_score=100, config=config),
        "guardian": lambda: GuardianDriver(api_key=settings.guardian_api_key, limit=20),
        "nature": lambda: NatureDriver(limit=20),
        "skynews": lambda: SkyNewsDriver(limit=20),
        "arstechnica": lambda: ArsTechnicaDriver(limit=20),
    }
