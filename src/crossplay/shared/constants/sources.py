"""
Third-party Source Constants

Endpoints and identifier allowlists for the fixed set of data sources.
"""

from typing import ClassVar


class WikidataConfig:
    """Wikidata SPARQL lookup constants."""

    SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"
    ENTITY_URL_PREFIX = "http://www.wikidata.org/entity/"
    BATCH_SIZE = 20

    # Properties
    STEAM_APP_ID = "P1733"
    PLATFORM = "P400"
    NINTENDO_ESHOP_ID = "P8084"
    PLAYSTATION_STORE_ID = "P5944"
    MICROSOFT_STORE_ID = "P5885"

    # Platform items
    NINTENDO_SWITCH = "Q19610114"
    PLAYSTATION_4 = "Q5014725"
    PLAYSTATION_5 = "Q63184502"
    XBOX_ONE = "Q13361286"
    XBOX_SERIES = "Q64513817"

    PLATFORM_ITEMS: ClassVar[dict[str, tuple[str, ...]]] = {
        "nintendo": (NINTENDO_SWITCH,),
        "playstation": (PLAYSTATION_4, PLAYSTATION_5),
        "xbox": (XBOX_ONE, XBOX_SERIES),
    }

    STORE_URL_TEMPLATES: ClassVar[dict[str, str]] = {
        "nintendo": "https://www.nintendo.com/store/products/{id}/",
        "playstation": "https://store.playstation.com/concept/{id}",
        "xbox": "https://www.xbox.com/games/store/-/{id}",
    }


class IGDBConfig:
    """IGDB API constants."""

    API_URL = "https://api.igdb.com/v4"
    TOKEN_URL = "https://id.twitch.tv/oauth2/token"
    TOKEN_REFRESH_BUFFER_SECONDS = 300
    SEARCH_LIMIT = 10
    STEAM_BATCH_SIZE = 10

    # External game category for Steam
    EXTERNAL_CATEGORY_STEAM = 1

    PLATFORM_IDS: ClassVar[dict[str, tuple[int, ...]]] = {
        "nintendo": (130,),
        "playstation": (48, 167),
        "xbox": (49, 169),
    }

    # Website categories carrying storefront links
    WEBSITE_CATEGORIES: ClassVar[dict[str, int]] = {
        "nintendo": 16,
        "playstation": 36,
        "xbox": 37,
    }


class OpenCriticConfig:
    """OpenCritic API constants."""

    SEARCH_URL = "https://api.opencritic.com/api/game/search"
    GAME_URL = "https://api.opencritic.com/api/game"
    SITE_URL = "https://opencritic.com/game"

    # topCriticScore is -1 until a score is published
    MIN_SCORE = 0
    MAX_SCORE = 100


class StoreSearchUrls:
    """Storefront search URL templates used when no official link is known."""

    TEMPLATES: ClassVar[dict[str, str]] = {
        "nintendo": "https://www.nintendo.com/us/search/#q={query}&p=1&cat=gme&sort=df",
        "playstation": "https://store.playstation.com/en-us/search/{query}",
        "xbox": "https://www.xbox.com/en-US/search/results/games?q={query}",
    }


class MatchingConfig:
    """Fuzzy name matching constants."""

    DEFAULT_MIN_CONFIDENCE = 0.5
    CONTAINMENT_SCORE = 0.8
