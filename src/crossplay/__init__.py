"""Crossplay: console availability and critic scores for Steam games.

Resolves where a game is available (Nintendo, PlayStation, Xbox) and how
critics scored it by querying Wikidata, IGDB and OpenCritic behind a
durable SQLite cache.
"""

__version__ = "0.6.0"
