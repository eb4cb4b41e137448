"""Third-party data sources."""

from .base import SourceAdapter
from .igdb import IGDBAdapter
from .opencritic import OpenCriticAdapter
from .wikidata import WikidataAdapter

__all__ = ["IGDBAdapter", "OpenCriticAdapter", "SourceAdapter", "WikidataAdapter"]
