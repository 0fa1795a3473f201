"""Search backend collaborators."""

from .base import RecordRef, ResultPage, SearchClient  # noqa: F401
from .records import SolrRecord  # noqa: F401
