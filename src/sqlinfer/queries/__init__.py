"""Source query records and YAML manifest loading."""
from .models import ResultKind, SourceQuery
from .loader import QueryLoader

__all__ = [
    "ResultKind",
    "SourceQuery",
    "QueryLoader",
]
