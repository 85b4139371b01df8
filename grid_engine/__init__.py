"""Record grid engine: type-aware search criteria and an editable record overlay."""

from grid_engine.criteria import SearchCriteriaBuilder
from grid_engine.delete_strategy import DeleteStrategy, StrategyKind, resolve
from grid_engine.models import ColumnMetadata, SearchPage, SearchRequest
from grid_engine.overlay import RecordOverlay, RowState

__all__ = [
    "ColumnMetadata",
    "DeleteStrategy",
    "RecordOverlay",
    "RowState",
    "SearchCriteriaBuilder",
    "SearchPage",
    "SearchRequest",
    "StrategyKind",
    "resolve",
]
