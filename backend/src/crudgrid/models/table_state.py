"""Table state model: sorting, filters, visibility and page position."""

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SortDirection(str, Enum):
    """Direction of one sort key."""

    ASC = "asc"
    DESC = "desc"


class SortKey(BaseModel):
    """One entry of the sort order."""

    model_config = ConfigDict(frozen=True)

    column_id: str
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESC


class TableState(BaseModel):
    """Model for the state that governs which rows a table shows."""

    model_config = ConfigDict(frozen=True)

    sorting: Tuple[SortKey, ...] = ()
    column_filters: Dict[str, str] = Field(default_factory=dict)
    column_visibility: Dict[str, bool] = Field(default_factory=dict)
    page_index: int = Field(default=0, ge=0)
    page_size: int = Field(default=10, gt=0)

    def is_visible(self, column_id: str) -> bool:
        """Columns are visible unless explicitly hidden."""
        return self.column_visibility.get(column_id, True)
