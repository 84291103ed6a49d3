from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class FilterSelectionModel(BaseModel):
    mode: Literal["all", "quarterly", "monthly", "yearly"] = "quarterly"
    year: Optional[int] = None
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    country_id: Optional[int] = None
    job_position: Optional[str] = None
    team_number: Optional[int] = None
    user_id: Optional[int] = None


class TableStateModel(BaseModel):
    discount_only: bool = False
    min_discount: float = 1.0
    unpaid_only: bool = False
    page: int = 1


class SortModel(BaseModel):
    field: Optional[str] = None
    direction: Literal["asc", "desc"] = "desc"


class ReportRequest(BaseModel):
    filters: FilterSelectionModel = Field(default_factory=FilterSelectionModel)
    table: TableStateModel = Field(default_factory=TableStateModel)
    sort: SortModel = Field(default_factory=SortModel)


class UserOption(BaseModel):
    id: int
    display_name: str
    job_position: str
    team_number: Optional[int] = None


class UsersResponse(BaseModel):
    users: List[UserOption]
    user_id: Optional[int] = None
