"""
Input table schemas.

These schemas define the CSV inputs the engine reads: the asset catalog
(one row per template task) and the bank holiday list.
"""

import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from timeline.cpm.calendar import parse_iso_date


class CatalogRow(BaseModel):
    """
    Asset catalog row schema.

    File: catalog.csv
    Records: one per template task; rows of an asset type appear in sequence order.
    Purpose: Default task sequence, base durations and owners per asset type.
    """

    model_config = ConfigDict(populate_by_name=True)

    asset_type: str = Field(alias='Asset Type', min_length=1, description="Asset type the task belongs to")
    task: str = Field(alias='Task', min_length=1, max_length=100, description="Template task name")
    duration: int = Field(alias='Duration (Days)', ge=1, le=365, description="Base duration in working days")
    owner: Literal['c', 'm', 'a', 'l'] = Field(
        default='a',
        description="Owner code: c=client, m=mutual, a=agency, l=live (go-live task)",
    )

    @field_validator('asset_type', 'task', mode='before')
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator('owner', mode='before')
    @classmethod
    def normalize_owner(cls, value):
        if value is None or (isinstance(value, float) and value != value):
            return 'a'
        return str(value).strip().lower() or 'a'


class BankHolidayRow(BaseModel):
    """
    Bank holiday row schema.

    File: bank_holidays.csv
    Purpose: Dates excluded from working-day arithmetic.
    """

    date: datetime.date = Field(description="Holiday date (YYYY-MM-DD)")
    title: str = Field(default='', description="Holiday name (informational)")

    @field_validator('date', mode='before')
    @classmethod
    def check_date(cls, value):
        return parse_iso_date(value)

    @field_validator('title', mode='before')
    @classmethod
    def blank_title(cls, value):
        return '' if value is None else value
