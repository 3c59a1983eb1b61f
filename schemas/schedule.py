"""
Output table schemas.

Output Location: written by the timeline report CLI with --output.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ScheduleRow(BaseModel):
    """
    Computed schedule row schema.

    File: schedule.csv
    Records: one per task across all selected assets, in sequence order.
    """

    asset_id: str = Field(description="Asset instance ID")
    asset_name: str = Field(description="Asset display name")
    asset_type: str = Field(description="Catalog asset type")
    task_id: str = Field(description="Task instance ID")
    task_name: str = Field(description="Task name")
    owner: str = Field(description="Owner code (c, m, a, l)")
    duration: int = Field(description="Duration in working days")
    start: Optional[str] = Field(default=None, description="Computed start date (YYYY-MM-DD)")
    end: Optional[str] = Field(default=None, description="Computed end date (YYYY-MM-DD)")
    is_custom: bool = Field(description="Whether the task was added by the user")
