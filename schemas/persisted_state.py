"""
Persisted project state schemas.

These schemas define the document an external persistence collaborator
round-trips verbatim: selected assets, per-instance task lists and duration
overrides, custom tasks, dependency edges keyed by successor and anchor dates.

Dependency edges may arrive in either of two forms:
- Typed: {type: FS|SS|FF, lag >= 0}
- Legacy: {type: FS, lag < 0}, a signed overlap from before typed links
Legacy edges are converted to typed edges when a project is hydrated.
"""

from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from timeline.cpm.calendar import parse_iso_date


STATE_VERSION = 2


def _optional_date(value):
    if value is None or value == '':
        return None
    return parse_iso_date(value)


class PersistedAsset(BaseModel):
    """A selected asset instance."""

    id: str = Field(min_length=1, description="Asset instance ID")
    type: str = Field(min_length=1, description="Catalog asset type")
    name: str = Field(description="Display name")
    anchor_date: Optional[date] = Field(default=None, description="Individual go-live date (YYYY-MM-DD)")

    @field_validator('anchor_date', mode='before')
    @classmethod
    def check_anchor_date(cls, value):
        return _optional_date(value)


class PersistedTask(BaseModel):
    """One task of the per-instance task list, in sequence order."""

    id: str = Field(min_length=1, description="Task instance ID")
    name: str = Field(min_length=1, max_length=100, description="Task name")
    duration: int = Field(ge=1, le=365, description="Duration in working days")
    owner: Literal['c', 'm', 'a', 'l'] = Field(description="Owner code")
    asset_id: str = Field(description="Owning asset instance ID")
    is_custom: bool = Field(default=False, description="Added by the user rather than the catalog")


class PersistedCustomTask(BaseModel):
    """A user-added task and where it was spliced in."""

    id: str = Field(min_length=1, description="Task instance ID")
    asset_id: str = Field(description="Owning asset instance ID")
    name: str = Field(min_length=1, max_length=100, description="Task name")
    duration: int = Field(ge=1, le=365, description="Duration in working days")
    owner: Literal['c', 'm', 'a'] = Field(default='a', description="Owner code")
    insert_after_task_id: Optional[str] = Field(
        default=None,
        description="Task the custom task follows; None places it first",
    )


class PersistedEdge(BaseModel):
    """An inbound edge of the successor it is keyed under."""

    predecessor_id: str = Field(description="Predecessor task instance ID")
    type: Literal['FS', 'SS', 'FF'] = Field(default='FS', description="Dependency type")
    lag: int = Field(default=0, description="Lag in working days; negative only for legacy FS overlap")

    @model_validator(mode='after')
    def check_lag(self):
        if self.lag < 0 and self.type != 'FS':
            raise ValueError(f"Negative lag is only valid on FS edges, got {self.type}({self.lag})")
        return self

    def is_legacy_overlap(self) -> bool:
        return self.type == 'FS' and self.lag < 0


class PersistedState(BaseModel):
    """
    Complete persisted project state.

    When `freeze` is set, `tasks` is trusted verbatim and catalog
    regeneration is skipped, which makes export/import exact.
    """

    version: int = Field(default=STATE_VERSION, description="Document format version")
    assets: list[PersistedAsset] = Field(default_factory=list, max_length=50, description="Selected assets in order")
    tasks: list[PersistedTask] = Field(default_factory=list, description="Per-instance task lists")
    duration_overrides: dict[str, int] = Field(default_factory=dict, description="Task ID -> duration")
    custom_tasks: list[PersistedCustomTask] = Field(default_factory=list, description="User-added tasks")
    dependencies: dict[str, list[PersistedEdge]] = Field(
        default_factory=dict,
        description="Successor task ID -> its inbound edges",
    )
    global_live_date: Optional[date] = Field(default=None, description="Shared go-live date (YYYY-MM-DD)")
    use_global_date: bool = Field(default=True, description="Anchor every asset on the global live date")
    freeze: bool = Field(default=False, description="Trust the persisted task list verbatim")

    @field_validator('global_live_date', mode='before')
    @classmethod
    def check_global_live_date(cls, value):
        return _optional_date(value)

    @field_validator('duration_overrides')
    @classmethod
    def check_overrides(cls, value):
        for task_id, duration in value.items():
            if not 1 <= duration <= 365:
                raise ValueError(f"Duration override for {task_id} must be 1-365, got {duration}")
        return value

    @model_validator(mode='after')
    def check_references(self):
        asset_ids = [a.id for a in self.assets]
        if len(set(asset_ids)) != len(asset_ids):
            raise ValueError("Asset IDs must be unique")

        known_assets = set(asset_ids)
        for task in self.tasks:
            if task.asset_id not in known_assets:
                raise ValueError(f"Task {task.id} references unknown asset {task.asset_id}")
        task_ids = [t.id for t in self.tasks]
        if len(set(task_ids)) != len(task_ids):
            raise ValueError("Task IDs must be unique")

        per_asset = {}
        for custom in self.custom_tasks:
            if custom.asset_id not in known_assets:
                raise ValueError(f"Custom task {custom.id} references unknown asset {custom.asset_id}")
            per_asset[custom.asset_id] = per_asset.get(custom.asset_id, 0) + 1
        for asset_id, count in per_asset.items():
            if count > 5:
                raise ValueError(f"Asset {asset_id} has {count} custom tasks (max 5)")

        if self.freeze and self.assets and not self.tasks:
            raise ValueError("A frozen state must include its task list")
        return self
