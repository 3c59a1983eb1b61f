"""
Data schemas for validation.

This module defines Pydantic models for the engine's boundary: the asset
catalog and bank holiday CSVs, the persisted project document and the
schedule export.

Usage:
    from schemas import validate_persisted_state, StateValidationError

    state = validate_persisted_state(json_text)
"""

from .validator import (
    validate_dataframe,
    validate_rows,
    validate_catalog_dataframe,
    validate_bank_holiday_dataframe,
    validate_persisted_state,
    load_persisted_state,
    validated_df_to_csv,
    SchemaValidationError,
    StateValidationError,
    CatalogValidationError,
    HolidayValidationError,
)
from .persisted_state import (
    PersistedState,
    PersistedAsset,
    PersistedTask,
    PersistedCustomTask,
    PersistedEdge,
)
from .registry import SCHEMA_REGISTRY, get_schema_for_file

__all__ = [
    'validate_dataframe',
    'validate_rows',
    'validate_catalog_dataframe',
    'validate_bank_holiday_dataframe',
    'validate_persisted_state',
    'load_persisted_state',
    'validated_df_to_csv',
    'SchemaValidationError',
    'StateValidationError',
    'CatalogValidationError',
    'HolidayValidationError',
    'PersistedState',
    'PersistedAsset',
    'PersistedTask',
    'PersistedCustomTask',
    'PersistedEdge',
    'SCHEMA_REGISTRY',
    'get_schema_for_file',
]
