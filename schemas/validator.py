"""
Schema validation utilities for engine inputs and outputs.

Validates tabular files (catalog, bank holidays, schedule exports) and the
persisted project document before the engine touches them. Malformed input
is rejected with a descriptive error instead of being partially used.
"""

import json
from pathlib import Path
from typing import Type, List, Optional, Union
import pandas as pd
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .catalog import CatalogRow, BankHolidayRow
from .persisted_state import PersistedState


class SchemaValidationError(Exception):
    """Raised when schema validation fails."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        missing_columns: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.errors = errors or []
        self.missing_columns = missing_columns or []


class StateValidationError(SchemaValidationError):
    """Raised when a persisted project state is malformed."""


class CatalogValidationError(SchemaValidationError):
    """Raised when the asset catalog is malformed."""


class HolidayValidationError(SchemaValidationError):
    """Raised when the bank holiday list is malformed."""


def format_pydantic_errors(exc: PydanticValidationError, prefix: str = '') -> List[str]:
    """Flatten pydantic errors into 'location: message' strings."""
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()))
        if prefix:
            location = f"{prefix}.{location}" if location else prefix
        messages.append(f"{location}: {error.get('msg')}" if location else error.get('msg'))
    return messages


def get_column_name(field_name: str, field_info) -> str:
    """
    Get the CSV column name for a field, handling aliases.

    Pydantic fields can have an alias that represents the actual column name
    in the data (e.g., 'Duration (Days)').
    """
    if hasattr(field_info, 'alias') and field_info.alias:
        return field_info.alias
    return field_name


def validate_dataframe(
    df: pd.DataFrame,
    schema: Type[BaseModel],
    strict: bool = False,
) -> List[str]:
    """
    Validate a DataFrame's columns against a Pydantic schema.

    Args:
        df: DataFrame to validate
        schema: Pydantic model class defining expected columns
        strict: If True, fail on extra columns not in schema

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    required_columns = {
        get_column_name(name, info)
        for name, info in schema.model_fields.items()
        if info.is_required()
    }
    known_columns = {
        get_column_name(name, info) for name, info in schema.model_fields.items()
    }
    actual_columns = set(df.columns)

    missing = required_columns - actual_columns
    if missing:
        errors.append(f"Missing required columns: {sorted(missing)}")

    extra = actual_columns - known_columns
    if extra and strict:
        errors.append(f"Unexpected columns (strict mode): {sorted(extra)}")

    return errors


def dataframe_records(df: pd.DataFrame) -> List[dict]:
    """DataFrame rows as plain Python dicts with NaN replaced by None."""
    return df.astype(object).where(df.notna(), None).to_dict(orient='records')


def validate_rows(
    df: pd.DataFrame,
    schema: Type[BaseModel],
    error_cls: Type[SchemaValidationError],
    label: str,
) -> List[BaseModel]:
    """
    Validate every row of a DataFrame against a Pydantic schema.

    Args:
        df: Rows read from a CSV file
        schema: Pydantic model class for one row
        error_cls: SchemaValidationError subclass to raise
        label: File description used in error messages

    Returns:
        One validated model per row

    Raises:
        error_cls: Missing columns or invalid rows (all reported)
    """
    column_errors = validate_dataframe(df, schema)
    if column_errors:
        missing = sorted(
            get_column_name(name, info)
            for name, info in schema.model_fields.items()
            if info.is_required() and get_column_name(name, info) not in df.columns
        )
        raise error_cls(
            f"{label} is invalid: {'; '.join(column_errors)}",
            errors=column_errors,
            missing_columns=missing,
        )

    rows = []
    errors = []
    # Row numbers match the CSV file (header is line 1)
    for line, record in enumerate(dataframe_records(df), start=2):
        try:
            rows.append(schema.model_validate(record))
        except PydanticValidationError as e:
            errors.extend(format_pydantic_errors(e, prefix=f"row {line}"))

    if errors:
        raise error_cls(
            f"{label} has {len(errors)} invalid values: {'; '.join(errors[:5])}",
            errors=errors,
        )
    return rows


def validate_catalog_dataframe(df: pd.DataFrame) -> List[CatalogRow]:
    """
    Validate catalog rows.

    Raises:
        CatalogValidationError: Missing columns or invalid rows (all reported)
    """
    return validate_rows(df, CatalogRow, CatalogValidationError, 'Catalog')


def validate_bank_holiday_dataframe(df: pd.DataFrame) -> List[BankHolidayRow]:
    """
    Validate bank holiday rows.

    Raises:
        HolidayValidationError: Missing 'date' column or malformed dates
    """
    return validate_rows(df, BankHolidayRow, HolidayValidationError, 'Bank holiday list')


def validate_persisted_state(data: Union[PersistedState, dict, str, bytes]) -> PersistedState:
    """
    Validate a persisted project document.

    Args:
        data: Parsed dict, JSON text, or an already validated PersistedState

    Returns:
        The validated PersistedState

    Raises:
        StateValidationError: If the document is malformed
    """
    if isinstance(data, PersistedState):
        return data

    try:
        if isinstance(data, (str, bytes)):
            return PersistedState.model_validate_json(data)
        return PersistedState.model_validate(data)
    except PydanticValidationError as e:
        errors = format_pydantic_errors(e)
        raise StateValidationError(
            f"Persisted state is invalid: {'; '.join(errors[:5])}",
            errors=errors,
        ) from e


def load_persisted_state(file_path: Path) -> PersistedState:
    """
    Read and validate a persisted project JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        StateValidationError: If the file is not valid JSON or not a valid state
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    try:
        data = json.loads(file_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise StateValidationError(f"{file_path.name} is not valid JSON: {e}", errors=[str(e)]) from e
    return validate_persisted_state(data)


def validated_df_to_csv(
    df: pd.DataFrame,
    file_path: Path,
    strict: bool = False,
    **to_csv_kwargs,
) -> None:
    """
    Validate a DataFrame against its registered schema and write to CSV.

    Args:
        df: DataFrame to write
        file_path: Output path (filename determines schema via registry)
        strict: If True, fail on extra columns not in schema
        **to_csv_kwargs: Additional arguments passed to df.to_csv()

    Raises:
        SchemaValidationError: If validation fails
    """
    from .registry import get_schema_for_file

    file_path = Path(file_path)
    schema = get_schema_for_file(file_path.name)
    if schema is not None:
        errors = validate_dataframe(df, schema, strict=strict)
        if errors:
            raise SchemaValidationError(
                f"Schema validation failed for '{file_path.name}':\n"
                + "\n".join(f"  - {e}" for e in errors),
                errors=errors,
            )

    df.to_csv(file_path, **to_csv_kwargs)
