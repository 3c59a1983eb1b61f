"""
Data Loader for timeline inputs and persisted projects.

Loads the asset catalog and bank holidays from CSV, hydrates persisted
project documents into computed ProjectState snapshots and exports them back.
"""

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Union

import pandas as pd

from src.config.settings import Settings
from schemas.validator import (
    validate_catalog_dataframe,
    validate_bank_holiday_dataframe,
    validate_persisted_state,
    StateValidationError,
    CatalogValidationError,
)
from schemas.persisted_state import (
    PersistedState,
    PersistedAsset,
    PersistedTask,
    PersistedCustomTask,
    PersistedEdge,
)
from .cpm.models import Task, Asset, Dependency, TemplateTask, Catalog, ScheduleMode, OWNER_LIVE
from .cpm.network import CycleError, CrossAssetDependencyError
from .cpm.state import ProjectState
from .analysis.accordion import AccordionPropagator
from .analysis.mutations import build_asset_tasks

logger = logging.getLogger(__name__)


# Task names that mark the go-live task when a catalog has no explicit 'l' owner
LIVE_TASK_PATTERN = re.compile(r'\blive\b|issue date|send date|go-?live', re.IGNORECASE)


def catalog_from_dataframe(df: pd.DataFrame) -> Catalog:
    """
    Build a Catalog from catalog rows.

    Rows are grouped by asset type in file order. If a type has no live owner,
    a final task named like a go-live date is promoted to live.

    Raises:
        CatalogValidationError: Invalid rows or a type without exactly one
                                live task in last position
    """
    rows = validate_catalog_dataframe(df)

    grouped: dict[str, list[TemplateTask]] = defaultdict(list)
    for row in rows:
        duration = 1 if row.owner == OWNER_LIVE else row.duration
        grouped[row.asset_type].append(TemplateTask(row.task, duration, row.owner))

    errors = []
    for asset_type, templates in grouped.items():
        live_count = sum(1 for t in templates if t.is_live())
        if live_count == 0 and LIVE_TASK_PATTERN.search(templates[-1].name):
            templates[-1] = TemplateTask(templates[-1].name, 1, OWNER_LIVE)
            live_count = 1
        if live_count != 1:
            errors.append(f"{asset_type}: expected exactly one live task, found {live_count}")
        elif not templates[-1].is_live():
            errors.append(f"{asset_type}: live task must be the last task")

    if errors:
        raise CatalogValidationError(f"Catalog is invalid: {'; '.join(errors)}", errors=errors)

    return Catalog({k: tuple(v) for k, v in grouped.items()})


def load_catalog(file_path: Path = None) -> Catalog:
    """
    Load the asset catalog CSV.

    Args:
        file_path: Catalog CSV (default: Settings.CATALOG_FILE) with columns
                   'Asset Type', 'Task', 'Duration (Days)' and optional 'owner'

    Returns:
        Catalog mapping asset type to its template sequence
    """
    if file_path is None:
        file_path = Settings.CATALOG_FILE

    df = pd.read_csv(file_path, skipinitialspace=True)
    catalog = catalog_from_dataframe(df)
    logger.info(f"Loaded catalog with {len(catalog)} asset types from {Path(file_path).name}")
    return catalog


def load_bank_holidays(file_path: Path = None) -> frozenset:
    """
    Load bank holiday dates from a CSV with a 'date' column.

    Raises:
        HolidayValidationError: If the 'date' column is missing or any date is malformed
    """
    if file_path is None:
        file_path = Settings.BANK_HOLIDAYS_FILE

    df = pd.read_csv(file_path, dtype=str, skipinitialspace=True)
    holidays = frozenset(row.date for row in validate_bank_holiday_dataframe(df))
    logger.info(f"Loaded {len(holidays)} bank holidays from {Path(file_path).name}")
    return holidays


# ============================================================================
# Persisted state
# ============================================================================

def _derive_tasks(state: ProjectState, persisted: PersistedState, catalog: Catalog) -> None:
    """Regenerate task lists from the catalog, then apply overrides and custom tasks."""
    overrides = dict(persisted.duration_overrides)

    for asset in state.assets.values():
        if asset.asset_type not in catalog:
            raise StateValidationError(
                f"Asset {asset.asset_id} has type {asset.asset_type!r} which is not in the catalog",
                errors=[f"assets.{asset.asset_id}.type: unknown asset type"],
            )
        for task in build_asset_tasks(asset, catalog):
            if task.task_id in overrides and not task.is_live():
                task.duration = overrides.pop(task.task_id)
            state.graph.add_task(task)
            state.sequences[asset.asset_id].append(task.task_id)

    for custom in persisted.custom_tasks:
        sequence = state.sequences[custom.asset_id]
        if custom.id in state.graph:
            raise StateValidationError(f"Duplicate task ID {custom.id}", errors=[f"custom_tasks.{custom.id}"])

        if custom.insert_after_task_id is None:
            position = 0
        elif custom.insert_after_task_id in sequence:
            position = sequence.index(custom.insert_after_task_id)
            if not state.graph.tasks[custom.insert_after_task_id].is_live():
                position += 1
        else:
            logger.warning(f"Custom task {custom.id} follows unknown task "
                           f"{custom.insert_after_task_id}; placing it before go-live")
            position = len(sequence) - 1

        asset = state.assets[custom.asset_id]
        task = Task(custom.id, custom.name, overrides.pop(custom.id, custom.duration),
                    custom.owner, custom.asset_id, asset.asset_type, is_custom=True)
        state.graph.add_task(task)
        sequence.insert(position, task.task_id)

    for task_id in overrides:
        logger.warning(f"Dropping duration override for unknown task {task_id}")


def _frozen_tasks(state: ProjectState, persisted: PersistedState) -> None:
    """Use the persisted per-instance task list verbatim."""
    for record in persisted.tasks:
        asset = state.assets[record.asset_id]
        duration = persisted.duration_overrides.get(record.id, record.duration)
        if record.owner == OWNER_LIVE and duration != 1:
            raise StateValidationError(
                f"Live task {record.id} must have a duration of 1",
                errors=[f"tasks.{record.id}.duration: live task duration must be 1"],
            )
        state.graph.add_task(Task(record.id, record.name, duration, record.owner,
                                  record.asset_id, asset.asset_type, is_custom=record.is_custom))
        state.sequences[record.asset_id].append(record.id)

    unknown = set(persisted.duration_overrides) - set(state.graph.tasks)
    if unknown:
        raise StateValidationError(
            f"Duration overrides reference unknown tasks: {sorted(unknown)}",
            errors=[f"duration_overrides.{tid}: unknown task" for tid in sorted(unknown)],
        )


def _load_dependencies(state: ProjectState, persisted: PersistedState, strict: bool) -> None:
    """
    Seed default edges, then replace inbound edges of every persisted successor.

    In strict (frozen) mode dangling or cross-asset references are errors;
    otherwise they are dropped with a warning.
    """
    persisted_successors = set(persisted.dependencies)

    for sequence in state.sequences.values():
        for dep in state.graph.default_template_edges(sequence):
            if dep.succ_task_id not in persisted_successors:
                state.graph.add_edge(dep.pred_task_id, dep.succ_task_id, dep.dep_type, dep.lag)

    errors = []
    for succ_id, edges in persisted.dependencies.items():
        if succ_id not in state.graph:
            if strict:
                errors.append(f"dependencies.{succ_id}: unknown successor")
            else:
                logger.warning(f"Dropping dependencies of unknown task {succ_id}")
            continue

        for edge in edges:
            pred = state.graph.get_task(edge.predecessor_id)
            problem = None
            if edge.predecessor_id == succ_id:
                problem = "self dependency"
            elif pred is None:
                problem = f"unknown predecessor {edge.predecessor_id}"
            elif pred.asset_id != state.graph.tasks[succ_id].asset_id:
                problem = f"cross-asset predecessor {edge.predecessor_id}"

            if problem:
                if strict:
                    errors.append(f"dependencies.{succ_id}: {problem}")
                else:
                    logger.warning(f"Dropping dependency of {succ_id}: {problem}")
                continue

            try:
                if edge.is_legacy_overlap():
                    dep = Dependency.from_legacy(edge.predecessor_id, succ_id, edge.lag, pred.duration)
                else:
                    dep = Dependency(edge.predecessor_id, succ_id, edge.type, edge.lag)
                state.graph.add_edge(dep.pred_task_id, dep.succ_task_id, dep.dep_type, dep.lag)
            except (CycleError, CrossAssetDependencyError, ValueError) as e:
                errors.append(f"dependencies.{succ_id}: {e}")

    if errors:
        raise StateValidationError(
            f"Persisted dependencies are invalid: {'; '.join(errors[:5])}",
            errors=errors,
        )


def hydrate_state(persisted: Union[PersistedState, dict, str],
                  propagator: AccordionPropagator) -> ProjectState:
    """
    Build a computed ProjectState from a persisted document.

    Args:
        persisted: PersistedState, parsed dict or JSON text
        propagator: Supplies the catalog, calculator and default ScheduleMode.
                    The document's freeze flag forces FROZEN mode.

    Returns:
        ProjectState with every asset scheduled

    Raises:
        StateValidationError: If the document is malformed
    """
    persisted = validate_persisted_state(persisted)
    mode = ScheduleMode.FROZEN if persisted.freeze else propagator.mode

    state = ProjectState(
        global_live_date=persisted.global_live_date,
        use_global_date=persisted.use_global_date,
        mode=mode,
    )
    for record in persisted.assets:
        state.assets[record.id] = Asset(record.id, record.type, record.name, record.anchor_date)
        state.sequences[record.id] = []

    if mode is ScheduleMode.FROZEN:
        _frozen_tasks(state, persisted)
    else:
        _derive_tasks(state, persisted, propagator.catalog)

    for asset_id in state.assets:
        live_count = sum(1 for t in state.asset_tasks(asset_id) if t.is_live())
        if live_count != 1:
            raise StateValidationError(
                f"Asset {asset_id} must have exactly one live task, found {live_count}",
                errors=[f"tasks.{asset_id}: {live_count} live tasks"],
            )

    _load_dependencies(state, persisted, strict=mode is ScheduleMode.FROZEN)

    issues = state.graph.validate()
    if issues:
        raise StateValidationError(
            f"Dependency graph is invalid: {'; '.join(issues[:5])}",
            errors=issues,
        )

    propagator.recompute(state)
    logger.debug(f"Hydrated {state!r}")
    return state


def export_state(state: ProjectState, freeze: bool = True) -> PersistedState:
    """
    Export a snapshot as a persisted document.

    Every task is keyed in `dependencies` (possibly with no edges) so that the
    graph is restored exactly on import.
    """
    tasks = []
    custom_tasks = []
    overrides = {}
    dependencies = {}

    for asset_id in state.assets:
        sequence = state.sequences[asset_id]
        for index, task in enumerate(state.asset_tasks(asset_id)):
            tasks.append(PersistedTask(
                id=task.task_id,
                name=task.name,
                duration=task.duration,
                owner=task.owner,
                asset_id=asset_id,
                is_custom=task.is_custom,
            ))
            if task.is_custom:
                custom_tasks.append(PersistedCustomTask(
                    id=task.task_id,
                    asset_id=asset_id,
                    name=task.name,
                    duration=task.duration,
                    owner=task.owner,
                    insert_after_task_id=sequence[index - 1] if index > 0 else None,
                ))
            elif not task.is_live():
                overrides[task.task_id] = task.duration

            dependencies[task.task_id] = [
                PersistedEdge(predecessor_id=dep.pred_task_id, type=dep.dep_type, lag=dep.lag)
                for dep in state.graph.get_predecessors(task.task_id)
            ]

    return PersistedState(
        assets=[
            PersistedAsset(id=a.asset_id, type=a.asset_type, name=a.name, anchor_date=a.anchor_date)
            for a in state.assets.values()
        ],
        tasks=tasks,
        duration_overrides=overrides,
        custom_tasks=custom_tasks,
        dependencies=dependencies,
        global_live_date=state.global_live_date,
        use_global_date=state.use_global_date,
        freeze=freeze,
    )


def save_state(state: ProjectState, file_path: Path, freeze: bool = True) -> Path:
    """Write an exported snapshot as JSON."""
    file_path = Path(file_path)
    file_path.write_text(export_state(state, freeze=freeze).model_dump_json(indent=2), encoding='utf-8')
    return file_path


def schedule_to_dataframe(state: ProjectState) -> pd.DataFrame:
    """One row per task across all assets, in sequence order."""
    records = []
    for asset in state.assets.values():
        for task in state.asset_tasks(asset.asset_id):
            records.append({
                'asset_id': asset.asset_id,
                'asset_name': asset.name,
                'asset_type': asset.asset_type,
                'task_id': task.task_id,
                'task_name': task.name,
                'owner': task.owner,
                'duration': task.duration,
                'start': task.start.isoformat() if task.start else None,
                'end': task.end.isoformat() if task.end else None,
                'is_custom': task.is_custom,
            })
    return pd.DataFrame(records, columns=[
        'asset_id', 'asset_name', 'asset_type', 'task_id', 'task_name',
        'owner', 'duration', 'start', 'end', 'is_custom',
    ])
