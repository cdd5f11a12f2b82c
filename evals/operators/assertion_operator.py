"""
Final-state assertions over a DataDiff.

Scenario expectations describe which blocks, timelines and media assets an
agent should have added, modified or deleted. Each expectation produces an
AssertionResult; a scenario passes when every result passed.

Field names in ``match`` / ``changes`` refer to the camelCase report form
(``timelineOffsetInFrames``), matching what reporting renders.
"""

import logging
import re
from typing import Any

from models.diff_models import DataDiff, EntityChanges
from models.expectation_models import (
    AssertionResult,
    EntityMatch,
    FinalStateExpectations,
    MatchCondition,
)

logger = logging.getLogger(__name__)


def evaluate_condition(value: Any, condition: MatchCondition) -> bool:
    if "equals" in condition.model_fields_set:
        expected = condition.equals
        # True == 1 in Python; keep booleans and numbers apart.
        return value == expected and isinstance(value, bool) == isinstance(expected, bool)

    if condition.one_of is not None:
        return value in condition.one_of

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if condition.gte is not None and value < condition.gte:
            return False
        if condition.lte is not None and value > condition.lte:
            return False
        if condition.gt is not None and value <= condition.gt:
            return False
        if condition.lt is not None and value >= condition.lt:
            return False

    if isinstance(value, str):
        if condition.contains is not None and condition.contains not in value:
            return False
        if condition.matches is not None and not re.search(condition.matches, value):
            return False

    return True


def matches_conditions(payload: dict[str, Any], conditions: dict[str, Any]) -> bool:
    """Plain values (None included) must be equal; dict values are parsed as MatchCondition."""
    for key, condition in conditions.items():
        value = payload.get(key)
        if isinstance(condition, MatchCondition):
            if not evaluate_condition(value, condition):
                return False
        elif isinstance(condition, dict):
            if not evaluate_condition(value, MatchCondition.model_validate(condition)):
                return False
        elif value != condition:
            return False
    return True


class _FinalStateChecker:
    def __init__(self, diff: DataDiff) -> None:
        self.diff = diff
        self.results: list[AssertionResult] = []

    def add(self, **kwargs: Any) -> None:
        self.results.append(AssertionResult(**kwargs))

    def check_added(self, label: str, changes: EntityChanges, expected: EntityMatch) -> None:
        matching = next(
            (entry for entry in changes.added if matches_conditions(entry.data, expected.match)),
            None,
        )
        self.add(
            name=f"{label} added matching: {expected.match}",
            passed=matching is not None,
            expected=expected.match,
            actual=matching.data if matching else f"no matching {label.lower()} found",
            message=None if matching else f"No matching {label.lower()} was added",
        )

    def check_modified(self, label: str, changes: EntityChanges, expected: EntityMatch) -> None:
        matching = next(
            (entry for entry in changes.modified if matches_conditions(entry.before, expected.match)),
            None,
        )
        if matching is None:
            self.add(
                name=f"{label} modified matching: {expected.match}",
                passed=False,
                expected=expected.model_dump(mode="json", by_alias=True),
                actual=f"no matching {label.lower()} found",
                message=f"No matching {label.lower()} was modified",
            )
            return

        if not expected.changes:
            self.add(
                name=f"{label} '{matching.id}' was modified",
                passed=True,
                expected=expected.match,
                actual=matching.after,
            )
            return

        for key, condition in expected.changes.items():
            actual_value = matching.after.get(key)
            passed = evaluate_condition(actual_value, condition)
            self.add(
                name=f"{label} '{matching.id}' field '{key}' matches condition",
                passed=passed,
                expected=condition.model_dump(mode="json", exclude_unset=True),
                actual=actual_value,
                message=None if passed else f"Field '{key}' does not match expected condition",
            )

    def check_deleted(self, label: str, changes: EntityChanges, entity_id: str) -> None:
        deleted = entity_id in changes.deleted_ids()
        self.add(
            name=f"{label} '{entity_id}' was deleted",
            passed=deleted,
            expected="deleted",
            actual="deleted" if deleted else "not deleted",
            message=None if deleted else f"{label} '{entity_id}' was not deleted",
        )

    def check_unchanged(self, label: str, changes: EntityChanges, entity_id: str) -> None:
        modified = entity_id in changes.modified_ids()
        deleted = entity_id in changes.deleted_ids()
        unchanged = not modified and not deleted
        actual = "modified" if modified else "deleted" if deleted else "unchanged"
        self.add(
            name=f"{label} '{entity_id}' was unchanged",
            passed=unchanged,
            expected="unchanged",
            actual=actual,
            message=None if unchanged else f"{label} '{entity_id}' was changed",
        )


def check_final_state(
    expectations: FinalStateExpectations, diff: DataDiff
) -> list[AssertionResult]:
    checker = _FinalStateChecker(diff)

    if expectations.blocks:
        for expected in expectations.blocks.added:
            checker.check_added("Block", diff.blocks, expected)
        for expected in expectations.blocks.modified:
            checker.check_modified("Block", diff.blocks, expected)
        for block_id in expectations.blocks.deleted:
            checker.check_deleted("Block", diff.blocks, block_id)
        for block_id in expectations.blocks.unchanged:
            checker.check_unchanged("Block", diff.blocks, block_id)

    if expectations.timelines:
        for expected in expectations.timelines.added:
            checker.check_added("Timeline", diff.timelines, expected)
        for expected in expectations.timelines.modified:
            checker.check_modified("Timeline", diff.timelines, expected)
        for timeline_id in expectations.timelines.deleted:
            checker.check_deleted("Timeline", diff.timelines, timeline_id)

    if expectations.media_assets:
        for expected in expectations.media_assets.added:
            checker.check_added("Media asset", diff.media_assets, expected)
        for asset_id in expectations.media_assets.deleted:
            checker.check_deleted("Media asset", diff.media_assets, asset_id)

    failed = [result.name for result in checker.results if not result.passed]
    if failed:
        logger.info("final_state_failed count=%d names=%s", len(failed), failed)
    return checker.results


def all_passed(results: list[AssertionResult]) -> bool:
    return all(result.passed for result in results)
