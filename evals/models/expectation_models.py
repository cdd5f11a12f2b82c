from __future__ import annotations

from typing import Any

from pydantic import Field

from models.fixture_models import FixtureModel


class FixtureSet(FixtureModel):
    """Names of the fixture files a scenario is seeded from."""
    project: str | None = None
    chapter: str | None = None
    timelines: str | None = None
    blocks: str | None = None
    media_assets: str | None = None


class MatchCondition(FixtureModel):
    """
    Condition on a single field of a diff payload.

    ``equals`` and ``one_of`` short-circuit; numeric bounds apply only to
    numbers and ``contains``/``matches`` only to strings.
    """
    equals: int | float | str | bool | None = None
    gte: float | None = None
    lte: float | None = None
    gt: float | None = None
    lt: float | None = None
    contains: str | None = None
    matches: str | None = Field(default=None, description="Regular expression")
    one_of: list[int | float | str | bool] | None = None


class EntityMatch(FixtureModel):
    """
    Selects an entity in a diff by field values.

    ``match`` values are either plain values (compared with ==) or
    MatchCondition payloads; ``changes`` are checked against the record
    after modification.
    """
    match: dict[str, Any] = Field(default_factory=dict)
    changes: dict[str, MatchCondition] = Field(default_factory=dict)


class BlockExpectations(FixtureModel):
    added: list[EntityMatch] = Field(default_factory=list)
    modified: list[EntityMatch] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)


class TimelineExpectations(FixtureModel):
    added: list[EntityMatch] = Field(default_factory=list)
    modified: list[EntityMatch] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)


class MediaAssetExpectations(FixtureModel):
    added: list[EntityMatch] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)


class FinalStateExpectations(FixtureModel):
    blocks: BlockExpectations | None = None
    timelines: TimelineExpectations | None = None
    media_assets: MediaAssetExpectations | None = None


class AssertionResult(FixtureModel):
    name: str
    passed: bool
    expected: Any = None
    actual: Any = None
    message: str | None = None
