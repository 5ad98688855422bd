"""
Pydantic models and option enums for lazyiter.

Describes producer pipelines declaratively (a source plus a chain of
operations) so they can be validated before anything is pulled.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PairMode(str, Enum):
    """How the items() adapter hands out its (key, value) pairs"""
    FRESH = "fresh"
    REUSE = "reuse"


class SourceType(str, Enum):
    """Source adapter or generator at the head of a pipeline"""
    EACH = "each"
    KEYS = "keys"
    VALUES = "values"
    ITEMS = "items"
    COUNT = "count"
    VALUE = "value"


class OperationType(str, Enum):
    """Combinator applied to the running producer"""
    MAP = "map"
    FILTER = "filter"
    TAKEWHILE = "takewhile"
    ISLICE = "islice"
    CYCLE = "cycle"
    SORTED = "sorted"


_KEYED_SOURCES = {SourceType.KEYS, SourceType.VALUES, SourceType.ITEMS}
_FUNCTION_OPERATIONS = {OperationType.MAP, OperationType.FILTER, OperationType.TAKEWHILE}
_SOURCE_OPTIONS = {
    SourceType.COUNT: {"start", "step"},
    SourceType.VALUE: {"value", "times"},
    SourceType.ITEMS: {"pair_mode"},
}
_SORT_OPTIONS = {"reverse", "cache_keys"}


def _stray_fields(model, allowed, options):
    """Option fields explicitly set on `model` that are not in `allowed`"""
    return sorted((model.model_fields_set & options) - allowed)


class SourceSpec(BaseModel):
    """Where a pipeline gets its elements from"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: SourceType = Field(
        ...,
        description="Source adapter or generator to use"
    )
    data: Optional[Any] = Field(
        None,
        description="Container for each/keys/values/items"
    )
    start: Any = Field(
        1,
        description="First value produced by count"
    )
    step: Any = Field(
        1,
        description="Increment between count values"
    )
    value: Optional[Any] = Field(
        None,
        description="Object repeated by value"
    )
    times: Optional[int] = Field(
        None,
        description="Repetitions for value; None repeats forever"
    )
    pair_mode: PairMode = Field(
        PairMode.FRESH,
        description="Pair allocation strategy for items"
    )

    @model_validator(mode="after")
    def validate_container(self):
        """Container adapters need a container of the right shape"""
        if self.type in _KEYED_SOURCES:
            if not isinstance(self.data, Mapping):
                raise ValueError(f"{self.type.value} source requires a mapping")
        elif self.type == SourceType.EACH:
            if not isinstance(self.data, (list, tuple)):
                raise ValueError("each source requires a list or tuple")
        elif self.data is not None:
            raise ValueError(f"{self.type.value} source does not take data")
        stray = _stray_fields(
            self,
            _SOURCE_OPTIONS.get(self.type, set()),
            set().union(*_SOURCE_OPTIONS.values()),
        )
        if stray:
            raise ValueError(f"{self.type.value} source does not take {', '.join(stray)}")
        return self


class OperationSpec(BaseModel):
    """One step of a pipeline"""
    type: OperationType = Field(
        ...,
        description="Combinator to apply"
    )
    function: Optional[Callable[..., Any]] = Field(
        None,
        description="Transform, predicate, or sort key"
    )
    start: Optional[int] = Field(
        None,
        description="First 1-based position kept by islice"
    )
    stop: Optional[int] = Field(
        None,
        description="Last 1-based position kept by islice"
    )
    reverse: bool = Field(
        False,
        description="Yield sorted elements in descending order"
    )
    cache_keys: bool = Field(
        True,
        description="Compute each sort key once instead of per comparison"
    )

    @model_validator(mode="after")
    def validate_arguments(self):
        """Reject arguments that the chosen operation does not use"""
        if self.type in _FUNCTION_OPERATIONS and self.function is None:
            raise ValueError(f"{self.type.value} requires a function")
        if self.type in {OperationType.ISLICE, OperationType.CYCLE} and self.function is not None:
            raise ValueError(f"{self.type.value} does not take a function")
        if self.type != OperationType.ISLICE and (self.start is not None or self.stop is not None):
            raise ValueError("start/stop are only valid for islice")
        if self.type != OperationType.SORTED:
            stray = _stray_fields(self, set(), _SORT_OPTIONS)
            if stray:
                raise ValueError(f"{', '.join(stray)} only valid for sorted")
        return self


class PipelineRequest(BaseModel):
    """A source followed by a chain of operations"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: SourceSpec
    operations: List[OperationSpec] = Field(
        default_factory=list,
        description="Operations applied in order"
    )
    limit: Optional[int] = Field(
        None,
        description="Maximum number of elements to materialize"
    )

    @field_validator('limit')
    @classmethod
    def validate_limit(cls, v):
        """Limit must be positive when given"""
        if v is not None and v < 1:
            raise ValueError("Limit must be >= 1")
        return v
