"""
Pydantic Models

Settings and descriptive models for the lazy stream engine.
"""

import logging
from typing import Any, Callable, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum


class StageKind(str, Enum):
    """Built-in stage kinds"""
    MAP = "map"
    PEEK = "peek"
    FILTER = "filter"
    FLAT_MAP_LIST = "flat_map_list"
    FLAT_MAP_STREAM = "flat_map_stream"
    FLAT_MAP_OPTIONAL = "flat_map_optional"
    DISTINCT = "distinct"
    SORT = "sort"
    LIMIT = "limit"
    SKIP = "skip"


class StageClass(str, Enum):
    """How a stage consumes its input"""
    STATELESS = "stateless"
    STATEFUL = "stateful"
    SHORT_CIRCUITING = "short_circuiting"


class SourceKind(str, Enum):
    """Source variants"""
    ARRAY = "array"
    ITERABLE = "iterable"
    SUPPLIER = "supplier"
    ITERATE = "iterate"
    RANGE = "range"
    CONCAT = "concat"


class StreamSettings(BaseModel):
    """Engine-wide settings, read when a stage is appended to a pipeline"""
    guard_unbounded_stateful: bool = Field(
        False,
        description="Raise UnboundedPipelineError when a stateful stage is "
                    "appended to an infinite source with no preceding limit"
    )
    warn_unbounded_stateful: bool = Field(
        True,
        description="Log a warning for the same condition when the guard is off"
    )
    log_level: str = Field(
        "WARNING",
        description="Level applied to the lazystream logger by setup_logging()"
    )

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "guard_unbounded_stateful": True,
                "warn_unbounded_stateful": True,
                "log_level": "DEBUG"
            }
        }
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate the level is a standard logging level name"""
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {v}")
        return level


class StageDescription(BaseModel):
    """Snapshot of one stage in a pipeline"""
    index: int = Field(..., description="Position in the pipeline, 0 is nearest the source", ge=0)
    kind: StageKind = Field(..., description="Stage kind")
    stage_class: StageClass = Field(..., description="Stateless, stateful or short-circuiting")
    stateless: bool = Field(..., description="Value of is_stateless()")
    pending_inputs: int = Field(0, description="Inputs queued but not yet processed", ge=0)
    short_circuited: bool = Field(False, description="Whether a limit stage has reached its bound")


class PipelineDescription(BaseModel):
    """Snapshot of a whole pipeline"""
    source_kind: SourceKind = Field(..., description="Kind of source at the pipeline root")
    source_infinite: bool = Field(..., description="Whether the source never exhausts")
    unbounded: bool = Field(..., description="Infinite source with no limit stage in the chain")
    started: bool = Field(False, description="Whether evaluation has been driven at least once")
    stages: List[StageDescription] = Field(default_factory=list, description="Stages, source first")

    @property
    def stage_count(self) -> int:
        return len(self.stages)


class OperationType(str, Enum):
    """Operations accepted by utils.build_stream"""
    MAP = "map"
    FILTER = "filter"
    PEEK = "peek"
    FLAT_MAP = "flat_map"
    FLAT_MAP_LIST = "flat_map_list"
    FLAT_MAP_OPTIONAL = "flat_map_optional"
    DISTINCT = "distinct"
    SORTED = "sorted"
    LIMIT = "limit"
    SKIP = "skip"


class OperationSpec(BaseModel):
    """One declarative intermediate operation"""
    type: OperationType = Field(..., description="Operation to apply")
    function: Optional[Callable[..., Any]] = Field(
        None,
        description="Callable for map/filter/peek/flat_map/distinct/sorted"
    )
    count: Optional[int] = Field(
        None,
        description="Bound for limit and skip"
    )

    @model_validator(mode="after")
    def validate_arguments(self):
        """Validate the operation carries the argument it needs"""
        if self.requires_function() and self.function is None:
            raise ValueError(f"Operation '{self.type.value}' requires a function")
        if self.requires_count() and self.count is None:
            raise ValueError(f"Operation '{self.type.value}' requires a count")
        return self

    def requires_function(self) -> bool:
        return self.type in (
            OperationType.MAP,
            OperationType.FILTER,
            OperationType.PEEK,
            OperationType.FLAT_MAP,
            OperationType.FLAT_MAP_LIST,
            OperationType.FLAT_MAP_OPTIONAL,
        )

    def requires_count(self) -> bool:
        return self.type in (OperationType.LIMIT, OperationType.SKIP)
