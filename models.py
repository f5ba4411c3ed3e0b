"""
Pydantic models for lazy sequence pipelines.

Configuration, sequence state and operation descriptors shared by the
engine (lazy.py) and the helpers in utils.py.
"""

from typing import Any, Callable, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from enum import Enum


class SequenceState(str, Enum):
    """Lifecycle state of a lazy sequence"""
    READY = "ready"
    EXHAUSTED = "exhausted"


class ReusePolicy(str, Enum):
    """What pulling an already-exhausted sequence does"""
    PERMISSIVE = "permissive"  # yields nothing further
    STRICT = "strict"          # raises SequenceReuseError


class OperationType(str, Enum):
    """Pipeline step kinds accepted by utils.build_pipeline"""
    MAP = "map"
    FILTER = "filter"
    TAKE = "take"
    SKIP = "skip"
    BATCH = "batch"
    GROUP_BY = "group_by"


class PipelineConfig(BaseModel):
    """Settings carried by a sequence and every stage derived from it"""
    reuse_policy: ReusePolicy = Field(
        ReusePolicy.PERMISSIVE,
        description="Behavior when an exhausted sequence is pulled again"
    )
    warn_on_reuse: bool = Field(
        True,
        description="Log a warning when an exhausted sequence is pulled under the permissive policy"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "reuse_policy": "strict",
                "warn_on_reuse": False
            }
        }
    )

    @property
    def strict(self) -> bool:
        return self.reuse_policy == ReusePolicy.STRICT


DEFAULT_CONFIG = PipelineConfig()


class OperationSpec(BaseModel):
    """One step of a pipeline described as data"""
    type: OperationType = Field(..., description="Kind of pipeline step")
    function: Optional[Callable[[Any], Any]] = Field(
        None,
        description="Mapper, predicate or key selector for map/filter/group_by"
    )
    count: Optional[int] = Field(
        None,
        description="Element count for take/skip",
        ge=0
    )
    size: Optional[int] = Field(
        None,
        description="Batch size for batch",
        ge=1
    )

    model_config = ConfigDict(frozen=True)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        """Accept names like 'groupBy', 'select' and 'where'"""
        if isinstance(v, str):
            aliases = {"select": "map", "where": "filter", "groupby": "group_by"}
            key = v.strip().lower()
            return aliases.get(key, key)
        return v

    @model_validator(mode='after')
    def check_arguments(self):
        """Each step type needs its own argument"""
        needs_function = {OperationType.MAP, OperationType.FILTER, OperationType.GROUP_BY}
        if self.type in needs_function and self.function is None:
            raise ValueError(f"'{self.type.value}' operation requires a function")
        if self.type in {OperationType.TAKE, OperationType.SKIP} and self.count is None:
            raise ValueError(f"'{self.type.value}' operation requires a count")
        if self.type == OperationType.BATCH and self.size is None:
            raise ValueError("'batch' operation requires a size")
        return self
