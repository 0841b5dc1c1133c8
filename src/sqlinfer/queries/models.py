"""
Source query records handed to the inferrer.
Validated with pydantic so malformed manifests fail before touching the database.
"""
import re
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_PLACEHOLDER = re.compile(r"\$(\d+)")


class ResultKind(str, Enum):
    """Declared row expectation of a query."""
    EXEC = "exec"
    ONE = "one"
    MANY = "many"

    def __str__(self):
        return self.value


class SourceQuery(BaseModel):
    """A named query with positional $n placeholders, as produced by the parser."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    prepared_sql: str = Field(..., alias="sql")
    param_names: List[str] = Field(default_factory=list, alias="params")
    result_kind: ResultKind = Field(ResultKind.EXEC, alias="kind")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.isidentifier():
            raise ValueError(f"Query name must be a valid identifier: {v!r}")
        return v

    @field_validator("prepared_sql")
    @classmethod
    def validate_sql(cls, v):
        if not v.strip():
            raise ValueError("SQL cannot be empty")
        return v.strip()

    @field_validator("result_kind", mode="before")
    @classmethod
    def validate_kind(cls, v):
        # Accept the ":many" spelling used in query file annotations
        if isinstance(v, str):
            return v.strip().lstrip(":").lower()
        return v

    @model_validator(mode="after")
    def validate_param_names(self):
        if len(set(self.param_names)) != len(self.param_names):
            raise ValueError(f"Query {self.name} has duplicate parameter names")
        return self

    def placeholder_count(self) -> int:
        """Highest $n placeholder in the SQL text."""
        numbers = [int(n) for n in _PLACEHOLDER.findall(self.prepared_sql)]
        return max(numbers, default=0)
