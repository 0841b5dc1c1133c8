"""
Typed query records produced by inference.
Instances are immutable once built and handed to the renderer as-is.
"""
from dataclasses import dataclass
from typing import Tuple

from sqlinfer.catalog.models import CatalogType
from sqlinfer.types.resolver import Declaration
from sqlinfer.types.target import TargetType


@dataclass(frozen=True)
class InputParam:
    """One query parameter, in placeholder order."""
    name: str
    pg_type: CatalogType
    target_type: TargetType
    nullable: bool = False


@dataclass(frozen=True)
class OutputColumn:
    """One result column, in select-list order."""
    pg_name: str
    name: str  # Go identifier derived from pg_name
    pg_type: CatalogType
    target_type: TargetType
    nullable: bool = True


@dataclass(frozen=True)
class TypedQuery:
    """A source query with every input and output typed."""
    name: str
    prepared_sql: str
    inputs: Tuple[InputParam, ...] = ()
    outputs: Tuple[OutputColumn, ...] = ()


@dataclass(frozen=True)
class InferenceResult:
    """
    Everything a renderer needs from one run: the typed queries in input
    order and the enum/composite declarations synthesized along the way.
    """
    queries: Tuple[TypedQuery, ...]
    declarations: Tuple[Declaration, ...]
