"""
Go target types.

Each variant is a frozen dataclass exposing the same four accessors
(qualify_rel, import_path, package, base_name) so callers can treat the
TargetType union uniformly.
"""
import re
from dataclasses import dataclass
from typing import Tuple, Union

from sqlinfer.catalog.models import CatalogType


_MAJOR_VERSION = re.compile(r"^v[0-9]+$")


@dataclass(frozen=True)
class BuiltinType:
    """A predeclared Go type like string or int32, or a composite literal like []byte."""
    name: str

    def qualify_rel(self, pkg_path: str) -> str:
        return self.name

    @property
    def import_path(self) -> str:
        return ""

    @property
    def package(self) -> str:
        return ""

    @property
    def base_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class OpaqueType:
    """A type known only by name and package, as with a user-provided override."""
    pkg_path: str
    pkg: str
    name: str

    def qualify_rel(self, pkg_path: str) -> str:
        return _qualify_rel(self, pkg_path)

    @property
    def import_path(self) -> str:
        return self.pkg_path

    @property
    def package(self) -> str:
        return self.pkg

    @property
    def base_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class EnumType:
    """
    A string type whose constants map to the labels of a Postgres enum.

    labels[i] is the Go constant for the Postgres label values[i]; both keep
    the order Postgres declares, which is how values decode back to labels.
    """
    pkg_path: str
    pkg: str
    name: str
    labels: Tuple[str, ...]
    values: Tuple[str, ...]
    pg_enum: CatalogType

    def qualify_rel(self, pkg_path: str) -> str:
        return _qualify_rel(self, pkg_path)

    @property
    def import_path(self) -> str:
        return self.pkg_path

    @property
    def package(self) -> str:
        return self.pkg

    @property
    def base_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class CompositeType:
    """A struct type for a Postgres composite type, typically a table row."""
    pkg_path: str
    pkg: str
    name: str
    field_names: Tuple[str, ...]
    field_types: Tuple["TargetType", ...]
    pg_composite: CatalogType

    def qualify_rel(self, pkg_path: str) -> str:
        return _qualify_rel(self, pkg_path)

    @property
    def import_path(self) -> str:
        return self.pkg_path

    @property
    def package(self) -> str:
        return self.pkg

    @property
    def base_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    """A slice of a non-builtin element type, like []Device."""
    elem: "TargetType"

    def qualify_rel(self, pkg_path: str) -> str:
        return "[]" + self.elem.qualify_rel(pkg_path)

    @property
    def import_path(self) -> str:
        return self.elem.import_path

    @property
    def package(self) -> str:
        return self.elem.package

    @property
    def base_name(self) -> str:
        return "[]" + self.elem.base_name


TargetType = Union[BuiltinType, OpaqueType, EnumType, CompositeType, ArrayType]


def _qualify_rel(typ, other_pkg_path: str) -> str:
    if typ.import_path == other_pkg_path or typ.import_path == "" or typ.package == "":
        return typ.base_name
    return f"{typ.package}.{typ.base_name}"


def parse_opaque_type(qual_type: str) -> Union[BuiltinType, OpaqueType]:
    """
    Parse a fully qualified Go type like "github.com/jackc/pgtype.Text".

    A string without a dot names a builtin type like "string".
    """
    qual_type = qual_type.strip()
    if "." not in qual_type:
        return BuiltinType(qual_type)
    pkg_path, _, name = qual_type.rpartition(".")
    if not pkg_path or not name.isidentifier():
        raise ValueError(f"invalid qualified Go type: {qual_type!r}")
    return OpaqueType(pkg_path=pkg_path, pkg=extract_short_package(pkg_path), name=name)


def extract_short_package(pkg_path: str) -> str:
    """
    Get the last part of a package path like "generate" in
    "github.com/jschaf/pggen/generate".

    Major version suffixes are skipped, so ".../pgx/v4" gives "pgx".
    """
    parts = pkg_path.split("/")
    short_pkg = parts[-1]
    if _MAJOR_VERSION.match(short_pkg) and len(parts) > 1:
        short_pkg = parts[-2]
    return short_pkg
