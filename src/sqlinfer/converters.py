"""
Convert inference results to plain dicts for the renderer.
"""
from typing import Any, Dict, List, Set

from sqlinfer.inference.models import InferenceResult, TypedQuery
from sqlinfer.types.target import (
    ArrayType,
    BuiltinType,
    CompositeType,
    EnumType,
    OpaqueType,
    TargetType,
)


TYPE_KINDS = {
    BuiltinType: "builtin",
    OpaqueType: "opaque",
    EnumType: "enum",
    CompositeType: "composite",
    ArrayType: "array",
}


class ResultConverter:
    """Converts an InferenceResult into JSON-serializable dicts."""

    def __init__(self, pkg_path: str):
        """
        Args:
            pkg_path: Go package the generated code lives in; types from
                      this package are written unqualified
        """
        self.pkg_path = pkg_path

    def convert_type(self, typ: TargetType) -> Dict[str, Any]:
        """Reference to a Go type as seen from pkg_path."""
        return {
            'kind': TYPE_KINDS[type(typ)],
            'name': typ.qualify_rel(self.pkg_path),
            'import': typ.import_path,
        }

    def convert_query(self, query: TypedQuery) -> Dict[str, Any]:
        """Convert a single typed query."""
        return {
            'name': query.name,
            'sql': query.prepared_sql,
            'inputs': [
                {
                    'name': p.name,
                    'pg_type': p.pg_type.qualified_name,
                    'type': self.convert_type(p.target_type),
                    'nullable': p.nullable,
                }
                for p in query.inputs
            ],
            'outputs': [
                {
                    'pg_name': c.pg_name,
                    'name': c.name,
                    'pg_type': c.pg_type.qualified_name,
                    'type': self.convert_type(c.target_type),
                    'nullable': c.nullable,
                }
                for c in query.outputs
            ],
        }

    def convert_declaration(self, decl) -> Dict[str, Any]:
        """Convert a synthesized enum or composite declaration."""
        if isinstance(decl, EnumType):
            return {
                'kind': 'enum',
                'name': decl.name,
                'pg_type': decl.pg_enum.qualified_name,
                'labels': list(decl.labels),
                'values': list(decl.values),
            }
        return {
            'kind': 'composite',
            'name': decl.name,
            'pg_type': decl.pg_composite.qualified_name,
            'fields': [
                {'name': name, 'type': self.convert_type(typ)}
                for name, typ in zip(decl.field_names, decl.field_types)
            ],
        }

    def imports(self, result: InferenceResult) -> List[str]:
        """Sorted import paths of types from other packages."""
        paths: Set[str] = set()
        types: List[TargetType] = []
        for query in result.queries:
            types.extend(p.target_type for p in query.inputs)
            types.extend(c.target_type for c in query.outputs)
        for decl in result.declarations:
            if isinstance(decl, CompositeType):
                types.extend(decl.field_types)
        for typ in types:
            if typ.import_path and typ.import_path != self.pkg_path:
                paths.add(typ.import_path)
        return sorted(paths)

    def convert(self, result: InferenceResult) -> Dict[str, Any]:
        """Convert a whole run."""
        return {
            'package': self.pkg_path,
            'imports': self.imports(result),
            'declarations': [self.convert_declaration(d) for d in result.declarations],
            'queries': [self.convert_query(q) for q in result.queries],
        }
