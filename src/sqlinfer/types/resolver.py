"""Resolve Postgres catalog types into Go target types for one generation run."""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Union

from sqlinfer.catalog.introspector import Introspector
from sqlinfer.catalog.models import CatalogKind, CatalogType
from sqlinfer.errors import (
    CompositeCycleError,
    ConfigError,
    NameCollisionError,
    UnresolvableTypeError,
)
from sqlinfer.utils.casing import Caser, choose_fallback_name, disambiguate
from .builtins import find_known_type
from .target import (
    ArrayType,
    BuiltinType,
    CompositeType,
    EnumType,
    OpaqueType,
    TargetType,
    extract_short_package,
    parse_opaque_type,
)


logger = logging.getLogger(__name__)

Declaration = Union[EnumType, CompositeType]


class TypeResolver:
    """
    Run-scoped registry from catalog type OID to Go type.

    Resolution order: user override, domain base type, known builtin,
    synthesized enum, synthesized composite, array element, and finally an
    opaque type named after an unknown scalar. The same OID always resolves
    to the same object, so a type used by many queries is declared once.

    The registry is guarded by one lock; nested resolutions (composite
    fields, array elements) run under the lock taken by the outermost call.
    """

    def __init__(
        self,
        introspector: Introspector,
        pkg_path: str,
        caser: Optional[Caser] = None,
        overrides: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize resolver.

        Args:
            introspector: Engine surface used to fetch catalog types
            pkg_path: Go package path that synthesized types are declared in
            caser: Identifier transform; defaults to no acronyms
            overrides: Catalog type name -> qualified Go type,
                       e.g. {"text": "github.com/acme/types.String"}
        """
        self._introspector = introspector
        self.pkg_path = pkg_path
        self.pkg = extract_short_package(pkg_path) if pkg_path else ""
        self._caser = caser or Caser()
        self._overrides: Dict[str, Union[BuiltinType, OpaqueType]] = {}
        for pg_name, go_type in (overrides or {}).items():
            try:
                self._overrides[pg_name] = parse_opaque_type(go_type)
            except ValueError as e:
                raise ConfigError(f"type override {pg_name}={go_type}: {e}") from e

        self._registry: Dict[int, TargetType] = {}
        self._names: Dict[Tuple[str, str], CatalogType] = {}
        self._declarations: List[Declaration] = []
        self._lock = asyncio.Lock()

    async def resolve(self, typ: Union[int, CatalogType]) -> TargetType:
        """
        Resolve a catalog type (or its OID) to a Go type.

        Raises:
            UnresolvableTypeError: No mapping exists, or a composite cycle
            NameCollisionError: Two catalog types claim one Go name
        """
        oid = typ.oid if isinstance(typ, CatalogType) else typ
        async with self._lock:
            return await self._resolve(oid, ())

    def declarations(self) -> Tuple[Declaration, ...]:
        """Synthesized enums and composites, dependencies first."""
        return tuple(self._declarations)

    async def _resolve(self, oid: int, chain: Tuple[CatalogType, ...]) -> TargetType:
        for seen in chain:
            if seen.oid == oid:
                names = [t.qualified_name for t in chain] + [seen.qualified_name]
                raise CompositeCycleError(names)

        cached = self._registry.get(oid)
        if cached is not None:
            return cached

        typ = await self._introspector.fetch_type(oid)
        target = await self._resolve_catalog_type(typ, chain + (typ,))
        self._registry[oid] = target
        logger.debug(f"Resolved {typ.qualified_name} -> {target.qualify_rel(self.pkg_path)}")
        return target

    async def _resolve_catalog_type(
        self, typ: CatalogType, chain: Tuple[CatalogType, ...]
    ) -> TargetType:
        override = self._find_override(typ)
        if override is not None:
            if isinstance(override, OpaqueType):
                self._claim(override.pkg_path, override.name, typ)
            return override

        if typ.kind is CatalogKind.DOMAIN:
            return await self._resolve(typ.base_oid, chain)

        known = find_known_type(typ.schema, typ.name)
        if known is not None:
            return known

        if typ.kind is CatalogKind.ENUM:
            return self._new_enum(typ)

        if typ.kind is CatalogKind.COMPOSITE:
            return await self._new_composite(typ, chain)

        if typ.kind is CatalogKind.ARRAY:
            elem = await self._resolve(typ.element_oid, chain)
            if isinstance(elem, BuiltinType):
                return BuiltinType("[]" + elem.name)
            return ArrayType(elem)

        if typ.kind is CatalogKind.SCALAR:
            logger.warning(
                f"No Go type known for {typ.qualified_name}; using opaque type {typ.name}"
            )
            self._claim("", typ.name, typ)
            return OpaqueType(pkg_path="", pkg="", name=typ.name)

        raise UnresolvableTypeError(
            f"no Go type for {typ.kind.value} type {typ.qualified_name} (oid {typ.oid}); "
            "add a type override"
        )

    def _find_override(self, typ: CatalogType) -> Optional[Union[BuiltinType, OpaqueType]]:
        for key in typ.override_keys():
            override = self._overrides.get(key)
            if override is not None:
                return override
        return None

    def _claim(self, pkg_path: str, name: str, typ: CatalogType) -> None:
        key = (pkg_path, name)
        existing = self._names.get(key)
        if existing is not None and existing.oid != typ.oid:
            qualified = f"{pkg_path}.{name}" if pkg_path else name
            raise NameCollisionError(qualified, existing.qualified_name, typ.qualified_name)
        self._names[key] = typ

    def _type_name(self, typ: CatalogType, fallback_prefix: str) -> str:
        name = self._caser.to_upper_ident(typ.name)
        if name == "":
            name = choose_fallback_name(typ.name, fallback_prefix)
        self._claim(self.pkg_path, name, typ)
        return name

    def _new_enum(self, typ: CatalogType) -> EnumType:
        name = self._type_name(typ, "UnnamedEnum")
        labels: List[str] = []
        for i, label in enumerate(typ.labels):
            ident = self._caser.to_upper_ident(label)
            if ident == "":
                ident = choose_fallback_name(label, f"UnnamedLabel{i}")
            const = name + ident
            if const in labels:
                first = typ.labels[labels.index(const)]
                raise NameCollisionError(
                    f"{self.pkg_path}.{const}",
                    f"{typ.qualified_name} label {first!r}",
                    f"{typ.qualified_name} label {label!r}",
                )
            # Label constants share the package namespace with type names
            self._claim(self.pkg_path, const, typ)
            labels.append(const)

        enum = EnumType(
            pkg_path=self.pkg_path,
            pkg=self.pkg,
            name=name,
            labels=tuple(labels),
            values=tuple(typ.labels),
            pg_enum=typ,
        )
        self._declarations.append(enum)
        logger.info(f"Declared enum {name} for {typ.qualified_name} ({len(labels)} labels)")
        return enum

    async def _new_composite(
        self, typ: CatalogType, chain: Tuple[CatalogType, ...]
    ) -> CompositeType:
        name = self._type_name(typ, "UnnamedComposite")
        field_names: List[str] = []
        field_types: List[TargetType] = []
        for i, field in enumerate(typ.fields):
            ident = self._caser.to_upper_ident(field.name)
            if ident == "":
                ident = choose_fallback_name(field.name, f"UnnamedField{i}")
            field_names.append(disambiguate(ident, set(field_names), i))
            field_types.append(await self._resolve(field.type_oid, chain))

        composite = CompositeType(
            pkg_path=self.pkg_path,
            pkg=self.pkg,
            name=name,
            field_names=tuple(field_names),
            field_types=tuple(field_types),
            pg_composite=typ,
        )
        self._declarations.append(composite)
        logger.info(
            f"Declared composite {name} for {typ.qualified_name} ({len(field_names)} fields)"
        )
        return composite
