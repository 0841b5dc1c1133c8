"""Errors raised while inferring query types.

Every error here aborts the whole generation run; callers are expected to
let them propagate rather than skip the offending query.
"""


class InferenceError(Exception):
    """Base class for all inference failures."""


class ConfigError(InferenceError, ValueError):
    """Invalid configuration value (override string, acronym, package path)."""


class EngineConnectionError(InferenceError):
    """The database engine could not be reached or the connection was lost."""


class QuerySyntaxError(InferenceError):
    """The engine rejected a query while preparing it."""

    def __init__(self, query_name: str, message: str):
        self.query_name = query_name
        super().__init__(f"prepare query {query_name}: {message}")


class ParamCountMismatchError(InferenceError):
    """Engine parameter count differs from the declared parameter names."""

    def __init__(self, query_name: str, expected: int, actual: int):
        self.query_name = query_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"query {query_name} declares {expected} parameters "
            f"but the prepared statement has {actual}"
        )


class ResultKindMismatchError(InferenceError):
    """A :one or :many query reports no result columns."""

    def __init__(self, query_name: str, kind: str):
        self.query_name = query_name
        self.kind = kind
        super().__init__(
            f"query {query_name} has incompatible result kind :{kind}; "
            "the query doesn't return any rows"
        )


class UnresolvableTypeError(InferenceError):
    """A catalog type cannot be mapped to any target type."""


class CompositeCycleError(UnresolvableTypeError):
    """A composite type references itself, directly or through other composites."""

    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__(
            "composite type cycle detected: " + " -> ".join(self.chain)
        )


class NameCollisionError(InferenceError):
    """Two distinct catalog types would share one target name in a package."""

    def __init__(self, qualified_name: str, existing: str, claimant: str):
        self.qualified_name = qualified_name
        self.existing = existing
        self.claimant = claimant
        super().__init__(
            f"target type {qualified_name} is already used by catalog type "
            f"{existing}; cannot also use it for {claimant} "
            "(add a type override or acronym to disambiguate)"
        )


class DuplicateQueryError(InferenceError):
    """Two source queries share a name."""


class InferenceTimeoutError(InferenceError):
    """The run did not finish before its deadline."""
