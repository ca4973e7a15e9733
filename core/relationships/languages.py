"""
Language type tables.

Each supported language is a TypeTable value; the extraction algorithm
itself is shared.
"""

from .base import StructuralExtractor, TypeTable


TYPESCRIPT_PRIMITIVES = frozenset({
    "string", "number", "boolean", "void", "null", "undefined",
    "any", "never", "unknown", "object", "symbol", "bigint",
})

TYPESCRIPT_WRAPPERS = frozenset({
    "Promise", "PromiseLike", "Awaited",
    "Array", "ReadonlyArray", "Set", "ReadonlySet", "WeakSet",
    "Map", "ReadonlyMap", "WeakMap",
    "Iterable", "AsyncIterable", "Iterator", "AsyncIterator",
    "Partial", "Required", "Readonly", "NonNullable",
})

TYPESCRIPT_TYPES = TypeTable(
    language="typescript",
    primitives=TYPESCRIPT_PRIMITIVES,
    case_sensitive=False,
    transparent_wrappers=TYPESCRIPT_WRAPPERS,
    null_types=frozenset({"null", "undefined"}),
    generic_open="<",
    generic_close=">",
    import_target_type="file",
)

# Same walk as TypeScript; plain JavaScript has no static types to follow
JAVASCRIPT_TYPES = TypeTable(
    language="javascript",
    primitives=TYPESCRIPT_PRIMITIVES,
    case_sensitive=False,
    transparent_wrappers=TYPESCRIPT_WRAPPERS,
    null_types=frozenset({"null", "undefined"}),
    import_target_type="file",
    emit_type_usage=False,
)

PYTHON_PRIMITIVES = frozenset({
    "str", "int", "float", "bool", "None", "NoneType", "bytes", "bytearray",
    "complex", "list", "dict", "set", "frozenset", "tuple", "type",
    "Any", "object", "List", "Dict", "Set", "FrozenSet", "Tuple",
    "Optional", "Union", "Type", "Callable",
})

PYTHON_WRAPPERS = frozenset({
    "List", "Dict", "Set", "FrozenSet", "Tuple", "Type",
    "list", "dict", "set", "frozenset", "tuple", "type",
    "Sequence", "MutableSequence", "Mapping", "MutableMapping",
    "Iterable", "Iterator", "AsyncIterable", "AsyncIterator",
    "Generator", "AsyncGenerator", "Awaitable",
    "Annotated", "ClassVar", "Final",
})

PYTHON_TYPES = TypeTable(
    language="python",
    primitives=PYTHON_PRIMITIVES,
    case_sensitive=True,
    transparent_wrappers=PYTHON_WRAPPERS,
    union_wrappers=frozenset({"Optional", "Union"}),
    null_types=frozenset({"None", "NoneType"}),
    generic_open="[",
    generic_close="]",
    union_separators=("|",),
    intersection_separators=(),
    array_suffix=None,
    optional_suffix=None,
    match_last_segment=True,
    strip_quotes=True,
    import_target_type="module",
)


def create_typescript_extractor() -> StructuralExtractor:
    return StructuralExtractor(TYPESCRIPT_TYPES)


def create_javascript_extractor() -> StructuralExtractor:
    return StructuralExtractor(JAVASCRIPT_TYPES)


def create_python_extractor() -> StructuralExtractor:
    return StructuralExtractor(PYTHON_TYPES)
