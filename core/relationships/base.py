"""
Structural relationship extraction shared by every language.

A StructuralExtractor turns one parsed file into name-addressed
relationships. All language differences live in a TypeTable, so the
walking and type normalization below is the same for TypeScript,
JavaScript and Python.
"""

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..models.entities import ExtractedRelationship, RelationshipType
from ..models.parse import ParseResult, Symbol

logger = logging.getLogger(__name__)

IMPORT_WEIGHT = 1.0
REFERENCE_WEIGHT = 0.8
CONTAINS_WEIGHT = 1.0
INHERITANCE_WEIGHT = 1.0
TYPE_USAGE_WEIGHT = 0.7

WILDCARD_SPECIFIER = "*"

_OPENERS = "<[({"
_CLOSERS = ">])}"


@dataclass(frozen=True)
class TypeTable:
    """Per-language data driving type normalization and edge emission"""
    language: str

    # Names that never become uses_type targets
    primitives: FrozenSet[str] = frozenset()
    case_sensitive: bool = True

    # Generic wrappers whose first type argument is the informative symbol
    transparent_wrappers: FrozenSet[str] = frozenset()
    # Wrappers whose arguments are union members (Optional[X], Union[X, Y])
    union_wrappers: FrozenSet[str] = frozenset()
    null_types: FrozenSet[str] = frozenset()

    generic_open: str = "<"
    generic_close: str = ">"
    union_separators: Tuple[str, ...] = ("|",)
    intersection_separators: Tuple[str, ...] = ("&",)
    array_suffix: Optional[str] = "[]"
    optional_suffix: Optional[str] = "?"

    # Compare names on their last dotted segment (typing.List -> List)
    match_last_segment: bool = False
    # Quoted annotations are forward references rather than literal types
    strip_quotes: bool = False

    function_types: FrozenSet[str] = frozenset({"function", "method", "constructor"})
    import_target_type: str = "file"
    emit_type_usage: bool = True

    def key(self, name: str) -> str:
        """Lookup key for a type name under this table's comparison rules"""
        name = name.strip()
        if self.match_last_segment:
            name = name.rsplit(".", 1)[-1]
        return name if self.case_sensitive else name.lower()

    def _contains(self, names: FrozenSet[str], name: str) -> bool:
        target = self.key(name)
        if self.case_sensitive:
            return target in names
        return target in {n.lower() for n in names}

    def is_primitive(self, name: str) -> bool:
        return self._contains(self.primitives, name)

    def is_null(self, name: str) -> bool:
        return self._contains(self.null_types, name)

    def is_transparent(self, name: str) -> bool:
        return self._contains(self.transparent_wrappers, name)

    def is_union_wrapper(self, name: str) -> bool:
        return self._contains(self.union_wrappers, name)


def split_top_level(text: str, separators: Tuple[str, ...]) -> List[str]:
    """Split on separators that are not nested inside brackets"""
    parts: List[str] = []
    depth = 0
    start = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        elif depth == 0:
            matched = next((sep for sep in separators if text.startswith(sep, index)), None)
            if matched:
                parts.append(text[start:index])
                index += len(matched)
                start = index
                continue
        index += 1
    parts.append(text[start:])
    return [part.strip() for part in parts if part.strip()]


class StructuralExtractor:
    """
    Language-agnostic extractor driven by a TypeTable.

    extract() is pure and total: malformed input yields fewer relationships,
    never an exception.
    """

    def __init__(self, type_table: TypeTable):
        self.type_table = type_table

    @property
    def language(self) -> str:
        return self.type_table.language

    def extract(self, parse_result: Union[ParseResult, Any]) -> List[ExtractedRelationship]:
        """Extract structural relationships from one parsed file"""
        result = self._coerce(parse_result)
        if result is None or result.is_empty:
            return []

        relationships: List[ExtractedRelationship] = []
        relationships.extend(self._extract_imports(result))
        relationships.extend(self._extract_hierarchy(result))
        if self.type_table.emit_type_usage:
            relationships.extend(self._extract_type_usage(result))
        return relationships

    def _coerce(self, parse_result: Any) -> Optional[ParseResult]:
        if isinstance(parse_result, ParseResult):
            return parse_result
        if parse_result is None:
            return None
        try:
            return ParseResult.model_validate(parse_result)
        except (ValidationError, TypeError, ValueError) as e:
            logger.debug(f"Ignoring malformed parse result: {e}")
            return None

    def _extract_imports(self, result: ParseResult) -> Iterator[ExtractedRelationship]:
        """One imports edge per record, one references edge per named specifier"""
        if not result.file_path:
            return
        for record in result.imports:
            if not record.source:
                continue
            metadata = {"line": record.start_line}

            yield ExtractedRelationship(
                source=result.file_path,
                source_type="file",
                target=record.source,
                target_type=self.type_table.import_target_type,
                type=RelationshipType.IMPORTS,
                weight=IMPORT_WEIGHT,
                metadata=metadata
            )

            for specifier in record.specifiers:
                if not specifier.name or specifier.name == WILDCARD_SPECIFIER:
                    continue
                yield ExtractedRelationship(
                    source=result.file_path,
                    source_type="file",
                    target=specifier.name,
                    type=RelationshipType.REFERENCES,
                    weight=REFERENCE_WEIGHT,
                    metadata=dict(metadata)
                )

    def _extract_hierarchy(self, result: ParseResult) -> Iterator[ExtractedRelationship]:
        """Containment and inheritance, depth-first over the symbol tree"""
        for symbol in self._walk(result.symbols):
            parent = _symbol_name(symbol)
            if not parent:
                continue

            for child in symbol.children:
                child_name = _symbol_name(child)
                if not child_name:
                    continue
                yield ExtractedRelationship(
                    source=parent,
                    source_type=symbol.type or "unknown",
                    target=child_name,
                    target_type=child.type or None,
                    type=RelationshipType.CONTAINS,
                    weight=CONTAINS_WEIGHT
                )

            if symbol.extends:
                yield ExtractedRelationship(
                    source=parent,
                    source_type=symbol.type or "unknown",
                    target=symbol.extends,
                    target_type="interface" if symbol.type == "interface" else "class",
                    type=RelationshipType.EXTENDS,
                    weight=INHERITANCE_WEIGHT
                )

            for interface in symbol.implements:
                if not interface:
                    continue
                yield ExtractedRelationship(
                    source=parent,
                    source_type=symbol.type or "unknown",
                    target=interface,
                    target_type="interface",
                    type=RelationshipType.IMPLEMENTS,
                    weight=INHERITANCE_WEIGHT
                )

    def _extract_type_usage(self, result: ParseResult) -> Iterator[ExtractedRelationship]:
        """uses_type edges from function-like signatures"""
        for symbol in self._walk(result.symbols):
            if symbol.type not in self.type_table.function_types:
                continue
            source = _symbol_name(symbol)
            if not source:
                continue

            annotations = [param.type for param in symbol.parameters]
            annotations.append(symbol.return_type)

            for annotation in annotations:
                target = self.normalize_type(annotation)
                if target is None:
                    continue
                yield ExtractedRelationship(
                    source=source,
                    source_type=symbol.type,
                    target=target,
                    target_type="type",
                    type=RelationshipType.USES_TYPE,
                    weight=TYPE_USAGE_WEIGHT
                )

    def _walk(self, symbols: List[Symbol]) -> Iterator[Symbol]:
        for symbol in symbols:
            yield symbol
            yield from self._walk(symbol.children)

    def normalize_type(self, annotation: Optional[str]) -> Optional[str]:
        """
        Reduce a type annotation to the symbol it references.

        Returns None for primitives, null-only unions, and function or
        object literal types.
        """
        if not annotation or not isinstance(annotation, str):
            return None
        return self._normalize(annotation, depth=0)

    def _normalize(self, text: str, depth: int) -> Optional[str]:
        table = self.type_table
        if depth > 16:
            return None

        text = text.strip()
        if text[:1] in ("'", "\""):
            if not table.strip_quotes:
                return None
            text = text.strip("'\"").strip()
        if not text or "=>" in text or text[0] in "({":
            return None

        # Unions: first non-null member
        members = split_top_level(text, table.union_separators)
        if len(members) > 1:
            candidates = [m for m in members if not table.is_null(m)]
            if not candidates:
                return None
            return self._normalize(candidates[0], depth + 1)

        # Intersections: first member
        members = split_top_level(text, table.intersection_separators)
        if len(members) > 1:
            return self._normalize(members[0], depth + 1)

        # Trailing optional and array markers
        stripped = True
        while stripped:
            stripped = False
            if table.optional_suffix and text.endswith(table.optional_suffix):
                text = text[:-len(table.optional_suffix)].strip()
                stripped = True
            if table.array_suffix and text.endswith(table.array_suffix):
                text = text[:-len(table.array_suffix)].strip()
                stripped = True
        if not text:
            return None

        # Generics
        open_index = text.find(table.generic_open)
        if open_index > 0:
            outer = text[:open_index].strip()
            close_index = text.rfind(table.generic_close)
            if close_index <= open_index:
                close_index = len(text)
            arguments = split_top_level(text[open_index + 1:close_index], (",",))

            if table.is_union_wrapper(outer):
                candidates = [a for a in arguments if not table.is_null(a)]
                return self._normalize(candidates[0], depth + 1) if candidates else None
            if table.is_transparent(outer):
                return self._normalize(arguments[0], depth + 1) if arguments else None
            text = outer

        if table.is_null(text) or table.is_primitive(text):
            return None
        return text


def _symbol_name(symbol: Symbol) -> str:
    return symbol.qualified_name or symbol.name
