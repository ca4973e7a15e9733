"""
Parse result models consumed by structural extraction.

These mirror the shape produced by the upstream parser. They are
deliberately lenient: missing or null fields fall back to empty values, and
a malformed nested item (a parameter, child symbol, import or specifier) is
dropped on its own so the rest of the file still yields relationships.
"""

import logging
from typing import Any, List, Optional, Type
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


def _valid_items(model: Type[BaseModel], items: Any) -> List[Any]:
    """Validate list items one by one, skipping those that do not fit"""
    if not isinstance(items, (list, tuple)):
        return []
    valid = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed {model.__name__}: {e.error_count()} error(s)")
    return valid


def _string_items(items: Any) -> List[str]:
    if not isinstance(items, (list, tuple)):
        return []
    return [item for item in items if isinstance(item, str)]


class _LenientModel(BaseModel):
    """Base for parser-facing models: camelCase or snake_case, nulls ignored"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True
    )

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Parameter(_LenientModel):
    """Function parameter with an optional annotated type"""
    name: str = ""
    type: Optional[str] = None


class Symbol(_LenientModel):
    """Parsed symbol, possibly containing nested symbols"""
    type: str = ""
    name: str = ""
    qualified_name: str = ""

    parameters: List[Parameter] = Field(default_factory=list)
    return_type: Optional[str] = None

    start_line: int = 0
    end_line: int = 0

    children: List["Symbol"] = Field(default_factory=list)
    extends: Optional[str] = None
    implements: List[str] = Field(default_factory=list)

    @field_validator('type', mode='before')
    @classmethod
    def validate_type(cls, v: Any) -> Any:
        """Accept enum members as symbol types"""
        return getattr(v, 'value', v)

    @field_validator('parameters', mode='before')
    @classmethod
    def validate_parameters(cls, v: Any) -> List[Any]:
        return _valid_items(Parameter, v)

    @field_validator('children', mode='before')
    @classmethod
    def validate_children(cls, v: Any) -> List[Any]:
        return _valid_items(Symbol, v)

    @field_validator('implements', mode='before')
    @classmethod
    def validate_implements(cls, v: Any) -> List[str]:
        return _string_items(v)


class ImportSpecifier(_LenientModel):
    """Named import, e.g. ``{ Foo as Bar }``"""
    name: str = ""
    alias: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def accept_bare_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        return data


class ImportRecord(_LenientModel):
    """Single import statement"""
    source: str = ""
    specifiers: List[ImportSpecifier] = Field(default_factory=list)
    start_line: int = 0

    @field_validator('specifiers', mode='before')
    @classmethod
    def validate_specifiers(cls, v: Any) -> List[Any]:
        return _valid_items(ImportSpecifier, v)


class ParseResult(_LenientModel):
    """Per-file symbol and import tree"""
    file_path: str = ""
    language: str = ""
    symbols: List[Symbol] = Field(default_factory=list)
    imports: List[ImportRecord] = Field(default_factory=list)
    exports: List[str] = Field(default_factory=list)

    @field_validator('symbols', mode='before')
    @classmethod
    def validate_symbols(cls, v: Any) -> List[Any]:
        return _valid_items(Symbol, v)

    @field_validator('imports', mode='before')
    @classmethod
    def validate_imports(cls, v: Any) -> List[Any]:
        return _valid_items(ImportRecord, v)

    @field_validator('exports', mode='before')
    @classmethod
    def validate_exports(cls, v: Any) -> List[str]:
        return _string_items(v)

    @property
    def is_empty(self) -> bool:
        """Check if nothing was parsed"""
        return not (self.symbols or self.imports or self.exports)
