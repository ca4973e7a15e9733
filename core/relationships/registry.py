"""
Extractor registry for language and file-extension dispatch.

Maps case-insensitive language names, aliases and file extensions to
StructuralExtractor instances. Unknown keys resolve to None; callers decide
what to do with unsupported files.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .base import StructuralExtractor
from .languages import (
    create_javascript_extractor,
    create_python_extractor,
    create_typescript_extractor,
)

logger = logging.getLogger(__name__)


def _normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


class ExtractorRegistry:
    """
    Registry of structural extractors.

    Languages, aliases and extensions are stored lower-cased; lookups are
    case-insensitive.
    """

    def __init__(self, register_defaults: bool = True):
        self._extractors: Dict[str, StructuralExtractor] = {}
        self._aliases: Dict[str, str] = {}
        self._extension_map: Dict[str, str] = {}
        self._lock = threading.RLock()

        if register_defaults:
            self._register_default_extractors()

    def _register_default_extractors(self) -> None:
        """Register extractors for the built-in languages"""
        self.register(
            "typescript",
            create_typescript_extractor(),
            extensions=[".ts", ".tsx", ".mts", ".cts"],
            aliases=["tsx", "ts"]
        )
        self.register(
            "javascript",
            create_javascript_extractor(),
            extensions=[".js", ".jsx", ".mjs", ".cjs"],
            aliases=["jsx", "js"]
        )
        self.register(
            "python",
            create_python_extractor(),
            extensions=[".py", ".pyi"],
            aliases=["py"]
        )

    def register(
        self,
        language: str,
        extractor: StructuralExtractor,
        extensions: Iterable[str] = (),
        aliases: Iterable[str] = (),
        override: bool = False
    ) -> None:
        """
        Register an extractor for a language.

        Args:
            language: Language name (e.g., 'python', 'typescript')
            extractor: Extractor instance handling the language
            extensions: File extensions (e.g., ['.py', '.pyi'])
            aliases: Alternative language tags (e.g., ['tsx'])
            override: Whether to replace an existing registration
        """
        language = language.strip().lower()
        with self._lock:
            if language in self._extractors and not override:
                raise ValueError(f"Extractor for {language} already registered. Use override=True to replace.")

            self._extractors[language] = extractor

            for alias in aliases:
                self._aliases[alias.strip().lower()] = language

            for ext in extensions:
                ext_lower = _normalize_extension(ext)
                existing = self._extension_map.get(ext_lower)
                if existing and existing != language:
                    logger.warning(f"Extension {ext} already mapped to {existing}, overriding with {language}")
                self._extension_map[ext_lower] = language

            logger.debug(f"Registered {language} extractor with extensions: {list(extensions)}")

    def unregister(self, language: str) -> bool:
        """Remove a language with its aliases and extensions"""
        language = language.strip().lower()
        with self._lock:
            if language not in self._extractors:
                return False

            del self._extractors[language]
            self._aliases = {a: lang for a, lang in self._aliases.items() if lang != language}
            self._extension_map = {e: lang for e, lang in self._extension_map.items() if lang != language}

            logger.debug(f"Unregistered {language} extractor")
            return True

    def _resolve_language(self, key: str) -> Optional[str]:
        key = key.strip().lower()
        if not key:
            return None
        with self._lock:
            if key.startswith("."):
                return self._extension_map.get(key)
            if key in self._extractors:
                return key
            if key in self._aliases:
                return self._aliases[key]
            return self._extension_map.get(f".{key}")

    def get_extractor(self, language_or_extension: str) -> Optional[StructuralExtractor]:
        """
        Get the extractor for a language name, alias, or file extension.

        Returns None when nothing is registered for the key.
        """
        if not language_or_extension:
            return None
        language = self._resolve_language(language_or_extension)
        if language is None:
            return None
        with self._lock:
            return self._extractors.get(language)

    def get_extractor_for_file(self, file_path: Union[str, Path]) -> Optional[StructuralExtractor]:
        """Get the extractor for a file path using its final extension"""
        if not file_path:
            return None
        suffix = Path(file_path).suffix
        if not suffix:
            return None
        return self.get_extractor(suffix)

    def supports(self, language_or_extension: str) -> bool:
        return self.get_extractor(language_or_extension) is not None

    def supported_languages(self) -> List[str]:
        """Get list of registered languages"""
        with self._lock:
            return sorted(self._extractors.keys())

    def supported_extensions(self) -> List[str]:
        """Get all registered file extensions"""
        with self._lock:
            return sorted(self._extension_map.keys())

    def get_registry_stats(self) -> Dict[str, Any]:
        """Get registry statistics"""
        with self._lock:
            return {
                "total_extractors": len(self._extractors),
                "total_extensions": len(self._extension_map),
                "languages": sorted(self._extractors.keys()),
                "aliases": dict(self._aliases),
                "extensions": sorted(self._extension_map.keys())
            }


# Global registry instance
extractor_registry = ExtractorRegistry()


def get_extractor(language_or_extension: str) -> Optional[StructuralExtractor]:
    """Look up an extractor in the global registry"""
    return extractor_registry.get_extractor(language_or_extension)


def get_extractor_for_file(file_path: Union[str, Path]) -> Optional[StructuralExtractor]:
    """Look up the extractor for a file in the global registry"""
    return extractor_registry.get_extractor_for_file(file_path)
