"""
Unit tests for structural relationship extraction.

Tests import/reference edges, containment and inheritance, uses_type edges
and type normalization across the TypeScript, JavaScript and Python tables.
"""

import pytest

from core.models.entities import RelationshipType
from core.models.parse import ParseResult
from core.relationships.base import StructuralExtractor, split_top_level
from core.relationships.languages import (
    create_javascript_extractor,
    create_python_extractor,
    create_typescript_extractor,
)


def _of_type(relationships, rel_type):
    return [r for r in relationships if r.type == rel_type]


class TestImports:
    """Test imports and references edges"""

    def setup_method(self):
        self.extractor = create_typescript_extractor()

    def test_named_specifiers_produce_references(self):
        """Test one imports edge per record and one references edge per specifier"""
        result = {
            "filePath": "src/app.ts",
            "imports": [
                {"source": "./auth", "specifiers": [{"name": "login"}, {"name": "logout"}]},
            ],
        }

        relationships = self.extractor.extract(result)

        imports = _of_type(relationships, RelationshipType.IMPORTS)
        references = _of_type(relationships, RelationshipType.REFERENCES)
        assert len(imports) == 1
        assert imports[0].source == "src/app.ts"
        assert imports[0].target == "./auth"
        assert imports[0].weight == 1.0
        assert [r.target for r in references] == ["login", "logout"]
        assert all(r.weight == 0.8 for r in references)

    def test_wildcard_specifier_never_references(self):
        """Test wildcard imports produce only the imports edge"""
        result = {
            "filePath": "src/app.ts",
            "imports": [
                {"source": "./utils", "specifiers": ["*", {"name": "helper"}]},
            ],
        }

        relationships = self.extractor.extract(result)

        references = _of_type(relationships, RelationshipType.REFERENCES)
        assert [r.target for r in references] == ["helper"]
        assert len(_of_type(relationships, RelationshipType.IMPORTS)) == 1

    def test_python_import_target_is_module(self):
        """Test Python imports point at modules rather than files"""
        extractor = create_python_extractor()
        result = {"filePath": "app/main.py", "imports": [{"source": "app.models", "specifiers": []}]}

        relationships = extractor.extract(result)

        assert relationships[0].target_type == "module"

    def test_import_without_source_is_ignored(self):
        """Test malformed import records yield nothing"""
        result = {"filePath": "src/app.ts", "imports": [{"specifiers": [{"name": "x"}]}]}

        assert self.extractor.extract(result) == []


class TestHierarchy:
    """Test containment and inheritance edges"""

    def setup_method(self):
        self.extractor = create_typescript_extractor()

    def test_containment_is_recursive(self):
        """Test one contains edge per parent/child pair at every level"""
        result = {
            "filePath": "src/service.ts",
            "symbols": [{
                "type": "class",
                "name": "Service",
                "qualifiedName": "src/service.ts::Service",
                "children": [{
                    "type": "method",
                    "name": "run",
                    "qualifiedName": "src/service.ts::Service.run",
                    "children": [{
                        "type": "function",
                        "name": "inner",
                        "qualifiedName": "src/service.ts::Service.run.inner",
                    }],
                }, {
                    "type": "property",
                    "name": "name",
                    "qualifiedName": "src/service.ts::Service.name",
                }],
            }],
        }

        contains = _of_type(self.extractor.extract(result), RelationshipType.CONTAINS)

        pairs = [(r.source, r.target) for r in contains]
        assert pairs == [
            ("src/service.ts::Service", "src/service.ts::Service.run"),
            ("src/service.ts::Service", "src/service.ts::Service.name"),
            ("src/service.ts::Service.run", "src/service.ts::Service.run.inner"),
        ]

    def test_extends_and_implements(self):
        """Test inheritance edges for a class"""
        result = {
            "filePath": "src/admin.ts",
            "symbols": [{
                "type": "class",
                "name": "Admin",
                "qualifiedName": "Admin",
                "extends": "User",
                "implements": ["Auditable", "Serializable"],
            }],
        }

        relationships = self.extractor.extract(result)

        extends = _of_type(relationships, RelationshipType.EXTENDS)
        implements = _of_type(relationships, RelationshipType.IMPLEMENTS)
        assert [(r.source, r.target) for r in extends] == [("Admin", "User")]
        assert extends[0].target_type == "class"
        assert [r.target for r in implements] == ["Auditable", "Serializable"]
        assert all(r.target_type == "interface" for r in implements)

    def test_interface_extends_interface(self):
        """Test interface inheritance targets an interface"""
        result = {"symbols": [{"type": "interface", "name": "A", "extends": "B"}]}

        extends = _of_type(self.extractor.extract(result), RelationshipType.EXTENDS)

        assert extends[0].target_type == "interface"

    def test_name_used_when_qualified_name_missing(self):
        """Test symbol name is the fallback identifier"""
        result = {"symbols": [{"type": "class", "name": "Box", "children": [{"type": "method", "name": "open"}]}]}

        contains = _of_type(self.extractor.extract(result), RelationshipType.CONTAINS)

        assert (contains[0].source, contains[0].target) == ("Box", "open")


class TestTypeUsage:
    """Test uses_type edges from signatures"""

    def setup_method(self):
        self.extractor = create_typescript_extractor()

    def _function(self, parameters, return_type=None):
        return {
            "symbols": [{
                "type": "function",
                "name": "handle",
                "qualifiedName": "handle",
                "parameters": parameters,
                "returnType": return_type,
            }]
        }

    def test_n_parameters_plus_return(self):
        """Test N non-primitive parameters plus a non-primitive return give N+1 edges"""
        result = self._function(
            [{"name": "req", "type": "Request"}, {"name": "user", "type": "User"}],
            "Promise<Response>",
        )

        uses = _of_type(self.extractor.extract(result), RelationshipType.USES_TYPE)

        assert [r.target for r in uses] == ["Request", "User", "Response"]
        assert all(r.weight == 0.7 for r in uses)

    def test_primitive_return_adds_nothing(self):
        """Test primitive and missing types are skipped"""
        result = self._function(
            [{"name": "id", "type": "string"}, {"name": "user", "type": "User"}, {"name": "x"}],
            "void",
        )

        uses = _of_type(self.extractor.extract(result), RelationshipType.USES_TYPE)

        assert [r.target for r in uses] == ["User"]

    def test_method_inside_class(self):
        """Test nested methods are visited"""
        result = {"symbols": [{
            "type": "class",
            "name": "Repo",
            "children": [{
                "type": "method",
                "name": "save",
                "qualifiedName": "Repo.save",
                "parameters": [{"name": "e", "type": "Entity[]"}],
            }],
        }]}

        uses = _of_type(self.extractor.extract(result), RelationshipType.USES_TYPE)

        assert [(r.source, r.target) for r in uses] == [("Repo.save", "Entity")]

    def test_javascript_suppresses_type_usage(self):
        """Test the dynamic-language table never emits uses_type"""
        extractor = create_javascript_extractor()
        result = self._function([{"name": "user", "type": "User"}], "Response")

        assert _of_type(extractor.extract(result), RelationshipType.USES_TYPE) == []


class TestNormalizeType:
    """Test type annotation normalization"""

    @pytest.mark.parametrize("annotation,expected", [
        ("User", "User"),
        ("User[]", "User"),
        ("User | null", "User"),
        ("null | User", "User"),
        ("Promise<User>", "User"),
        ("Promise<Array<User>>", "User"),
        ("Map<string, User>", None),
        ("Record<string, User>", "Record"),
        ("A & B", "A"),
        ("User?", "User"),
        ("string", None),
        ("STRING", None),
        ("null | undefined", None),
        ("(a: string) => void", None),
        ("{ id: string }", None),
        ("'literal'", None),
        ("", None),
    ])
    def test_typescript(self, annotation, expected):
        assert create_typescript_extractor().normalize_type(annotation) == expected

    @pytest.mark.parametrize("annotation,expected", [
        ("User", "User"),
        ("Optional[User]", "User"),
        ("typing.Optional[User]", "User"),
        ("List[User]", "User"),
        ("Union[None, User]", "User"),
        ("User | None", "User"),
        ("Dict[str, User]", None),
        ("'User'", "User"),
        ("str", None),
        ("Optional[int]", None),
        ("List", None),
    ])
    def test_python(self, annotation, expected):
        assert create_python_extractor().normalize_type(annotation) == expected

    def test_non_string_annotation(self):
        assert create_typescript_extractor().normalize_type(42) is None


class TestExtractorTotality:
    """Test extract never raises and is deterministic"""

    def setup_method(self):
        self.extractor = create_typescript_extractor()

    @pytest.mark.parametrize("bad_input", [None, {}, [], "not a parse result", 7])
    def test_malformed_input_yields_empty(self, bad_input):
        assert self.extractor.extract(bad_input) == []

    def test_empty_parse_result(self):
        assert self.extractor.extract(ParseResult(file_path="a.ts")) == []

    def test_null_fields_are_ignored(self):
        """Test nulls are treated as missing"""
        result = {"filePath": "a.ts", "imports": None, "symbols": [{"type": "class", "name": "A", "children": None}]}

        assert self.extractor.extract(result) == []

    def test_malformed_nested_item_is_skipped(self):
        """Test one bad parameter does not discard the rest of the file"""
        result = {
            "filePath": "src/x.ts",
            "imports": [{"source": "./y", "specifiers": [{"name": "Y"}, {"name": ["bad"]}]}, {"source": 5}],
            "symbols": [{
                "type": "class", "name": "X",
                "children": [
                    {"type": "method", "name": "run", "parameters": [{"type": 5}, {"name": "u", "type": "User"}]},
                    {"type": "method", "name": {"bad": True}},
                ],
            }],
        }

        relationships = self.extractor.extract(result)

        summary = [(r.type.value, r.source, r.target) for r in relationships]
        assert summary == [
            ("imports", "src/x.ts", "./y"),
            ("references", "src/x.ts", "Y"),
            ("contains", "X", "run"),
            ("uses_type", "run", "User"),
        ]

    def test_deterministic(self):
        result = {
            "filePath": "src/x.ts",
            "imports": [{"source": "./y", "specifiers": [{"name": "Y"}]}],
            "symbols": [{"type": "function", "name": "f", "parameters": [{"name": "y", "type": "Y"}]}],
        }

        first = self.extractor.extract(result)
        second = self.extractor.extract(result)

        assert [r.model_dump() for r in first] == [r.model_dump() for r in second]

    def test_emission_order(self):
        """Test imports come first, then hierarchy, then type usage"""
        result = {
            "filePath": "src/x.ts",
            "imports": [{"source": "./y"}],
            "symbols": [{
                "type": "class", "name": "X", "extends": "Y",
                "children": [{"type": "method", "name": "m", "returnType": "Y"}],
            }],
        }

        types = [r.type for r in self.extractor.extract(result)]

        assert types == [
            RelationshipType.IMPORTS,
            RelationshipType.CONTAINS,
            RelationshipType.EXTENDS,
            RelationshipType.USES_TYPE,
        ]

    def test_language_property(self):
        assert isinstance(self.extractor, StructuralExtractor)
        assert self.extractor.language == "typescript"


class TestSplitTopLevel:
    """Test bracket-aware splitting"""

    def test_nested_separators_are_kept(self):
        assert split_top_level("Map<A, B> | C", ("|",)) == ["Map<A, B>", "C"]
        assert split_top_level("Map<A | B, C>", ("|",)) == ["Map<A | B, C>"]

    def test_comma_split(self):
        assert split_top_level("str, Dict[str, int]", (",",)) == ["str", "Dict[str, int]"]
