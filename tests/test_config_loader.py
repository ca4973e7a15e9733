"""
Unit tests for configuration loader functionality.

Tests configuration loading, template substitution, environment overrides and project setup.
"""

import json
import os
import pytest
import tempfile
from pathlib import Path
from unittest.mock import patch

from config.loader import ConfigurationLoader
from core.models.config import GlobalSettings, ProjectConfig, Verbosity
from config.defaults import DEFAULT_SETTINGS, ENV_VAR_MAPPING, get_default_project_config


class TestConfigurationLoader:
    """Test ConfigurationLoader functionality"""

    def setup_method(self):
        """Setup test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.loader = ConfigurationLoader(GlobalSettings(global_config_dir=self.temp_path / "global"))

    def teardown_method(self):
        """Cleanup test environment"""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, project_path: Path, data: dict) -> Path:
        config_dir = project_path / ".repo-graph"
        config_dir.mkdir(exist_ok=True)
        config_file = config_dir / "config.json"
        with open(config_file, 'w') as f:
            json.dump(data, f)
        return config_file

    def test_load_project_config_new_project(self):
        """Test loading configuration for new project"""
        project_path = self.temp_path / "test_project"
        project_path.mkdir()

        config = self.loader.load_project_config(project_path, "test-project")

        assert isinstance(config, ProjectConfig)
        assert config.name == "test-project"
        assert config.path == project_path.resolve()
        assert config.hooks.project_id == "test-project"
        assert config.qdrant.collection_name == "test-project-entities"
        assert config.get_database_path() == project_path.resolve() / ".repo-graph" / "graph.db"
        assert not config.is_initialized

    def test_load_project_config_existing(self):
        """Test loading existing configuration"""
        project_path = self.temp_path / "existing_project"
        project_path.mkdir()
        self._write_config(project_path, {
            "name": "existing-project",
            "path": str(project_path),
            "hooks": {**DEFAULT_SETTINGS["hooks"], "validate_on_push": True, "verbosity": "silent"},
            "linking": {"min_similarity": 0.8},
            "version": "1.0.0"
        })

        config = self.loader.load_project_config(project_path)

        assert config.name == "existing-project"
        assert config.hooks.validate_on_push is True
        assert config.hooks.verbosity == Verbosity.SILENT
        assert config.hooks.project_id == "existing-project"
        assert config.linking.min_similarity == 0.8
        assert config.linking.max_links_per_entity == 5

    def test_load_project_config_caching(self):
        """Test configuration caching"""
        project_path = self.temp_path / "cached_project"
        project_path.mkdir()

        config1 = self.loader.load_project_config(project_path, "cached")
        config2 = self.loader.load_project_config(project_path, "cached")

        assert config1 is config2
        assert len(self.loader.config_cache) == 1

        self.loader.clear_cache()
        assert len(self.loader.config_cache) == 0

    def test_load_existing_config_invalid_json(self):
        """Test loading config with invalid JSON falls back to defaults"""
        project_path = self.temp_path / "invalid_project"
        project_path.mkdir()
        config_file = self._write_config(project_path, {})
        config_file.write_text("{ invalid json content")

        config = self.loader.load_project_config(project_path)

        assert isinstance(config, ProjectConfig)
        assert config.name == "invalid-project"

    def test_load_existing_config_invalid_values(self):
        """Test out-of-range values fall back to defaults"""
        project_path = self.temp_path / "bad_values"
        project_path.mkdir()
        self._write_config(project_path, {
            "name": "bad-values",
            "path": str(project_path),
            "hooks": {"max_files_to_index": 0}
        })

        config = self.loader.load_project_config(project_path, "bad-values")

        assert config.hooks.max_files_to_index == 100

    def test_create_project_config_name_sanitization(self):
        """Test project name sanitization"""
        project_path = self.temp_path / "Test Project_Name"
        project_path.mkdir()

        config = self.loader._create_project_config(project_path, "Test Project_Name")

        assert config.name == "test-project-name"
        assert config.qdrant.collection_name == "test-project-name-entities"

    def test_global_settings_seed_new_projects(self):
        project_path = self.temp_path / "seeded"
        project_path.mkdir()
        loader = ConfigurationLoader(GlobalSettings(
            default_server_url="http://tools:8080",
            default_qdrant_url="http://qdrant:6333",
            global_config_dir=self.temp_path / "global"
        ))

        config = loader.load_project_config(project_path)

        assert config.hooks.server_url == "http://tools:8080"
        assert config.qdrant.url == "http://qdrant:6333"

    def test_substitute_template_vars_nested(self):
        """Test template variable substitution in dictionaries and lists"""
        data = {
            "name": "${project_name}",
            "nested": {"value": "${project_name}-suffix"},
            "items": ["${project_path}", "static-value", 3]
        }
        substitutions = {"project_name": "test-project", "project_path": "/path/to/project"}

        result = self.loader._substitute_template_vars(data, substitutions)

        assert result["name"] == "test-project"
        assert result["nested"]["value"] == "test-project-suffix"
        assert result["items"] == ["/path/to/project", "static-value", 3]

    def test_substitute_template_vars_unknown_variable(self):
        """Test unknown variables are left untouched"""
        result = self.loader._substitute_template_vars({"invalid": "${invalid_var}"}, {"project_name": "test"})

        assert result["invalid"] == "${invalid_var}"

    def test_apply_env_overrides(self):
        """Test environment variable overrides"""
        config_data = get_default_project_config()

        with patch.dict(os.environ, {
            "REPO_GRAPH_QDRANT_URL": "http://custom:6333",
            "REPO_GRAPH_MAX_FILES_TO_INDEX": "25",
            "REPO_GRAPH_MIN_SIMILARITY": "0.9",
            "REPO_GRAPH_VERBOSITY": "verbose"
        }):
            result = self.loader._apply_env_overrides(config_data)

        assert result["qdrant"]["url"] == "http://custom:6333"
        assert result["hooks"]["max_files_to_index"] == 25
        assert result["linking"]["min_similarity"] == 0.9
        assert result["hooks"]["verbosity"] == "verbose"

    def test_env_override_applies_when_loading(self):
        project_path = self.temp_path / "env_project"
        project_path.mkdir()

        with patch.dict(os.environ, {"REPO_GRAPH_SERVER_URL": "https://tools.internal"}):
            config = self.loader.load_project_config(project_path)

        assert config.hooks.server_url == "https://tools.internal"

    def test_set_nested_value_creates_levels(self):
        data = {"level1": {}}

        self.loader._set_nested_value(data, "level1.level2.key", "true")

        assert data == {"level1": {"level2": {"key": True}}}

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("off", False),
        ("42", 42),
        ("0.5", 0.5),
        ("cuda", "cuda"),
    ])
    def test_convert_env_value(self, raw, expected):
        assert self.loader._convert_env_value(raw) == expected

    def test_env_mapping_targets_exist(self):
        """Test every mapped path points at a known configuration key"""
        defaults = get_default_project_config()
        for path in ENV_VAR_MAPPING.values():
            section, _, key = path.rpartition('.')
            target = defaults[section] if section else defaults
            assert key in target, path


class TestProjectSetup:
    """Test writing the initial configuration"""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.loader = ConfigurationLoader(GlobalSettings(global_config_dir=self.temp_path / "global"))

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_setup_project_writes_config(self):
        project_path = self.temp_path / "new_project"
        project_path.mkdir()

        config = self.loader.setup_project(project_path, "new-project")

        config_file = project_path / ".repo-graph" / "config.json"
        assert config_file.exists()
        assert config.is_initialized

        saved = json.loads(config_file.read_text())
        assert saved["name"] == "new-project"
        assert saved["hooks"]["enable_pre_commit"] is True

    def test_saved_config_round_trips(self):
        project_path = self.temp_path / "round_trip"
        project_path.mkdir()
        config = self.loader.setup_project(project_path, "round-trip")

        fresh = ConfigurationLoader(self.loader.global_settings).load_project_config(project_path)

        assert fresh.model_dump() == config.model_dump()

    def test_setup_project_keeps_existing(self):
        project_path = self.temp_path / "kept"
        project_path.mkdir()
        config = self.loader.setup_project(project_path, "kept")
        config.hooks.validate_on_push = True
        self.loader.save_project_config(config)
        self.loader.clear_cache()

        again = self.loader.setup_project(project_path, "kept")

        assert again.hooks.validate_on_push is True

    def test_setup_project_overwrite(self):
        project_path = self.temp_path / "overwritten"
        project_path.mkdir()
        config = self.loader.setup_project(project_path, "overwritten")
        config.hooks.validate_on_push = True
        self.loader.save_project_config(config)

        again = self.loader.setup_project(project_path, "overwritten", overwrite=True)

        assert again.is_initialized

    def test_setup_missing_path(self):
        with pytest.raises(ValueError, match="does not exist"):
            self.loader.setup_project(self.temp_path / "missing")

    def test_save_failure_returns_false(self):
        project_path = self.temp_path / "unsaved"
        project_path.mkdir()
        config = self.loader.load_project_config(project_path)

        with patch("builtins.open", side_effect=PermissionError("read-only")):
            assert self.loader.save_project_config(config) is False
