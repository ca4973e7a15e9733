"""
Unit tests for logging configuration.
"""

import logging
import pytest

from core.models.config import GlobalSettings, Verbosity
from repo_graph.logging_setup import configure_logging, resolve_level


class TestLoggingSetup:
    """Test root logger configuration"""

    def teardown_method(self):
        logging.basicConfig(level=logging.WARNING, force=True)

    @pytest.mark.parametrize("verbosity,level", [
        (Verbosity.SILENT, logging.WARNING),
        (Verbosity.NORMAL, logging.INFO),
        (Verbosity.VERBOSE, logging.DEBUG),
    ])
    def test_verbosity_wins(self, verbosity, level, tmp_path):
        settings = GlobalSettings(log_level="ERROR", global_config_dir=tmp_path)

        assert resolve_level(settings, verbosity) == level

    def test_global_level_default(self, tmp_path):
        settings = GlobalSettings(log_level="ERROR", global_config_dir=tmp_path)

        assert resolve_level(settings) == logging.ERROR

    def test_configure_root_logger(self, tmp_path):
        settings = GlobalSettings(global_config_dir=tmp_path)

        level = configure_logging(settings, Verbosity.VERBOSE)

        assert level == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG
        assert len(logging.getLogger().handlers) == 1

    def test_log_file_handler(self, tmp_path):
        settings = GlobalSettings(global_config_dir=tmp_path, log_to_file=True)

        configure_logging(settings)
        logging.getLogger("repo_graph.test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_file = tmp_path / "logs" / "repo-graph.log"
        assert "written to file" in log_file.read_text()
