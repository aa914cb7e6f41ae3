import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from config.manager import EnvironmentManager
from config.types import InterpreterSettings


class TestEnvironmentManager(unittest.TestCase):
    """Test cases for the EnvironmentManager class."""

    def setUp(self):
        """Set up test fixtures."""
        # Create a new instance for each test to avoid singleton issues
        EnvironmentManager._instance = None
        self.env_manager = EnvironmentManager()

        self.temp_dir = tempfile.mkdtemp()
        self.env_file = Path(self.temp_dir) / ".env"

        # Only look for .env files inside the temporary directory
        patcher = mock.patch.object(
            EnvironmentManager, "_env_file_paths", return_value=[self.env_file]
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        """Clean up after tests."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        EnvironmentManager._instance = None

    def test_singleton(self):
        """Test that EnvironmentManager is a singleton."""
        self.assertIs(EnvironmentManager(), self.env_manager)

    def test_defaults(self):
        """Test that settings start from their defaults."""
        self.assertTrue(self.env_manager.get_setting("sampling_enabled"))
        self.assertEqual(self.env_manager.get_setting("sampling_max_tokens"), 1000)
        self.assertIsNone(self.env_manager.get_setting("sampling_model"))
        self.assertEqual(self.env_manager.get_setting("log_level"), "INFO")
        self.assertEqual(self.env_manager.get_setting("unknown", "fallback"), "fallback")

    def test_load_from_env_file(self):
        """Test loading settings from a .env file."""
        self.env_file.write_text(
            "# interpreter settings\n"
            "WORKFLOW_SAMPLING_ENABLED=false\n"
            'WORKFLOW_SAMPLING_MODEL="gpt-test"\n'
            "WORKFLOW_SAMPLING_MAX_TOKENS=200\n"
            "UNRELATED=value\n"
        )

        with mock.patch.dict(os.environ, {}, clear=True):
            self.env_manager.load()

        self.assertFalse(self.env_manager.get_setting("sampling_enabled"))
        self.assertEqual(self.env_manager.get_setting("sampling_model"), "gpt-test")
        self.assertEqual(self.env_manager.get_setting("sampling_max_tokens"), 200)
        self.assertEqual(self.env_manager.env_variables["UNRELATED"], "value")

    def test_os_environment_overrides_env_file(self):
        """Test that process environment variables win over the .env file."""
        self.env_file.write_text("WORKFLOW_LOG_LEVEL=DEBUG\n")

        with mock.patch.dict(os.environ, {"WORKFLOW_LOG_LEVEL": "WARNING"}, clear=True):
            self.env_manager.load()

        self.assertEqual(self.env_manager.get_setting("log_level"), "WARNING")

    def test_invalid_value_ignored(self):
        """Test that an unconvertible value keeps the previous setting."""
        with mock.patch.dict(os.environ, {"WORKFLOW_SAMPLING_MAX_TOKENS": "lots"}, clear=True):
            self.env_manager.load()

        self.assertEqual(self.env_manager.get_setting("sampling_max_tokens"), 1000)

    def test_register_provider(self):
        """Test that provider settings are applied after the environment."""
        self.env_manager.register_provider(lambda: {"state_ttl_seconds": 60})

        with mock.patch.dict(os.environ, {}, clear=True):
            self.env_manager.load()

        self.assertEqual(self.env_manager.get_setting("state_ttl_seconds"), 60)

    def test_failing_provider_does_not_break_load(self):
        """Test that a provider raising an exception is skipped."""

        def broken_provider():
            raise RuntimeError("provider failed")

        self.env_manager.register_provider(broken_provider)

        with mock.patch.dict(os.environ, {}, clear=True):
            self.env_manager.load()

        self.assertTrue(self.env_manager.get_setting("sampling_enabled"))

    def test_get_interpreter_settings(self):
        """Test building validated interpreter settings."""
        self.env_manager.update_configuration(
            {"sampling_model": "gpt-test", "sampling_max_tokens": "50"}
        )

        settings = self.env_manager.get_interpreter_settings()

        self.assertIsInstance(settings, InterpreterSettings)
        self.assertEqual(settings.sampling_model, "gpt-test")
        self.assertEqual(settings.sampling_max_tokens, 50)
        self.assertIsNone(settings.state_ttl_seconds)

    def test_update_configuration(self):
        """Test updating settings with known, unknown and invalid names."""
        result = self.env_manager.update_configuration(
            {
                "sampling_enabled": "false",
                "not_a_setting": 1,
                "sampling_max_tokens": "many",
            }
        )

        self.assertFalse(result["success"])
        self.assertEqual(result["updated"], ["sampling_enabled"])
        self.assertEqual(len(result["errors"]), 2)
        self.assertFalse(self.env_manager.get_setting("sampling_enabled"))

    def test_reset_setting(self):
        """Test resetting a setting to its default."""
        self.env_manager.update_configuration({"log_level": "DEBUG"})

        self.assertEqual(
            self.env_manager.reset_setting("log_level"), {"success": True, "value": "INFO"}
        )
        self.assertFalse(self.env_manager.reset_setting("nope")["success"])

    def test_get_all_configuration(self):
        """Test the configuration listing."""
        config = self.env_manager.get_all_configuration()

        self.assertEqual(config["sampling_max_tokens"]["env_var"], "WORKFLOW_SAMPLING_MAX_TOKENS")
        self.assertEqual(config["sampling_max_tokens"]["type"], "int")
        self.assertEqual(config["sampling_max_tokens"]["default"], 1000)


if __name__ == "__main__":
    unittest.main()
