import unittest

from pydantic import ValidationError

from config.types import InterpreterSettings


class TestInterpreterSettings(unittest.TestCase):
    """Test cases for the InterpreterSettings model."""

    def test_defaults(self):
        """Test that InterpreterSettings initializes with correct defaults."""
        settings = InterpreterSettings()
        self.assertTrue(settings.sampling_enabled)
        self.assertEqual(settings.sampling_max_tokens, 1000)
        self.assertIsNone(settings.sampling_system_prompt)
        self.assertIsNone(settings.sampling_model)
        self.assertIsNone(settings.state_ttl_seconds)
        self.assertEqual(settings.log_level, "INFO")

    def test_with_values(self):
        """Test initializing InterpreterSettings with values."""
        settings = InterpreterSettings(
            sampling_enabled=False,
            sampling_max_tokens=20,
            sampling_system_prompt="Be brief",
            state_ttl_seconds=300,
        )

        self.assertFalse(settings.sampling_enabled)
        self.assertEqual(settings.sampling_max_tokens, 20)
        self.assertEqual(settings.sampling_system_prompt, "Be brief")
        self.assertEqual(settings.state_ttl_seconds, 300)

    def test_model_validation(self):
        """Test that invalid values are rejected."""
        with self.assertRaises(ValidationError):
            InterpreterSettings(sampling_max_tokens=0)

        with self.assertRaises(ValidationError):
            InterpreterSettings(state_ttl_seconds=-1)

        with self.assertRaises(ValidationError):
            InterpreterSettings(sampling_max_tokens="not a number")


if __name__ == "__main__":
    unittest.main()
