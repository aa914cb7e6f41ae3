"""
Workflow Interpreter Configuration Package.

This package contains the environment-driven settings of the interpreter.
"""

from config.manager import EnvironmentManager, env_manager
from config.types import InterpreterSettings

# Re-export the singleton instance for easy access
env = env_manager

__all__ = [
    "EnvironmentManager",
    "env_manager",
    "env",
    "InterpreterSettings",
]
