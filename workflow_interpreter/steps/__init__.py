"""
Workflow Steps

Step executor implementations, one per step kind.
"""

from .base import BaseStep
from .basic import LogStep, SetVariableStep, ReturnStep
from .call_step import CallToolStep, CallFunctionStep
from .control_flow import ConditionalStep, SwitchStep
from .agent_step import AgentStep, LoadObjectStep
from .object_step import CreateObjectStep
from .state_steps import LoadStateStep, SaveStateStep

__all__ = [
    "BaseStep",
    "LogStep",
    "SetVariableStep",
    "ReturnStep",
    "CallToolStep",
    "CallFunctionStep",
    "ConditionalStep",
    "SwitchStep",
    "AgentStep",
    "LoadObjectStep",
    "CreateObjectStep",
    "LoadStateStep",
    "SaveStateStep",
]
