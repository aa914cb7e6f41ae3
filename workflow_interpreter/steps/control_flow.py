"""
Control Flow Steps

conditional and switch run a nested step sequence chosen at runtime. A nested
step that sets the run's result stops the sequence and the outer loop.

When a run is resumed inside one of their branches, the branch recorded at
the pause is re-entered at the step after the pausing one, without
re-evaluating the condition or switch value.
"""

from typing import Any, Dict

from ..context import ExecutionContext
from ..definition import CASE_BRANCH_PREFIX, DEFAULT_BRANCH, ELSE_BRANCH, THEN_BRANCH
from ..interpolation import evaluate_condition, format_value
from .base import BaseStep


class ConditionalStep(BaseStep):
    """
    Run the ``then`` or ``else`` branch depending on a condition.

    Example:
        - name: check_stage
          type: conditional
          condition: "{{task.stage}} != 'doing'"
          then:
            - name: log_move
              type: log
              message: "Moving task"
    """

    async def execute(self, context: ExecutionContext) -> Dict[str, Any]:
        condition = self.require(self.definition.condition, "condition")

        frame = context.pop_resume_frame()
        if frame is not None:
            branch, start_index = frame["branch"], frame["index"]
            outcome = branch == THEN_BRANCH
        else:
            outcome = evaluate_condition(condition, context)
            branch, start_index = (THEN_BRANCH if outcome else ELSE_BRANCH), 0

        steps = self.definition.branch_steps(branch)
        self.logger.debug(
            f"Conditional '{self.step_name}' evaluated to {outcome}, "
            f"running {len(steps) - start_index} {branch} step(s)"
        )
        await self.engine.execute_sequence(steps, context, branch, start_index)

        return {"condition": outcome, "branch": branch}


class SwitchStep(BaseStep):
    """Run the case matching an interpolated value, else the default case."""

    async def execute(self, context: ExecutionContext) -> Dict[str, Any]:
        switch_value = self.require(self.definition.switch_value, "switchValue")
        value = self.interpolate(switch_value, context)

        frame = context.pop_resume_frame()
        if frame is not None:
            branch, start_index = frame["branch"], frame["index"]
        else:
            branch, start_index = self._select_branch(value), 0

        if branch is None:
            self.logger.debug(f"Switch '{self.step_name}' matched no case for {value!r}")
            return {"value": value, "matched_case": None}

        await self.engine.execute_sequence(
            self.definition.branch_steps(branch), context, branch, start_index
        )

        matched = "default" if branch == DEFAULT_BRANCH else branch[len(CASE_BRANCH_PREFIX):]
        return {"value": value, "matched_case": matched}

    def _select_branch(self, value: Any):
        if value is not None and format_value(value) in self.definition.cases:
            return CASE_BRANCH_PREFIX + format_value(value)
        if self.definition.default_case is not None:
            return DEFAULT_BRANCH
        return None
