"""Workflow modules for the release stages."""

from autobump.workflows.action import (
    ActionInputError,
    ActionWorkflow,
    parse_action_inputs,
    write_action_outputs,
)
from autobump.workflows.bump import (
    BumpWorkflow,
    BumpWorkflowError,
    run_bump,
)

__all__ = [
    # CI action workflow
    "ActionWorkflow",
    "ActionInputError",
    "parse_action_inputs",
    "write_action_outputs",
    # Interactive bump workflow
    "BumpWorkflow",
    "BumpWorkflowError",
    "run_bump",
]
