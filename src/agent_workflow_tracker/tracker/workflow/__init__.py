"""Workflow domain: step catalog, runtime state, artifacts, throttle and engine.

The engine is the only component that mutates workflow state. Everything
else in this package is a plain data type or a pure function it relies on.
"""

from .catalog import StepCatalog, StepDefinition, load_step_catalog
from .engine import WorkflowEngine
from .errors import WorkflowError
from .state_machine import TERMINAL_STEP, StepStatus, WorkflowState
from .store import PersistencePolicy, WorkflowStateStore

__all__ = [
    "TERMINAL_STEP",
    "PersistencePolicy",
    "StepCatalog",
    "StepDefinition",
    "StepStatus",
    "WorkflowEngine",
    "WorkflowError",
    "WorkflowState",
    "WorkflowStateStore",
    "load_step_catalog",
]
