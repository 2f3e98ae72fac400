"""Trigger dedup, draft editor and the auto-publish state machine."""

from license_autopublisher.workflow.dedup import TriggerDeduplicator
from license_autopublisher.workflow.editor import EditorOutcome, EditorResult, LicenseDraftEditor
from license_autopublisher.workflow.state_machine import (
    ALLOWED_TRANSITIONS,
    AutoPublishFlow,
    Done,
    FlowDependencies,
    FlowState,
)
from license_autopublisher.workflow.trigger import handle_thread_created

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AutoPublishFlow",
    "Done",
    "EditorOutcome",
    "EditorResult",
    "FlowDependencies",
    "FlowState",
    "LicenseDraftEditor",
    "TriggerDeduplicator",
    "handle_thread_created",
]
