"""Messaging-surface interface, correlated waits and views."""

from license_autopublisher.messaging.collector import InteractionCollector
from license_autopublisher.messaging.surface import (
    Actor,
    ComponentEvent,
    FormSubmission,
    MessageRef,
    MessagingSurface,
    Thread,
)
from license_autopublisher.messaging.views import FormView, MessageView

__all__ = [
    "Actor",
    "ComponentEvent",
    "FormSubmission",
    "FormView",
    "InteractionCollector",
    "MessageRef",
    "MessageView",
    "MessagingSurface",
    "Thread",
]
