"""Error taxonomy for the auto-publish workflow.

Validation failures are the only errors a user is expected to read verbatim; every
other failure is logged in full and shown as a generic notice.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again later."


class AutoPublishError(Exception):
    """Base class for every error raised by this package."""


class ValidationFailed(AutoPublishError):
    """User input was rejected. The message is safe to show to the user."""


class LicenseLimitExceeded(ValidationFailed):
    def __init__(self, limit: int) -> None:
        super().__init__(
            f"You can own at most {limit} licenses. Delete one before creating another."
        )
        self.limit = limit


class DuplicateLicenseName(ValidationFailed):
    def __init__(self, name: str) -> None:
        super().__init__(f"You already have a license named {name!r}.")
        self.name = name


class TemplateNotFound(AutoPublishError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Template license not found: {name!r}")
        self.name = name


class MissingCorrelation(AutoPublishError):
    """The session lost the event or message it needed to continue."""


class NotificationError(AutoPublishError):
    """The outbound webhook could not be delivered."""


class IllegalTransitionError(AutoPublishError, ValueError):
    pass


def user_facing_message(exc: BaseException) -> str:
    """Map an exception to a short text suitable for the end user."""

    if isinstance(exc, ValidationFailed):
        return str(exc)
    logger.debug("Hiding internal error from user", extra={"error": repr(exc)})
    return GENERIC_FAILURE_MESSAGE
