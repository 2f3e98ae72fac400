"""Forum license auto-publisher.

Runs a guided workflow whenever a user opens a forum thread:
- first-time users are walked through creating (or picking) a license
- returning users get their default license published, with or without a prompt
- backup-permission changes are announced to an external webhook
"""

__version__ = "0.1.0"

from license_autopublisher.config import AutoPublishSettings

__all__ = ["__version__", "AutoPublishSettings"]
