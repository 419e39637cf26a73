from __future__ import annotations

import logging
from typing import Optional, Union

from ..core.enums import Action
from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Writes the audit trail.

    Audit writes are best effort: a failing insert is logged server side and
    never fails the request that triggered it. Free-text details only go to
    the application log at debug level, the table stores the action name.
    """

    def __init__(self, activity: ActivityRepository, *, debug: bool = False):
        self._activity = activity
        self._debug = debug

    def log(self, user_id: Optional[int], action: Union[Action, str], details: Optional[str] = None) -> None:
        if not user_id:
            return
        name = action.value if isinstance(action, Action) else str(action)
        try:
            self._activity.add(user_id=int(user_id), action=name)
        except Exception:
            logger.exception("Failed to log activity %s for user %s", name, user_id)
            return

        if details and self._debug:
            logger.debug("Activity: user %s - %s - %s", user_id, name, details)
