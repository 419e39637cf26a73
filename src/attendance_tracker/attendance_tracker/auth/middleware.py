from __future__ import annotations

from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from flask import request, session

from ..activity.service import ActivityLogger
from ..common.datetime_utils import now_local
from ..common.http import error, get_client_ip
from ..core.constants import RAPID_REQUEST_SECONDS
from ..core.enums import Action, Role
from ..core.exceptions import AuthenticationError
from ..users.repository import UserRepository
from .context import RequestContext
from .model import SessionRecord
from .permissions import require_role
from .session import SessionManager

SESSION_KEY = "session_id"


class AuthGuard:
    """Session authentication for views.

    The Flask session cookie only carries the server-side session identifier;
    everything else lives in the ``sessions`` table. The decorators resolve a
    :class:`RequestContext` and call the view as ``view(ctx, *args, **kwargs)``.
    A rotated identifier is written to ``flask.session`` before the view runs,
    so the new cookie goes out with every response, error responses included.
    """

    def __init__(
        self,
        sessions: SessionManager,
        users: UserRepository,
        activity: ActivityLogger,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._sessions = sessions
        self._users = users
        self._activity = activity
        self._clock = clock or now_local

    def session_id(self) -> Optional[str]:
        return session.get(SESSION_KEY) or None

    def bind(self, session_id: str) -> None:
        session.clear()
        session.permanent = True
        session[SESSION_KEY] = session_id

    def unbind(self) -> None:
        session.clear()

    def authenticate(
        self,
        *,
        missing_code: str = "AUTH_REQUIRED",
        missing_message: str = "Authentication required. Please login.",
    ) -> RequestContext:
        now = self._clock()
        ip = get_client_ip(request)
        incoming = self.session_id()
        record = self._sessions.resolve(
            incoming,
            now=now,
            missing_code=missing_code,
            missing_message=missing_message,
        )

        user = self._users.get_by_id(record.user_id)
        if user is None:
            self._sessions.destroy(record.session_id)
            raise AuthenticationError("User not found. Please login again.", "USER_NOT_FOUND")
        if user.email != record.email:
            self._sessions.destroy(record.session_id)
            raise AuthenticationError("Invalid session. Please login again.", "INVALID_SESSION")

        self._flag_suspicious(record, ip=ip, now=now)
        record = self._sessions.refresh(record, ip=ip, now=now)
        if record.session_id != incoming:
            self.bind(record.session_id)
        return RequestContext(user=user, session=record, client_ip=ip)

    def _flag_suspicious(self, record: SessionRecord, *, ip: str, now: datetime) -> None:
        # Logged only; neither check blocks the request.
        if record.last_ip and record.last_ip != ip:
            self._activity.log(record.user_id, Action.IP_CHANGE, f"Old: {record.last_ip}, New: {ip}")

        if record.last_request is not None:
            gap = (now - record.last_request).total_seconds()
            if 0 <= gap < RAPID_REQUEST_SECONDS:
                self._activity.log(record.user_id, Action.RAPID_REQUESTS, f"Time diff: {gap} seconds")

    def _dispatch(self, view, args, kwargs, *, role: Optional[Role], optional: bool, missing_code: str):
        ctx: Optional[RequestContext] = None
        try:
            ctx = self.authenticate(missing_code=missing_code, missing_message=_missing_message(missing_code))
        except AuthenticationError as e:
            if self.session_id():
                self.unbind()
            if not optional:
                return error(e.message, e.error_code, e.http_status)

        if ctx is not None and role is not None:
            require_role(ctx, role, self._activity)
        return view(ctx, *args, **kwargs)

    def login_required(self, view=None, *, missing_code: str = "AUTH_REQUIRED"):
        def decorator(fn):
            @wraps(fn)
            def wrapper(*args, **kwargs):
                return self._dispatch(fn, args, kwargs, role=None, optional=False, missing_code=missing_code)

            return wrapper

        return decorator(view) if view is not None else decorator

    def admin_required(self, view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            return self._dispatch(view, args, kwargs, role=Role.ADMIN, optional=False, missing_code="AUTH_REQUIRED")

        return wrapper

    def optional_login(self, view):
        """Like ``login_required`` but passes ``ctx=None`` for anonymous callers."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            return self._dispatch(view, args, kwargs, role=None, optional=True, missing_code="AUTH_REQUIRED")

        return wrapper


def _missing_message(code: str) -> str:
    if code == "NO_SESSION":
        return "No active session found."
    return "Authentication required. Please login."
