# opd_core/client/session.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    token: str
    user_id: int
    username: str
    role: str | None


class SessionStore:
    """Where a session survives between runs. Subclasses persist a plain dict."""

    def load(self) -> dict | None:
        raise NotImplementedError

    def save(self, data: dict) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self, data: dict | None = None) -> None:
        self._data = dict(data) if data else None

    def load(self) -> dict | None:
        return dict(self._data) if self._data else None

    def save(self, data: dict) -> None:
        self._data = dict(data)

    def clear(self) -> None:
        self._data = None


class FileSessionStore(SessionStore):
    def __init__(self, path) -> None:
        self.path = Path(path)

    def load(self) -> dict | None:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return None

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


TeardownListener = Callable[[str], None]


class SessionContext:
    """
    The one place that knows who is signed in.

    Nothing else reads the store directly; a teardown (logout or any 401)
    clears the store and tells every listener so views can drop their data.
    """

    def __init__(self, store: SessionStore | None = None) -> None:
        self.store = store or MemorySessionStore()
        self._current: Optional[Session] = None
        self._listeners: List[TeardownListener] = []

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def token(self) -> str | None:
        return self._current.token if self._current else None

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    def hydrate(self) -> Optional[Session]:
        data = self.store.load()
        if not data:
            self._current = None
            return None
        try:
            self._current = Session(**data)
        except TypeError:
            logger.warning("Discarding malformed stored session")
            self.store.clear()
            self._current = None
        return self._current

    def login(self, *, token: str, user: dict) -> Session:
        session = Session(
            token=token,
            user_id=int(user["id"]),
            username=user["username"],
            role=user.get("role"),
        )
        self._current = session
        self.store.save(asdict(session))
        logger.info("Signed in as %s (%s)", session.username, session.role)
        return session

    def logout(self) -> None:
        self.teardown("logout")

    def teardown(self, reason: str) -> None:
        was = self._current
        self._current = None
        self.store.clear()
        if was is not None:
            logger.info("Session for %s ended: %s", was.username, reason)
        for listener in list(self._listeners):
            listener(reason)

    def on_teardown(self, listener: TeardownListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove
