"""Edit-session transactions for stores that require them.

Google Play only persists listing changes made inside an *edit*: the
edit is inserted, mutated any number of times, then committed.  An edit
that is never committed silently discards every change.  Committing in
rapid succession races on the backend, so one push uses one edit and
commits it exactly once.

``EditSessionManager.with_session`` guarantees the handle never stays
``OPEN`` past the call that created it:

* body succeeds  -> commit (or discard, for read-only sessions)
* body fails     -> abort, re-raise the original error
* commit fails   -> abort, raise ``TransactionFailure`` chained to the cause

Abort is best-effort: a failing delete is logged, never raised, because
an uncommitted edit is discarded by the store anyway.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

from aso_sync.errors import TransactionFailure
from aso_sync.sync.models import SessionState

if TYPE_CHECKING:
    from aso_sync.core.base import StoreClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EditSession:
    """Handle for one open edit on the store.

    Args:
        session_id: Store-assigned edit id.
        app: App identity (package name) the edit belongs to.
    """

    def __init__(self, session_id: str, app: str) -> None:
        self.session_id = session_id
        self.app = app
        self.state = SessionState.OPEN

    def __repr__(self) -> str:
        return (
            f"EditSession(session_id={self.session_id!r}, "
            f"app={self.app!r}, state={self.state.value})"
        )

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    def _transition(self, target: SessionState) -> None:
        if self.state is not SessionState.OPEN:
            raise AssertionError(
                f"Edit session {self.session_id} is already "
                f"{self.state.value}; cannot move to {target.value}"
            )
        self.state = target

    def mark_committed(self) -> None:
        self._transition(SessionState.COMMITTED)

    def mark_aborted(self) -> None:
        self._transition(SessionState.ABORTED)


class EditSessionManager:
    """Open, commit and abort edit sessions through a store client.

    Args:
        client: Client exposing ``begin_session``, ``commit_session`` and
            ``abort_session``.
    """

    def __init__(self, client: StoreClient) -> None:
        self.client = client

    def open(self, app: str) -> EditSession:
        session_id = self.client.begin_session(app)
        logger.debug("Opened edit %s for %s", session_id, app)
        return EditSession(session_id, app)

    def with_session(
        self,
        app: str,
        body: Callable[[EditSession], T],
        *,
        commit: bool = True,
    ) -> T:
        """Run *body* inside a fresh edit session.

        Args:
            app: App identity to open the session for.
            body: Callable receiving the open session.  All mutations it
                issues share the session.
            commit: ``False`` for read-only work; the session is then
                discarded instead of committed.

        Returns:
            Whatever *body* returns.

        Raises:
            TransactionFailure: If the commit itself fails.
            Exception: Any error raised by *body*, after the abort.
        """
        session = self.open(app)
        try:
            result = body(session)
            if commit:
                self._commit(session)
            else:
                self.abort(session)
        except BaseException:
            if session.is_open:
                self.abort(session)
            raise
        return result

    @contextmanager
    def session(self, app: str, *, commit: bool = True) -> Iterator[EditSession]:
        """Context-manager form of ``with_session``."""
        session = self.open(app)
        try:
            yield session
            if commit:
                self._commit(session)
            else:
                self.abort(session)
        except BaseException:
            if session.is_open:
                self.abort(session)
            raise

    def _commit(self, session: EditSession) -> None:
        try:
            self.client.commit_session(session)
        except Exception as exc:
            logger.error(
                "Commit of edit %s for %s failed: %s",
                session.session_id,
                session.app,
                exc,
            )
            raise TransactionFailure(
                f"Commit of edit {session.session_id} failed: {exc}",
                session_id=session.session_id,
            ) from exc
        session.mark_committed()
        logger.info("Committed edit %s for %s", session.session_id, session.app)

    def abort(self, session: EditSession) -> None:
        """Delete the edit on the store and mark the handle aborted."""
        try:
            self.client.abort_session(session)
        except Exception as exc:
            logger.warning(
                "Could not delete edit %s for %s: %s",
                session.session_id,
                session.app,
                exc,
            )
        finally:
            session.mark_aborted()
        logger.debug("Aborted edit %s for %s", session.session_id, session.app)
