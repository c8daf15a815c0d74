"""Tests for EditSession and EditSessionManager."""

import pytest
from fakes import FakeGooglePlayClient

from aso_sync.errors import TransactionFailure, TransportError
from aso_sync.sync.models import SessionState
from aso_sync.sync.session import EditSession, EditSessionManager


@pytest.fixture
def client():
    return FakeGooglePlayClient(listings={"en-US": {"title": "Old"}})


class TestEditSession:
    def test_new_session_is_open(self):
        session = EditSession("edit-1", "com.example")
        assert session.is_open
        assert "edit-1" in repr(session)

    def test_terminal_states_reject_transitions(self):
        session = EditSession("edit-1", "com.example")
        session.mark_committed()

        with pytest.raises(AssertionError):
            session.mark_aborted()
        with pytest.raises(AssertionError):
            session.mark_committed()
        assert session.state is SessionState.COMMITTED


class TestWithSession:
    def test_commits_on_success(self, client):
        manager = EditSessionManager(client)
        seen = []

        result = manager.with_session("app", lambda s: seen.append(s) or "done")

        assert result == "done"
        assert seen[0].state is SessionState.COMMITTED
        assert [c[0] for c in client.calls] == ["begin", "commit"]

    def test_read_only_session_is_discarded(self, client):
        manager = EditSessionManager(client)
        seen = []

        manager.with_session("app", seen.append, commit=False)

        assert seen[0].state is SessionState.ABORTED
        assert [c[0] for c in client.calls] == ["begin", "abort"]

    def test_body_error_aborts_and_reraises(self, client):
        manager = EditSessionManager(client)
        seen = []

        def body(session):
            seen.append(session)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            manager.with_session("app", body)

        assert seen[0].state is SessionState.ABORTED
        assert "commit" not in [c[0] for c in client.calls]

    def test_keyboard_interrupt_still_aborts(self, client):
        manager = EditSessionManager(client)
        seen = []

        def body(session):
            seen.append(session)
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            manager.with_session("app", body)

        assert seen[0].state is SessionState.ABORTED

    def test_commit_failure_wraps_and_aborts(self, client):
        client.fail_commit = TransportError("nope", status=500)
        manager = EditSessionManager(client)
        seen = []

        with pytest.raises(TransactionFailure) as exc_info:
            manager.with_session("app", seen.append)

        assert exc_info.value.session_id == "edit-1"
        assert isinstance(exc_info.value.__cause__, TransportError)
        assert seen[0].state is SessionState.ABORTED
        assert client.committed["listings"] == {"en-US": {"title": "Old"}}

    def test_abort_failure_is_swallowed(self, client):
        client.fail_abort = TransportError("delete failed", status=500)
        manager = EditSessionManager(client)
        seen = []

        def body(session):
            seen.append(session)
            raise ValueError("original")

        with pytest.raises(ValueError, match="original"):
            manager.with_session("app", body)

        assert seen[0].state is SessionState.ABORTED


class TestSessionContextManager:
    def test_context_manager_commits(self, client):
        manager = EditSessionManager(client)

        with manager.session("app") as session:
            client.mutate_details(session, _Contact())

        assert session.state is SessionState.COMMITTED
        assert client.committed["details"]["contact_email"] == "a@example.com"

    def test_context_manager_aborts_on_error(self, client):
        manager = EditSessionManager(client)

        with pytest.raises(RuntimeError):
            with manager.session("app") as session:
                raise RuntimeError("fail")

        assert session.state is SessionState.ABORTED


class _Contact:
    contact_email = "a@example.com"
    contact_phone = None
    contact_website = None
