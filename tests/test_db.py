"""Tests for session lifetime helpers"""
import pytest

from racekit import db


class _RecordingSession:
    closed = False

    def close(self):
        self.closed = True


@pytest.mark.unit
class TestSessionScope:

    def test_closes_on_exit(self, monkeypatch):
        created = []

        def _factory():
            created.append(_RecordingSession())
            return created[-1]

        monkeypatch.setattr(db, "_SessionLocal", _factory)
        with db.session_scope() as session:
            assert session is created[0]
            assert not session.closed
        assert session.closed

    def test_closes_when_the_body_raises(self, monkeypatch):
        session = _RecordingSession()
        monkeypatch.setattr(db, "_SessionLocal", lambda: session)
        with pytest.raises(RuntimeError):
            with db.session_scope():
                raise RuntimeError("boom")
        assert session.closed

    def test_get_session_closes_after_the_request(self, monkeypatch):
        session = _RecordingSession()
        monkeypatch.setattr(db, "_SessionLocal", lambda: session)
        gen = db.get_session()
        assert next(gen) is session
        with pytest.raises(StopIteration):
            next(gen)
        assert session.closed
