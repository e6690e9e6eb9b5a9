import pytest

from dareroom.domain.sessions import ConnectionState, Session, SessionRegistry


def test_session_walks_the_lifecycle():
	session = Session(sid="sid-1")
	assert session.state is ConnectionState.CONNECTING

	session.authenticate("alice")
	assert session.state is ConnectionState.AUTHENTICATED
	assert session.profile_id == "alice"
	assert not session.is_active

	session.activate()
	assert session.is_active

	session.close()
	assert session.state is ConnectionState.CLOSED
	session.close()
	assert session.state is ConnectionState.CLOSED


def test_failed_handshake_goes_straight_to_closed():
	session = Session(sid="sid-1")
	session.close()
	with pytest.raises(RuntimeError):
		session.authenticate("alice")


def test_cannot_activate_before_authenticating():
	with pytest.raises(RuntimeError):
		Session(sid="sid-1").activate()


def test_registry_tracks_sessions_by_sid():
	registry = SessionRegistry()
	first, second, other = Session(sid="a"), Session(sid="b"), Session(sid="c")
	first.authenticate("alice")
	second.authenticate("alice")
	other.authenticate("bob")
	for session in (first, second, other):
		registry.add(session)

	assert registry.get("b") is second
	assert registry.pop("a") is first
	assert registry.pop("a") is None
	assert "a" not in registry
	assert len(registry) == 2
