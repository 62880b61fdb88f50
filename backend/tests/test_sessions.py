from __future__ import annotations

from types import SimpleNamespace

from govbid.sessions import BrowsingSession, SessionRegistry


def _fake_view():
    v = SimpleNamespace(mounted=True)

    def unmount():
        v.mounted = False

    v.unmount = unmount
    return v


def test_registry_reuses_sessions_by_id():
    reg = SessionRegistry(ttl_seconds=60, max_entries=10)

    a = reg.get_or_create("sess-1")
    b = reg.get_or_create("sess-1")
    c = reg.get_or_create(None)

    assert a is b
    assert c is not a
    assert c.session_id.startswith("sess_")
    assert len(reg) == 2


def test_registry_is_bounded():
    reg = SessionRegistry(ttl_seconds=60, max_entries=2)
    for i in range(5):
        reg.get_or_create(f"s{i}")
    assert len(reg) == 2
    assert reg.get("s0") is None
    assert reg.get("s4") is not None


def test_session_views_are_reused_until_closed():
    session = BrowsingSession(session_id="s")
    built = []

    def factory():
        v = _fake_view()
        built.append(v)
        return v

    first = session.view("abc", factory)
    assert session.view("abc", factory) is first

    assert session.close_view("abc") is True
    assert first.mounted is False
    assert session.close_view("abc") is False

    second = session.view("abc", factory)
    assert second is not first
    assert len(built) == 2
