from dataclasses import replace

import pytest

from conftest import FakeDaemon, UnknownMethodDaemon, client_for, make_torrent
from transmission_dash.dialects import Dialect, Operation
from transmission_dash.errors import CommandError, DecodeError, DialectError
from transmission_dash.models.preferences import EncryptionMode
from transmission_dash.models.torrent import Status
from transmission_dash.transport import RawResponse


def _modern_calls(daemon: FakeDaemon) -> list[str]:
    return [m for m in daemon.methods if "_" in m]


def test_modern_daemon_stays_modern(sample_torrents):
    daemon = FakeDaemon(Dialect.MODERN, sample_torrents)
    client = client_for(daemon)

    snapshot = client.fetch_snapshot()

    assert client.dialect is Dialect.MODERN
    assert client.confirmed
    assert [t.id for t in snapshot.torrents] == [1, 2, 3, 7]
    assert snapshot.session.version == "4.0.6"
    assert snapshot.session.rpc_version == 17
    assert daemon.methods == ["session_get", "torrent_get"]


def test_legacy_fallback_happens_exactly_once(sample_torrents):
    daemon = FakeDaemon(Dialect.LEGACY, sample_torrents)
    client = client_for(daemon)

    first = client.fetch_snapshot()
    second = client.fetch_snapshot()

    assert client.dialect is Dialect.LEGACY
    assert first == second
    assert _modern_calls(daemon) == ["session_get"]
    assert daemon.methods[1:] == ["session-get", "torrent-get", "session-get", "torrent-get"]


def test_dialects_yield_identical_snapshots(sample_torrents):
    modern = client_for(FakeDaemon(Dialect.MODERN, sample_torrents)).fetch_snapshot()
    legacy = client_for(FakeDaemon(Dialect.LEGACY, sample_torrents)).fetch_snapshot()
    assert modern == legacy


def test_neither_dialect_raises_dialect_error():
    daemon = UnknownMethodDaemon(Dialect.MODERN)
    client = client_for(daemon)

    with pytest.raises(DialectError):
        client.call(Operation.SESSION_GET)
    assert daemon.methods == ["session_get", "session-get"]


def test_garbage_after_confirmation_is_decode_error(sample_torrents):
    daemon = FakeDaemon(Dialect.MODERN, sample_torrents)
    client = client_for(daemon)
    client.fetch_snapshot()

    daemon.scripted.append(RawResponse(200, {}, b"<html>proxy error</html>"))
    with pytest.raises(DecodeError):
        client.fetch_snapshot()
    assert client.dialect is Dialect.MODERN


def test_failed_result_raises_command_error():
    client = client_for(FakeDaemon(Dialect.MODERN))
    with pytest.raises(CommandError) as excinfo:
        client.add_magnet("not-a-magnet")
    assert excinfo.value.result == "invalid or corrupt torrent file"
    assert excinfo.value.operation == "torrent-add"


def test_remove_sends_delete_flag_in_legacy_spelling(sample_torrents):
    daemon = FakeDaemon(Dialect.LEGACY, sample_torrents)
    client = client_for(daemon)

    client.remove_torrents([7], delete_local_data=True)

    assert daemon.removed == [([7], True)]
    assert daemon.requests[-1]["arguments"] == {"ids": [7], "delete-local-data": True}


def test_empty_id_lists_send_nothing():
    daemon = FakeDaemon(Dialect.MODERN)
    client = client_for(daemon)
    client.start_torrents([])
    client.stop_torrents([])
    client.remove_torrents([], delete_local_data=True)
    assert daemon.methods == []


def test_start_and_stop(sample_torrents):
    daemon = FakeDaemon(Dialect.MODERN, sample_torrents)
    client = client_for(daemon)
    client.start_torrents([3])
    client.stop_torrents([1, 2])
    assert daemon.started == [3]
    assert daemon.stopped == [1, 2]


def test_add_magnet_added_then_duplicate():
    daemon = FakeDaemon(Dialect.LEGACY)
    client = client_for(daemon)
    magnet = "magnet:?xt=urn:btih:abc&dn=new.iso"

    first = client.add_magnet(magnet)
    second = client.add_magnet(magnet)

    assert first.added and not first.duplicate
    assert first.name == "new.iso"
    assert second.duplicate and second.torrent_id == first.torrent_id
    assert client.fetch_snapshot().find(first.torrent_id).status is Status.QUEUED


def test_preferences_round_trip_legacy():
    daemon = FakeDaemon(Dialect.LEGACY)
    client = client_for(daemon)

    prefs = client.fetch_preferences()
    assert prefs.download_dir == "/downloads"

    client.update_preferences(replace(prefs, encryption=EncryptionMode.ALLOW, peer_limit_global=10))
    assert daemon.requests[-1]["arguments"]["encryption"] == "tolerated"
    assert client.fetch_preferences().encryption is EncryptionMode.ALLOW
    assert daemon.preferences.peer_limit_global == 10


def test_reset_restores_modern():
    daemon = FakeDaemon(Dialect.LEGACY, [make_torrent(1, "a")])
    client = client_for(daemon)
    client.fetch_snapshot()
    assert client.dialect is Dialect.LEGACY

    client.reset()

    assert client.dialect is Dialect.MODERN
    assert not client.confirmed
    assert client.negotiator.token == ""
    client.fetch_snapshot()
    assert client.dialect is Dialect.LEGACY
    assert len(_modern_calls(daemon)) == 2
