"""Unit tests for relay wiring and lifecycle."""

import json
import logging

import pytest

from navrelay.browser import RequestPhase
from navrelay.config import RelayConfig
from navrelay.errors import ChannelError, ConnectError
from navrelay.relay import Relay, RelayState, start_relay
from navrelay.transport import ChannelState, FailedChannel


@pytest.fixture
def relay(channel, browser, clock) -> Relay:
    return Relay(channel, browser, browser, clock=clock)


class TestLifecycle:
    """Test the relay state machine."""

    def test_starts_idle(self, relay):
        assert relay.state is RelayState.IDLE

    def test_start_moves_to_listening(self, relay, channel, browser):
        """Starting registers listeners and starts the channel."""
        relay.start()

        assert relay.state is RelayState.LISTENING
        assert channel.started
        assert len(browser.listeners) == 2

    def test_start_twice_raises(self, relay):
        relay.start()

        with pytest.raises(RuntimeError, match="cannot start"):
            relay.start()

    def test_peer_disconnect_moves_to_disconnected(self, relay, channel):
        relay.start()

        channel.drop()

        assert relay.state is RelayState.DISCONNECTED

    def test_disconnect_handled_exactly_once(self, relay, channel, caplog):
        """A second disconnect signal must not be handled again."""
        relay.start()

        with caplog.at_level(logging.INFO, logger="navrelay.relay"):
            channel.drop(ChannelError("pipe closed"))
            channel.drop(ChannelError("pipe closed again"))

        disconnects = [r for r in caplog.records if r.name == "navrelay.relay"]
        assert len(disconnects) == 1
        assert disconnects[0].levelno == logging.ERROR
        assert "pipe closed" in disconnects[0].getMessage()

    def test_cannot_restart_after_disconnect(self, relay, channel):
        """DISCONNECTED is terminal."""
        relay.start()
        channel.drop()

        with pytest.raises(RuntimeError):
            relay.start()

    @pytest.mark.anyio
    async def test_stop_closes_channel(self, relay, channel):
        relay.start()

        await relay.stop()
        await relay.wait_closed()

        assert relay.state is RelayState.DISCONNECTED
        assert channel.state is ChannelState.DISCONNECTED

    def test_failed_channel_starts_disconnected(self, browser):
        """A relay on a channel that never connected is DISCONNECTED once started."""
        relay = Relay(FailedChannel(ConnectError("no host")), browser, browser)

        relay.start()

        assert relay.state is RelayState.DISCONNECTED

    def test_events_after_disconnect_are_dropped(self, relay, channel, browser):
        """Requests keep arriving after a disconnect but nothing is sent."""
        relay.start()
        channel.drop()

        browser.fire(RequestPhase.BEFORE_REQUEST, "http://a.test/x")

        assert channel.sent == []
        assert relay.listener.dropped == 1


class TestRouting:
    """Test both directions through a started relay."""

    def test_requests_flow_to_channel(self, relay, channel, browser):
        relay.start()

        browser.fire(RequestPhase.BEFORE_REQUEST, "http://a.test/x")
        browser.fire(RequestPhase.COMPLETED, "http://a.test/x")

        assert channel.sent == [
            {"type": "start", "url": "http://a.test/x", "time": 100.0},
            {"type": "end", "url": "http://a.test/x", "time": 101.5},
        ]

    def test_commands_flow_to_active_tab(self, relay, channel, browser):
        relay.start()

        channel.receive({"type": "navigate", "url": "http://b.test/%20y"})

        assert browser.updates == [(7, "http://b.test/%2520y")]

    def test_unknown_commands_do_not_disconnect(self, relay, channel, browser):
        relay.start()

        channel.receive({"type": "unknown_cmd"})
        channel.receive({})

        assert relay.state is RelayState.LISTENING
        assert browser.updates == []


class TestStartRelay:
    """Test connecting from configuration."""

    @pytest.mark.anyio
    async def test_missing_manifest_starts_disconnected(self, browser, tmp_path):
        """A host that cannot be found leaves the relay DISCONNECTED, not raising."""
        config = RelayConfig(peer_id="com.example.missing", manifest_dirs=[str(tmp_path)])

        relay = await start_relay(browser, browser, config)

        assert relay.state is RelayState.DISCONNECTED
        assert isinstance(relay.channel.error, ConnectError)
        assert "not found" in str(relay.channel.error)

    @pytest.mark.anyio
    async def test_origin_not_allowed_starts_disconnected(self, browser, tmp_path):
        """A manifest that does not allow the origin refuses the connection."""
        manifest = {
            "name": "com.example.chrome_ext",
            "path": "/usr/bin/true",
            "type": "stdio",
            "allowed_origins": ["chrome-extension://abcdefghijklmnopabcdefghijklmnop/"],
        }
        (tmp_path / "com.example.chrome_ext.json").write_text(json.dumps(manifest))
        config = RelayConfig(
            origin="chrome-extension://ponmlkjihgfedcbaponmlkjihgfedcba/",
            manifest_dirs=[str(tmp_path)],
        )

        relay = await start_relay(browser, browser, config)

        assert relay.state is RelayState.DISCONNECTED
        assert "not allowed" in str(relay.channel.error)

    @pytest.mark.anyio
    async def test_sends_after_failed_connect_are_dropped(self, browser, tmp_path):
        config = RelayConfig(manifest_dirs=[str(tmp_path)])
        relay = await start_relay(browser, browser, config)

        browser.fire(RequestPhase.BEFORE_REQUEST, "http://a.test/x")

        assert relay.listener.dropped == 1
