"""
Tests for the TetraRadio facade and the command line front end.
"""

import asyncio
import json

import pytest
from tetrapy import TetraRadio
from tetrapy.cli import TetraCLI, main
from tetrapy.core import MockTransport
from tetrapy.types import InitPhase, ProtocolStatus, Sds

from conftest import USER_TSI, complete_init


def test_ready_publishes_users(radio, mock_transport, loop):
    """Test the user directory is published when initialization finishes."""
    records = []
    radio.register_info_callback(lambda name, text: records.append((name, json.loads(text))))

    complete_init(radio, mock_transport, loop)

    assert radio.state.phase == InitPhase.INIT_COMPLETE
    assert records[0][0] == "TetraUsers:info"
    assert records[0][1][0]["tsi"] == USER_TSI
    assert records[0][1][0]["call"] == "DL1ABC"


def test_queue_resent_after_reinit(ready_radio, mock_transport, loop):
    """Test an unconfirmed SDS goes out again after the radio was re-initialized."""
    ready_radio.sds.send_text(USER_TSI, "Hello")
    assert len(mock_transport.writes) == 1

    # No status report, the command timer restarts the radio
    loop.advance(2.0)
    assert ready_radio.state.phase == InitPhase.AWAITING_FIRST_COMMAND

    loop.advance(3.0)
    for _ in ready_radio.config.init_commands:
        mock_transport.feed_lines("OK")
        loop.advance(0.1)
    mock_transport.feed_lines("OK")

    sds_writes = [w for w in mock_transport.written_text() if "AT+CMGS" in w]
    assert len(sds_writes) == 2
    assert ready_radio.sds_queue.pending.tries == 2


def test_queue_held_during_reinit(ready_radio, mock_transport, loop):
    """Test a waiting SDS is not sent between init commands, only once ready."""
    ready_radio.state.status = ProtocolStatus.TIMEOUT
    ready_radio.sds.send_text(USER_TSI, "Hello")
    assert mock_transport.writes == []

    ready_radio.core.protocol._on_command_timeout()
    loop.advance(3.0)
    mock_transport.feed_lines("OK")

    assert ready_radio.state.phase == InitPhase.INIT
    assert not any("AT+CMGS" in w for w in mock_transport.written_text())

    loop.advance(0.1)
    mock_transport.feed_lines("OK")
    loop.advance(0.1)
    mock_transport.feed_lines("OK")

    assert ready_radio.state.phase == InitPhase.INIT_COMPLETE
    sds_writes = [w for w in mock_transport.written_text() if "AT+CMGS" in w]
    assert len(sds_writes) == 1
    assert ready_radio.sds_queue.pending.tries == 1


def test_event_callback(ready_radio, mock_transport):
    events = []
    ready_radio.register_event_callback("tetra_mode", events.append)

    mock_transport.feed_lines("+CTOM: 5")

    assert events == ["tetra_mode 5"]


def test_squelch_passthrough(ready_radio):
    ready_radio.squelch_open(True)
    assert ready_radio.state.receiving is True

    ready_radio.squelch_open(False)
    assert ready_radio.state.receiving is False


def test_update_users(ready_radio):
    count = ready_radio.update_users(json.dumps([{"tsi": "09011638300023406", "call": "DL3NEW"}]))

    assert count == 1
    assert ready_radio.users.get("09011638300023406").call == "DL3NEW"


def test_send_command(ready_radio, mock_transport):
    ready_radio.send_command("AT+CLVL?")
    assert mock_transport.written_text() == ["AT+CLVL?\r"]


def test_async_context_manager(config):
    """Test the radio opens, starts and closes inside a running loop."""
    transport = MockTransport()

    async def run():
        async with TetraRadio(config, transport=transport) as radio:
            assert radio.core.is_running() is True
            assert transport.writes == [b"\r\n"]
        return radio

    radio = asyncio.run(run())

    assert radio.core.is_running() is False
    assert transport.is_open() is False


def test_requires_running_loop(config):
    with pytest.raises(RuntimeError):
        TetraRadio(config, transport=MockTransport())


class TestCli:
    """Tests for the command line front end."""

    @pytest.fixture
    def cli(self, ready_radio, config):
        cli = TetraCLI(config)
        cli.radio = ready_radio
        cli._done = asyncio.Event()
        return cli

    def test_at_command_forwarded(self, cli, mock_transport):
        cli.handle_line("AT+CTOM?")
        assert mock_transport.written_text() == ["AT+CTOM?\r"]

    def test_sds_injected(self, cli, ready_radio, capsys):
        cli.handle_line(f"{USER_TSI},T,Hello")

        assert ready_radio.sds_queue.pending.message == "Hello"
        assert "Queued (1 in queue)" in capsys.readouterr().out

    def test_bad_injection_reported(self, cli, capsys):
        cli.handle_line("nonsense")
        assert "Error:" in capsys.readouterr().out

    def test_queue_listing(self, cli, ready_radio, capsys):
        ready_radio.state.in_transmission = True
        ready_radio.sds_queue.enqueue(Sds(tsi=USER_TSI, message="Hi"))

        cli.handle_line("queue")

        assert f"1 {USER_TSI} TEXT tries=0" in capsys.readouterr().out

    def test_quit(self, cli):
        cli.handle_line("quit")
        assert cli._done.is_set()

    def test_events_printed(self, cli, capsys):
        cli._display_event("tx_grant")
        cli._display_info("Sds:info", "[]")

        out = capsys.readouterr().out
        assert "[EVENT 1] tx_grant" in out
        assert "[INFO] Sds:info []" in out

    def test_main_bad_config(self, tmp_path, capsys):
        path = tmp_path / "tetra.json"
        path.write_text("{}")

        assert main([str(path)]) == 1
        assert "Missing parameter ISSI" in capsys.readouterr().out
