import asyncio
import time
from unittest.mock import MagicMock

import pytest
import serial

from pendant.modules import grbl
from pendant.modules import hid_device
from pendant.schemas.config import PendantConfig
from pendant.schemas.device import HidConnection
from pendant.schemas.grbl import GrblConnection
from pendant.schemas.jog import JogMode
from pendant.schemas.macros import MacroDefinition
from pendant.services import pendant as pendant_service
from pendant.services.pendant import PendantService

SHIFT_LEFT_ARROW = bytes([0x02, 0, 80, 0, 0, 0, 0, 0])
KEY_UP = bytes([0, 0, 0, 0, 0, 0, 0, 0])

@pytest.fixture
def ser():
    ser = MagicMock(spec=serial.Serial)
    ser.readline.return_value = b""
    return ser

@pytest.fixture
def grbl_connection(ser):
    return GrblConnection(port="/dev/ttyUSB0", baudrate=115200, serial=ser)

@pytest.fixture
def hid_connection():
    return HidConnection(vendor_id=0x046D, product_id=0xC31C, device=MagicMock())

@pytest.fixture
def config():
    return PendantConfig(macros=[MacroDefinition(name="z-probe", id="probe-z", commands=["G38.2 Z-20 F100"])])

@pytest.fixture
def service(config, grbl_connection, hid_connection, scheduler):
    return PendantService(config, grbl_connection, hid_connection, loop=scheduler)

def written(ser):
    return [c.args[0] for c in ser.write.call_args_list]

def test_handle_report_starts_smooth_jog(service, ser):
    """
    Test that a decoded report reaches the jog controller and the serial port.
    """
    service.handle_report(SHIFT_LEFT_ARROW)
    assert service.controller.session.mode == JogMode.SMOOTH
    assert written(ser) == [b"$J=G91 G21 X-0.625 F250\n"]

def test_malformed_report_is_dropped(service, ser):
    """
    Test that a short report leaves the session and the port untouched.
    """
    service.handle_report(SHIFT_LEFT_ARROW)
    session_before = service.controller.session.model_dump()
    service.handle_report(b"\x02\x00")
    assert service.controller.session.model_dump() == session_before
    assert len(written(ser)) == 1

def test_controller_line_clears_ack(service):
    """
    Test that a controller reply releases the acknowledgment gate.
    """
    service.handle_report(SHIFT_LEFT_ARROW)
    service.handle_controller_line("ok")
    assert service.controller.session.ack_pending is False

def test_macro_streams_on_replies(service, ser):
    """
    Test that replies are routed to the macro streamer.
    """
    service.handle_report(bytes([0x01, 0, 29]))
    assert written(ser) == [b"G38.2 Z-20 F100\n"]
    assert service.emitter.macro_running
    service.handle_controller_line("ok")
    assert not service.emitter.macro_running

def test_macro_reply_keeps_jog_gated(service, ser):
    """
    Test that the reply to a macro line is not taken as the jog acknowledgment.
    """
    service.handle_report(bytes([0x01, 0, 29]))
    service.handle_report(SHIFT_LEFT_ARROW)
    service.handle_controller_line("ok")
    assert not service.emitter.macro_running
    assert service.controller.session.ack_pending is True

    service.handle_controller_line("ok")
    assert service.controller.session.ack_pending is False

def test_stop_jog(service, ser):
    """
    Test that stop_jog sends jog cancel only while smooth jogging.
    """
    assert service.stop_jog() is False
    service.handle_report(SHIFT_LEFT_ARROW)
    assert service.stop_jog() is True
    assert written(ser)[-1] == b"\x85"
    assert service.controller.session.mode == JogMode.IDLE

def test_key_up_stops_smooth_jog(service, ser, scheduler):
    """
    Test that the key-up report stops the jog and no resend follows.
    """
    service.handle_report(SHIFT_LEFT_ARROW)
    service.handle_report(KEY_UP)
    service.handle_controller_line("ok")
    scheduler.advance(1.0)
    assert written(ser) == [b"$J=G91 G21 X-0.625 F250\n", b"\x85"]

def test_service_readers(monkeypatch, config, grbl_connection, hid_connection, ser):
    """
    Test that the reader tasks feed reports and replies through the event loop.
    """
    reports = [SHIFT_LEFT_ARROW]

    def fake_read_report(connection, length, timeout_ms):
        time.sleep(0.005)
        return reports.pop(0) if reports else b""

    def fake_readline():
        time.sleep(0.005)
        return b""

    monkeypatch.setattr(hid_device, "read_report", fake_read_report)
    ser.readline.side_effect = fake_readline

    async def scenario():
        service = PendantService(config, grbl_connection, hid_connection)
        service.start()
        assert service.running
        # No reply arrives, so rechecks back off and never resend.
        await asyncio.sleep(0.3)
        mode = service.controller.session.mode
        await service.close()
        return mode, service.running

    mode, running = asyncio.run(scenario())

    assert mode == JogMode.SMOOTH
    assert running is False
    assert written(ser) == [b"$J=G91 G21 X-0.625 F250\n", b"\x85"]
    hid_connection.device.close.assert_called_once()
    ser.close.assert_called_once()

def test_run_pendant_propagates_reader_failure(monkeypatch, config, grbl_connection, hid_connection, ser):
    """
    Test that a failing reader ends the pendant and releases both connections.
    """
    def failing_read_report(connection, length, timeout_ms):
        raise OSError("device unplugged")

    def fake_readline():
        time.sleep(0.005)
        return b""

    monkeypatch.setattr(hid_device, "read_report", failing_read_report)
    ser.readline.side_effect = fake_readline
    monkeypatch.setattr(
        pendant_service,
        "create_pendant_service",
        lambda cfg: PendantService(cfg, grbl_connection, hid_connection)
    )

    with pytest.raises(OSError, match="unplugged"):
        asyncio.run(pendant_service.run_pendant(config))

    hid_connection.device.close.assert_called_once()
    ser.close.assert_called_once()

def test_create_pendant_service_closes_serial_on_device_failure(monkeypatch, config, grbl_connection, ser):
    """
    Test that the serial port is closed when the input device cannot be opened.
    """
    monkeypatch.setattr(grbl, "create_grbl_connection", lambda port, baudrate, timeout: grbl_connection)

    def failing_open(vendor_id, product_id):
        raise RuntimeError("No keyboard device found")

    monkeypatch.setattr(hid_device, "open_device", failing_open)

    with pytest.raises(RuntimeError, match="No keyboard"):
        pendant_service.create_pendant_service(config, loop=MagicMock())
    ser.close.assert_called_once()
