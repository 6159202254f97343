import collections
import time
from typing import Callable
from typing import Protocol

import serial
from loguru import logger
from serial.tools import list_ports as serial_list_ports

from pendant.schemas import grbl as grbl_schemas
from pendant.schemas.jog import Axis
from pendant.schemas.jog import Direction
from pendant.schemas.macros import MacroDefinition

def create_grbl_connection(port: str = "/dev/ttyUSB0", baudrate: int = 115200, timeout: float = 0.1) -> grbl_schemas.GrblConnection:
    """
    Open a serial connection to the GRBL controller and wake it up.

    Args:
        port: Serial port path for GRBL controller (default: /dev/ttyUSB0)
        baudrate: Serial baud rate
        timeout: Read timeout in seconds, bounds how long a reader blocks

    Returns:
        GrblConnection with port and open serial connection

    Raises:
        RuntimeError: If the port cannot be opened
    """
    try:
        logger.info(f"Connecting to GRBL controller at {port} ({baudrate} baud)...")
        grbl_ser = serial.Serial(port, baudrate, timeout=timeout)
        time.sleep(2)
        grbl_ser.write(b'\r\n\r\n')
        time.sleep(1)
        grbl_ser.read_all()
        return grbl_schemas.GrblConnection(port=port, baudrate=baudrate, serial=grbl_ser)
    except Exception as e:
        logger.error(f"Failed to connect to GRBL controller at {port}: {e}")
        if 'grbl_ser' in locals():
            try:
                grbl_ser.close()
            except Exception:
                pass
        raise RuntimeError(f"Failed to connect to GRBL controller at {port}: {e}")

def list_ports() -> list[grbl_schemas.SerialPortInfo]:
    """
    List serial ports available for a controller connection.

    Returns:
        SerialPortInfo for every detected port
    """
    return [
        grbl_schemas.SerialPortInfo(device=port_info.device, description=port_info.description or "", hwid=port_info.hwid or "")
        for port_info in serial_list_ports.comports()
    ]

def is_acknowledgment(line: str) -> bool:
    """
    Check whether a controller reply frees the controller for the next jog command.
    A rejected jog (error:15, travel limit exceeded) counts as acknowledged so the
    next computed command supersedes it.

    Args:
        line: Reply line received from the controller

    Returns:
        True for "ok" and "error:15" replies
    """
    return line.strip().lower().startswith(grbl_schemas.ACK_TOKENS)

def is_reply(line: str) -> bool:
    lower = line.strip().lower()
    return lower.startswith("ok") or lower.startswith("error:")

def format_number(value: float) -> str:
    """
    Render a distance or feed rate in its shortest form (250, 0.625, 1.5625).
    """
    return f"{round(value, 6):g}"

def smooth_jog_command(axis: Axis, direction: Direction, step: float, speed: float) -> str:
    """
    Build an incremental jog command for one smooth jog loop interval.

    Args:
        axis: Axis to move
        direction: Direction of travel
        step: Distance in mm
        speed: Feed rate in mm/min

    Returns:
        Jog command line without terminator
    """
    return f"$J=G91 G21 {axis.value}{direction.sign}{format_number(step)} F{format_number(speed)}"

def single_step_commands(axis: Axis, direction: Direction, step: float) -> list[str]:
    """
    Build the relative move sequence for a single step jog.

    Args:
        axis: Axis to move
        direction: Direction of travel
        step: Distance in mm

    Returns:
        Relative mode, the move, and absolute mode command lines
    """
    return ["G91", f"G0{axis.value}{direction.sign}{format_number(step)}", "G90"]

ReplyHandler = Callable[[str], None]

class CommandEmitter(Protocol):
    def write(self, line: str, on_reply: ReplyHandler | None = None) -> None: ...

    def write_raw(self, data: bytes) -> None: ...

    def command(self, action: grbl_schemas.ControllerAction, *args: str) -> None: ...

class GrblEmitter:
    """
    Forwards commands and named controller actions to a GRBL serial port.

    GRBL answers every line it receives with exactly one ok or error reply, in
    order. Each written line is queued together with its reply handler and
    every reply is routed to the oldest outstanding line. Realtime bytes get no
    reply and are not queued.

    Macro bodies are streamed send-response: the next line is written when the
    previous macro line is answered.
    """

    def __init__(self, ser: serial.Serial, macros: list[MacroDefinition] | None = None):
        self.ser = ser
        self.macros = {macro.id: macro for macro in macros or []}
        self._macro_queue: collections.deque[str] = collections.deque()
        self._macro_waiting = False
        self._outstanding: collections.deque[ReplyHandler | None] = collections.deque()

    def write(self, line: str, on_reply: ReplyHandler | None = None) -> None:
        """
        Send one command line.

        Args:
            line: Command without terminator
            on_reply: Called with the controller's reply to this line
        """
        logger.debug(f"> {line}")
        self._outstanding.append(on_reply)
        self.ser.write((line + "\n").encode())

    def write_raw(self, data: bytes) -> None:
        logger.debug(f"> {data!r}")
        self.ser.write(data)

    def command(self, action: grbl_schemas.ControllerAction, *args: str) -> None:
        """
        Run a named controller action.

        Args:
            action: Action to run
            args: Action arguments (macro id for macro:run)
        """
        if action == grbl_schemas.ControllerAction.HOMING:
            self.write("$H")
        elif action == grbl_schemas.ControllerAction.MACRO_RUN:
            self.run_macro(args[0] if args else "")
        elif action in (grbl_schemas.ControllerAction.FEEDER_START, grbl_schemas.ControllerAction.GCODE_RESUME):
            self.write_raw(grbl_schemas.CYCLE_START.encode())
        else:
            logger.warning(f"Unsupported controller action: {action}")

    def run_macro(self, macro_id: str) -> None:
        macro = self.macros.get(macro_id)
        if macro is None:
            logger.warning(f"Macro id '{macro_id}' has no definition, skipping")
            return
        logger.info(f"Running macro '{macro.name}' ({len(macro.commands)} lines)")
        self._macro_queue.extend(line.strip() for line in macro.commands if line.strip())
        if not self._macro_waiting:
            self._send_next_macro_line()

    @property
    def macro_running(self) -> bool:
        return self._macro_waiting

    def handle_controller_line(self, line: str) -> None:
        """
        Hand a controller reply to the handler of the oldest unanswered line.
        Status reports, alarms and messages are not replies and are ignored.

        Args:
            line: Line received from the controller
        """
        if not is_reply(line):
            return
        if not self._outstanding:
            logger.debug(f"Reply '{line}' with no command outstanding")
            return
        handler = self._outstanding.popleft()
        if handler is not None:
            handler(line)

    def _on_macro_reply(self, line: str) -> None:
        self._send_next_macro_line()

    def _send_next_macro_line(self) -> None:
        if not self._macro_queue:
            self._macro_waiting = False
            return
        self._macro_waiting = True
        self.write(self._macro_queue.popleft(), on_reply=self._on_macro_reply)
