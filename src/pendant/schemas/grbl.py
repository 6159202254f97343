import enum

import serial

import pydantic

# Realtime jog cancel. GRBL acts on it immediately without queueing.
JOG_CANCEL = b"\x85"
CYCLE_START = "~"

ACK_TOKENS: tuple[str, ...] = ("ok", "error:15")

class ControllerAction(str, enum.Enum):
    HOMING = "homing"
    MACRO_RUN = "macro:run"
    FEEDER_START = "feeder:start"
    GCODE_RESUME = "gcode:resume"

class GrblConnection(pydantic.BaseModel):
    port: str
    baudrate: int
    serial: serial.Serial

    model_config = {"arbitrary_types_allowed": True}

    def close(self) -> None:
        self.serial.close()

class SerialPortInfo(pydantic.BaseModel):
    device: str
    description: str = ""
    hwid: str = ""
