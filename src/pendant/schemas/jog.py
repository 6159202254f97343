import enum
from typing import Any

import pydantic

class Axis(str, enum.Enum):
    X = "X"
    Y = "Y"
    Z = "Z"

class Direction(str, enum.Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def sign(self) -> str:
        return "-" if self is Direction.NEGATIVE else ""

class SpeedClass(str, enum.Enum):
    SMOOTH = "smooth"
    SINGLE_STEP_LARGE = "single_step_large"
    SINGLE_STEP_MEDIUM = "single_step_medium"
    SINGLE_STEP_SMALL = "single_step_small"

class JogMode(str, enum.Enum):
    IDLE = "idle"
    SMOOTH = "smooth"
    SINGLE_STEP = "single_step"

class DiscreteAction(str, enum.Enum):
    HOME = "home"
    PROBE_XYZ = "probe_xyz"
    PROBE_Z = "probe_z"
    INITIAL_TOOL = "initial_tool"
    NEW_TOOL = "new_tool"
    UNPAUSE = "unpause"
    RESUME = "resume"

class AxisMapping(pydantic.BaseModel):
    axis: Axis
    direction: Direction

    model_config = {"frozen": True}

class JogRequest(pydantic.BaseModel):
    axis: Axis
    direction: Direction
    speed_class: SpeedClass

    model_config = {"frozen": True}

class JogSession(pydantic.BaseModel):
    mode: JogMode = JogMode.IDLE
    active_axis: Axis | None = None
    active_direction: Direction | None = None
    active_jog_step: float | None = None
    active_jog_speed: float | None = None
    last_key_code: int | None = None
    ack_pending: bool = False
    jog_sequence: int = 0
    resend_handle: Any = pydantic.Field(None, exclude=True)

    model_config = {"arbitrary_types_allowed": True}

    def reset(self) -> None:
        """
        Return the session to Idle and forget the active jog.
        """
        self.mode = JogMode.IDLE
        self.active_axis = None
        self.active_direction = None
        self.active_jog_step = None
        self.active_jog_speed = None
        self.last_key_code = None
        self.ack_pending = False
        self.resend_handle = None

class JogStatusResponse(pydantic.BaseModel):
    mode: JogMode
    axis: Axis | None = None
    direction: Direction | None = None
    jog_step: float | None = None
    jog_speed: float | None = None
    last_key_code: int | None = None
    ack_pending: bool = False

    @classmethod
    def from_session(cls, session: JogSession) -> "JogStatusResponse":
        return cls(
            mode=session.mode,
            axis=session.active_axis,
            direction=session.active_direction,
            jog_step=session.active_jog_step,
            jog_speed=session.active_jog_speed,
            last_key_code=session.last_key_code,
            ack_pending=session.ack_pending
        )

class JogStopResponse(pydantic.BaseModel):
    status: str
    message: str
    session: JogStatusResponse
