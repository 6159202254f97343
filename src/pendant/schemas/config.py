import pydantic

from pendant.schemas.macros import MacroDefinition

def _parse_usb_id(value: int | str | None) -> int | None:
    if value is None or isinstance(value, int):
        return value
    return int(value, 0)

class GrblConfig(pydantic.BaseModel):
    port: str = pydantic.Field("/dev/ttyUSB0", description="Serial port of the GRBL controller")
    baudrate: int = pydantic.Field(115200, description="Serial baud rate")
    timeout: float = pydantic.Field(0.1, description="Serial read timeout in seconds")

class DeviceConfig(pydantic.BaseModel):
    vendor_id: int | None = pydantic.Field(None, description="USB vendor id of the keyboard")
    product_id: int | None = pydantic.Field(None, description="USB product id of the keyboard")
    report_length: int = pydantic.Field(8, description="Bytes requested per input report")
    read_timeout_ms: int = pydantic.Field(100, description="Blocking read timeout in milliseconds")

    @pydantic.field_validator("vendor_id", "product_id", mode="before")
    @classmethod
    def parse_usb_id(cls, value: int | str | None) -> int | None:
        return _parse_usb_id(value)

class JogConfig(pydantic.BaseModel):
    base_speed: float = pydantic.Field(5000.0, description="Full jog feed rate in mm/min")
    loop_interval_ms: int = pydantic.Field(150, description="Smooth jog resend interval in milliseconds")
    early_offset_ms: int = pydantic.Field(50, description="Lead time of the first resend in milliseconds")
    smooth_modifier: float = 0.05
    alt_multiplier: float = 3.0
    ctrl_multiplier: float = 10.0
    z_multiplier: float = 0.25
    step_large: float = pydantic.Field(10.0, description="Single step with ctrl held, in mm")
    step_medium: float = pydantic.Field(1.0, description="Single step with alt held, in mm")
    step_small: float = pydantic.Field(0.1, description="Single step without modifiers, in mm")

    @property
    def base_step(self) -> float:
        """Distance covered in one loop interval at base speed."""
        return self.base_speed * self.loop_interval_ms / 60000.0

class PendantConfig(pydantic.BaseModel):
    grbl: GrblConfig = pydantic.Field(default_factory=GrblConfig)
    device: DeviceConfig = pydantic.Field(default_factory=DeviceConfig)
    jog: JogConfig = pydantic.Field(default_factory=JogConfig)
    macros: list[MacroDefinition] = pydantic.Field(default_factory=list)
    log_level: str = "INFO"
