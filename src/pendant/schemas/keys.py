import enum

import pydantic

class Modifier(str, enum.Enum):
    LEFT_CTRL = "left_ctrl"
    LEFT_SHIFT = "left_shift"
    LEFT_ALT = "left_alt"
    LEFT_META = "left_meta"
    RIGHT_CTRL = "right_ctrl"
    RIGHT_SHIFT = "right_shift"
    RIGHT_ALT = "right_alt"
    RIGHT_META = "right_meta"

# Bit position in the report's modifier byte, bit0 first.
MODIFIER_BITS: tuple[Modifier, ...] = (
    Modifier.LEFT_CTRL,
    Modifier.LEFT_SHIFT,
    Modifier.LEFT_ALT,
    Modifier.LEFT_META,
    Modifier.RIGHT_CTRL,
    Modifier.RIGHT_SHIFT,
    Modifier.RIGHT_ALT,
    Modifier.RIGHT_META,
)

class KeyEvent(pydantic.BaseModel):
    modifiers: frozenset[Modifier] = frozenset()
    key_code: int
    is_release: bool = False

    model_config = {"frozen": True}

    @property
    def shift(self) -> bool:
        return Modifier.LEFT_SHIFT in self.modifiers or Modifier.RIGHT_SHIFT in self.modifiers

    @property
    def ctrl(self) -> bool:
        return Modifier.LEFT_CTRL in self.modifiers or Modifier.RIGHT_CTRL in self.modifiers

    @property
    def alt(self) -> bool:
        return Modifier.LEFT_ALT in self.modifiers or Modifier.RIGHT_ALT in self.modifiers

    @property
    def meta(self) -> bool:
        return Modifier.LEFT_META in self.modifiers or Modifier.RIGHT_META in self.modifiers
