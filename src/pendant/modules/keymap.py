from pendant.schemas.jog import Axis
from pendant.schemas.jog import AxisMapping
from pendant.schemas.jog import Direction
from pendant.schemas.jog import DiscreteAction
from pendant.schemas.keys import KeyEvent

KEY_AXIS_MAP: dict[int, AxisMapping] = {
    80: AxisMapping(axis=Axis.X, direction=Direction.NEGATIVE),
    79: AxisMapping(axis=Axis.X, direction=Direction.POSITIVE),
    82: AxisMapping(axis=Axis.Y, direction=Direction.POSITIVE),
    81: AxisMapping(axis=Axis.Y, direction=Direction.NEGATIVE),
    75: AxisMapping(axis=Axis.Z, direction=Direction.POSITIVE),
    78: AxisMapping(axis=Axis.Z, direction=Direction.NEGATIVE),
    12: AxisMapping(axis=Axis.Z, direction=Direction.POSITIVE),
    14: AxisMapping(axis=Axis.Z, direction=Direction.NEGATIVE),
}

CTRL_ACTION_MAP: dict[int, DiscreteAction] = {
    11: DiscreteAction.HOME,
    19: DiscreteAction.PROBE_XYZ,
    29: DiscreteAction.PROBE_Z,
    30: DiscreteAction.INITIAL_TOOL,
    31: DiscreteAction.NEW_TOOL,
}

SHIFT_ACTION_MAP: dict[int, DiscreteAction] = {
    40: DiscreteAction.UNPAUSE,
    15: DiscreteAction.RESUME,
}

def map_key(key_code: int) -> AxisMapping | None:
    """
    Map a key code to the axis and direction it jogs.

    Args:
        key_code: Key code from the input report

    Returns:
        AxisMapping, or None if the key does not jog an axis
    """
    return KEY_AXIS_MAP.get(key_code)

def resolve_action(event: KeyEvent) -> DiscreteAction | None:
    """
    Resolve a modifier combination to a discrete controller action.
    Keys that jog an axis never resolve to an action.

    Homing and the macros are bound with ctrl (ctrl+h, ctrl+p, ctrl+z, ctrl+1,
    ctrl+2). Unpause (enter, 40) and resume (r, 15) are bound with shift
    instead, so ctrl+enter and ctrl+r do nothing.

    Args:
        event: Decoded key event

    Returns:
        DiscreteAction, or None if the combination is not bound
    """
    if map_key(event.key_code) is not None:
        return None
    if event.ctrl and event.key_code in CTRL_ACTION_MAP:
        return CTRL_ACTION_MAP[event.key_code]
    if event.shift and event.key_code in SHIFT_ACTION_MAP:
        return SHIFT_ACTION_MAP[event.key_code]
    return None
