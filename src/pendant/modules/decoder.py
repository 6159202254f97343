"""
Decoding of raw keyboard input reports.

A report starts with a modifier byte, a reserved byte and the key code byte.
Some vendor keyboards report extra keys by putting a code above 128 in the
modifier byte and leaving the key code byte empty. A modifier byte above 128
therefore never carries modifier flags, and when the key code byte is zero the
modifier byte itself is the key code.
"""

from pendant.schemas.keys import KeyEvent
from pendant.schemas.keys import MODIFIER_BITS

MIN_REPORT_LENGTH = 3
VENDOR_KEY_THRESHOLD = 128

class MalformedReportError(ValueError):
    pass

def decode_report(report: bytes | bytearray | list[int]) -> KeyEvent:
    """
    Convert a raw input report into a KeyEvent.

    Args:
        report: Raw report bytes (modifier, reserved, key code, ...)

    Returns:
        KeyEvent with modifier flags, key code and release flag

    Raises:
        MalformedReportError: If the report is shorter than 3 bytes
    """
    if len(report) < MIN_REPORT_LENGTH:
        raise MalformedReportError(f"Input report too short ({len(report)} bytes)")

    modifier_byte = report[0]
    key_code = report[2]

    modifiers = frozenset()
    if modifier_byte <= VENDOR_KEY_THRESHOLD:
        modifiers = frozenset(
            modifier for bit, modifier in enumerate(MODIFIER_BITS)
            if modifier_byte & (1 << bit)
        )
    elif key_code == 0:
        key_code = modifier_byte

    return KeyEvent(modifiers=modifiers, key_code=key_code, is_release=key_code == 0)
