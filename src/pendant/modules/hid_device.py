import hid
from loguru import logger

from pendant.schemas.device import HidConnection
from pendant.schemas.device import HidDeviceInfo

GENERIC_DESKTOP_PAGE = 0x01
KEYBOARD_USAGE = 0x06

def list_devices() -> list[HidDeviceInfo]:
    """
    Enumerate the HID devices attached to the host.

    Returns:
        HidDeviceInfo for every enumerated interface
    """
    return [HidDeviceInfo.from_enumeration(info) for info in hid.enumerate()]

def find_keyboard() -> HidDeviceInfo | None:
    """
    Find the first device exposing a keyboard interface.

    Returns:
        HidDeviceInfo of the keyboard, or None if none is attached
    """
    for info in list_devices():
        if info.usage_page == GENERIC_DESKTOP_PAGE and info.usage == KEYBOARD_USAGE:
            return info
    return None

def open_device(vendor_id: int | None = None, product_id: int | None = None) -> HidConnection:
    """
    Open the keyboard used as a pendant.

    Args:
        vendor_id: USB vendor id, or None to pick the first keyboard
        product_id: USB product id, or None to pick the first keyboard

    Returns:
        HidConnection wrapping the open device

    Raises:
        RuntimeError: If no matching device can be opened
    """
    if vendor_id is None or product_id is None:
        keyboard = find_keyboard()
        if keyboard is None:
            raise RuntimeError("No keyboard device found, pass a vendor and product id")
        vendor_id, product_id = keyboard.vendor_id, keyboard.product_id

    try:
        device = hid.device()
        device.open(vendor_id, product_id)
    except OSError as e:
        raise RuntimeError(f"Failed to open HID device {vendor_id:04x}:{product_id:04x}: {e}")

    logger.info(f"Opened HID device {vendor_id:04x}:{product_id:04x} ({device.get_product_string()})")
    return HidConnection(vendor_id=vendor_id, product_id=product_id, device=device)

def read_report(connection: HidConnection, length: int = 8, timeout_ms: int = 100) -> bytes:
    """
    Block until an input report arrives or the timeout expires.

    Args:
        connection: Open HID connection
        length: Maximum report length in bytes
        timeout_ms: Read timeout in milliseconds

    Returns:
        Raw report bytes, empty on timeout
    """
    data = connection.device.read(length, timeout_ms)
    return bytes(data) if data else b""
