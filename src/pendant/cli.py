"""
keyboard-pendant command line interface.

Provides commands for:
- Running the pendant headless
- Running the pendant with its HTTP status API
- Listing HID devices and serial ports
"""

import argparse
import asyncio
import sys

from loguru import logger

from pendant.modules import grbl
from pendant.modules import hid_device
from pendant.modules.config import ConfigError
from pendant.modules.config import apply_overrides
from pendant.modules.config import load_config
from pendant.schemas.config import PendantConfig
from pendant import utils

def usb_id(value: str) -> int:
    return int(value, 0)

def resolve_config(args) -> PendantConfig:
    """Load the configuration file and apply command line overrides."""
    config = load_config(args.config)
    return apply_overrides(
        config,
        grbl__port=args.port,
        grbl__baudrate=args.baudrate,
        device__vendor_id=args.vendor_id,
        device__product_id=args.product_id,
        log_level=args.log_level
    )

def cmd_run(args):
    """Run the pendant until interrupted."""
    from pendant.services.pendant import run_pendant

    config = resolve_config(args)
    utils.setup_loguru(config.log_level)
    try:
        asyncio.run(run_pendant(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

def cmd_serve(args):
    """Run the pendant behind the HTTP status API."""
    import uvicorn

    from pendant.asgi import factory

    config = resolve_config(args)
    uvicorn.run(factory(config), host=args.host, port=args.http_port)

def cmd_list_devices(args):
    """Print attached HID devices."""
    devices = hid_device.list_devices()
    if not devices:
        print("No HID devices found")
        return
    for device in devices:
        print(f"{device.vendor_id:04x}:{device.product_id:04x}  {device.manufacturer} {device.product}  {device.path}")

def cmd_list_ports(args):
    """Print available serial ports."""
    ports = grbl.list_ports()
    if not ports:
        print("No serial ports found")
        return
    for port in ports:
        print(f"{port.device}  {port.description}")

def add_pendant_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-c', '--config', help='YAML configuration file')
    parser.add_argument('-p', '--port', help='GRBL serial port (default: /dev/ttyUSB0)')
    parser.add_argument('-b', '--baudrate', type=int, help='GRBL baud rate (default: 115200)')
    parser.add_argument('--vendor-id', type=usb_id, help='Keyboard USB vendor id, e.g. 0x046d')
    parser.add_argument('--product-id', type=usb_id, help='Keyboard USB product id, e.g. 0xc31c')
    parser.add_argument('--log-level', help='Log level (default: INFO)')

def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='pendant',
        description='Use a USB keyboard as a jog pendant for a GRBL controller'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Run the pendant')
    add_pendant_arguments(run_parser)
    run_parser.set_defaults(func=cmd_run)

    serve_parser = subparsers.add_parser('serve', help='Run the pendant with the HTTP status API')
    add_pendant_arguments(serve_parser)
    serve_parser.add_argument('--host', default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
    serve_parser.add_argument('--http-port', type=int, default=8000, help='Port to bind to (default: 8000)')
    serve_parser.set_defaults(func=cmd_serve)

    devices_parser = subparsers.add_parser('list-devices', help='List HID devices')
    devices_parser.set_defaults(func=cmd_list_devices)

    ports_parser = subparsers.add_parser('list-ports', help='List serial ports')
    ports_parser.set_defaults(func=cmd_list_ports)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

if __name__ == '__main__':
    main()
