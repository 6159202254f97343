import asyncio

from loguru import logger

from pendant.modules import grbl
from pendant.modules import hid_device
from pendant.modules.decoder import MalformedReportError
from pendant.modules.decoder import decode_report
from pendant.modules.macros import build_macro_table
from pendant.schemas import grbl as grbl_schemas
from pendant.schemas.config import PendantConfig
from pendant.schemas.device import HidConnection
from pendant.services.jog_controller import JogController

class PendantService:
    """
    Runs a keyboard as a jog pendant for a GRBL controller.

    Both readers block in the default executor and hand their results back to
    the event loop, so key handling, reply handling and the smooth jog resend
    never run concurrently.
    """

    def __init__(
        self,
        config: PendantConfig,
        grbl_connection: grbl_schemas.GrblConnection,
        hid_connection: HidConnection,
        loop: asyncio.AbstractEventLoop | None = None
    ):
        self.config = config
        self.grbl_connection = grbl_connection
        self.hid_connection = hid_connection
        self.loop = loop or asyncio.get_running_loop()
        self.emitter = grbl.GrblEmitter(grbl_connection.serial, config.macros)
        self.controller = JogController(
            self.emitter,
            self.loop,
            macro_table=build_macro_table(config.macros),
            config=config.jog
        )
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """
        Start the input device and controller reader tasks.
        """
        if self._running:
            return
        self._running = True
        self._tasks = [
            self.loop.create_task(self._device_reader_loop(), name="pendant-device-reader"),
            self.loop.create_task(self._controller_reader_loop(), name="pendant-controller-reader"),
        ]
        logger.info("Pendant service started")

    async def wait(self) -> None:
        """
        Wait until a reader task ends, propagating its failure.
        """
        if not self._tasks:
            return
        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def close(self) -> None:
        """
        Stop jogging, cancel the readers and release both connections.
        """
        self.stop_jog()
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Reader task {task.get_name()} failed: {e}")
        self._tasks = []

        try:
            self.hid_connection.close()
            logger.info("HID device closed")
        except Exception as e:
            logger.error(f"Error closing HID device: {e}")
        try:
            self.grbl_connection.close()
            logger.info("GRBL connection closed")
        except Exception as e:
            logger.error(f"Error closing GRBL connection: {e}")
        logger.info("Pendant service stopped")

    def stop_jog(self) -> bool:
        """
        Force a running smooth jog to stop.

        Returns:
            True if a smooth jog was running
        """
        return self.controller.stop_smooth_jog()

    def handle_report(self, report: bytes) -> None:
        """
        Decode an input report and feed it to the jog controller.
        Malformed reports are dropped without touching the jog session.

        Args:
            report: Raw report bytes from the input device
        """
        try:
            event = decode_report(report)
        except MalformedReportError as e:
            logger.debug(f"Dropping report {report!r}: {e}")
            return
        self.controller.handle_key_event(event)

    def handle_controller_line(self, line: str) -> None:
        """
        Route a controller line to the owner of the oldest unanswered command.

        Args:
            line: Decoded reply line
        """
        logger.debug(f"< {line}")
        self.emitter.handle_controller_line(line)

    async def _device_reader_loop(self) -> None:
        device_config = self.config.device
        while self._running:
            report = await self.loop.run_in_executor(
                None,
                hid_device.read_report,
                self.hid_connection,
                device_config.report_length,
                device_config.read_timeout_ms
            )
            if report:
                self.handle_report(report)

    async def _controller_reader_loop(self) -> None:
        ser = self.grbl_connection.serial
        while self._running:
            raw = await self.loop.run_in_executor(None, ser.readline)
            if not raw:
                continue
            line = raw.decode("utf-8", errors="ignore").strip()
            if line:
                self.handle_controller_line(line)

def create_pendant_service(config: PendantConfig, loop: asyncio.AbstractEventLoop | None = None) -> PendantService:
    """
    Open the controller and input device described by the configuration.

    Args:
        config: Pendant configuration
        loop: Event loop running the service (default: the running loop)

    Returns:
        PendantService ready to start

    Raises:
        RuntimeError: If either connection cannot be opened
    """
    grbl_connection = grbl.create_grbl_connection(config.grbl.port, config.grbl.baudrate, config.grbl.timeout)
    try:
        hid_connection = hid_device.open_device(config.device.vendor_id, config.device.product_id)
    except Exception:
        grbl_connection.close()
        raise
    return PendantService(config, grbl_connection, hid_connection, loop=loop)

async def run_pendant(config: PendantConfig) -> None:
    """
    Run the pendant until a reader fails or the task is cancelled.

    Args:
        config: Pendant configuration
    """
    service = create_pendant_service(config)
    service.start()
    try:
        await service.wait()
    finally:
        await service.close()
