"""
Jog state machine driven by key events and controller replies.

Holding shift with an axis key starts a smooth jog: a short incremental jog
command is resent every loop interval for as long as the key stays down.
Only one jog command may be unacknowledged at a time, otherwise the
controller's receive buffer overflows and motion continues after the key is
released. Without shift an axis key moves one fixed step per press.
"""

import functools
from typing import Any
from typing import Callable
from typing import Protocol

from loguru import logger

from pendant.modules import grbl
from pendant.modules.keymap import map_key
from pendant.modules.keymap import resolve_action
from pendant.schemas import grbl as grbl_schemas
from pendant.schemas.config import JogConfig
from pendant.schemas.jog import Axis
from pendant.schemas.jog import AxisMapping
from pendant.schemas.jog import DiscreteAction
from pendant.schemas.jog import JogMode
from pendant.schemas.jog import JogRequest
from pendant.schemas.jog import JogSession
from pendant.schemas.jog import SpeedClass
from pendant.schemas.keys import KeyEvent
from pendant.schemas.macros import MacroName
from pendant.schemas.macros import MacroTable

class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any: ...

ACTION_MACROS: dict[DiscreteAction, MacroName] = {
    DiscreteAction.PROBE_XYZ: MacroName.XYZ_PROBE,
    DiscreteAction.PROBE_Z: MacroName.Z_PROBE,
    DiscreteAction.INITIAL_TOOL: MacroName.INITIAL_TOOL,
    DiscreteAction.NEW_TOOL: MacroName.NEW_TOOL,
}

class JogController:
    def __init__(
        self,
        emitter: grbl.CommandEmitter,
        scheduler: Scheduler,
        macro_table: MacroTable | None = None,
        config: JogConfig | None = None
    ):
        """
        Args:
            emitter: Sink for commands and controller actions
            scheduler: Deferred callback source with a cancellable call_later (the asyncio loop)
            macro_table: Resolved macro identifiers
            config: Jog speeds, steps and loop timing
        """
        self.emitter = emitter
        self.scheduler = scheduler
        self.macro_table = macro_table or MacroTable()
        self.config = config or JogConfig()
        self.session = JogSession()

    @property
    def loop_interval(self) -> float:
        return self.config.loop_interval_ms / 1000.0

    def handle_key_event(self, event: KeyEvent) -> None:
        """
        Process one decoded key event.

        A smooth jog ends as soon as an event carries a different key or shift
        is no longer held. The same event is then interpreted as a fresh key press.

        Args:
            event: Decoded key event
        """
        session = self.session

        if session.mode == JogMode.SMOOTH and (event.key_code != session.last_key_code or not event.shift):
            self.stop_smooth_jog()

        if event.is_release:
            if session.mode == JogMode.SINGLE_STEP:
                logger.debug("Single step key released")
                session.reset()
            return

        mapping = map_key(event.key_code)
        if mapping is None:
            action = resolve_action(event)
            if action is None:
                logger.debug(f"Key {event.key_code} is not bound")
                return
            self.run_action(action)
            return

        if event.shift:
            self._handle_smooth_key(event, mapping)
        else:
            self._handle_single_step_key(event, mapping)

    def handle_controller_line(self, line: str) -> None:
        """
        Release the acknowledgment gate when the controller is ready for the next command.
        Each jog command registers this as its reply handler with the emitter, so only
        the reply to the outstanding jog reaches it.

        Args:
            line: Reply line received from the controller
        """
        if grbl.is_acknowledgment(line):
            self.session.ack_pending = False

    def build_request(self, event: KeyEvent, mapping: AxisMapping) -> JogRequest:
        """
        Classify a key press on an axis key.

        Args:
            event: Decoded key event
            mapping: Axis and direction of the key

        Returns:
            JogRequest with the speed class implied by the held modifiers
        """
        if event.shift:
            speed_class = SpeedClass.SMOOTH
        elif event.ctrl:
            speed_class = SpeedClass.SINGLE_STEP_LARGE
        elif event.alt:
            speed_class = SpeedClass.SINGLE_STEP_MEDIUM
        else:
            speed_class = SpeedClass.SINGLE_STEP_SMALL
        return JogRequest(axis=mapping.axis, direction=mapping.direction, speed_class=speed_class)

    def speed_modifier(self, event: KeyEvent, axis: Axis) -> float:
        """
        Scale factor applied to base speed and base step during a smooth jog.

        Args:
            event: Decoded key event with shift held
            axis: Axis being jogged, Z is throttled

        Returns:
            Multiplier of the base speed and step
        """
        modifier = self.config.smooth_modifier
        if event.alt:
            modifier *= self.config.alt_multiplier
        if event.ctrl:
            modifier *= self.config.ctrl_multiplier
        if axis == Axis.Z:
            modifier *= self.config.z_multiplier
        return modifier

    def smooth_parameters(self, event: KeyEvent, axis: Axis) -> tuple[float, float]:
        """
        Compute the per-interval step and feed rate of a smooth jog.

        Args:
            event: Decoded key event with shift held
            axis: Axis being jogged

        Returns:
            (step in mm, feed rate in mm/min)
        """
        modifier = self.speed_modifier(event, axis)
        return self.config.base_step * modifier, self.config.base_speed * modifier

    def step_distance(self, speed_class: SpeedClass) -> float:
        """
        Args:
            speed_class: Single step speed class

        Returns:
            Step distance in mm
        """
        if speed_class == SpeedClass.SINGLE_STEP_LARGE:
            return self.config.step_large
        if speed_class == SpeedClass.SINGLE_STEP_MEDIUM:
            return self.config.step_medium
        return self.config.step_small

    def stop_smooth_jog(self) -> bool:
        """
        Leave smooth mode: cancel the pending resend and send jog cancel.

        Returns:
            True if a smooth jog was running
        """
        session = self.session
        if session.mode != JogMode.SMOOTH:
            return False

        if session.resend_handle is not None:
            session.resend_handle.cancel()
        self.emitter.write_raw(grbl_schemas.JOG_CANCEL)
        logger.info(f"Smooth jog stopped on {session.active_axis.value}")
        session.reset()
        return True

    def run_action(self, action: DiscreteAction) -> None:
        """
        Fire a discrete controller action. The jog mode is left untouched.

        Args:
            action: Action bound to the pressed key combination
        """
        logger.info(f"Action: {action.value}")
        if action == DiscreteAction.HOME:
            self.emitter.command(grbl_schemas.ControllerAction.HOMING)
        elif action == DiscreteAction.UNPAUSE:
            self.emitter.command(grbl_schemas.ControllerAction.FEEDER_START)
        elif action == DiscreteAction.RESUME:
            self.emitter.command(grbl_schemas.ControllerAction.GCODE_RESUME)
        else:
            self.run_macro(ACTION_MACROS[action])

    def run_macro(self, name: MacroName) -> bool:
        macro_id = self.macro_table.get(name)
        if macro_id is None:
            logger.warning(f"Macro '{name.value}' is not configured, skipping")
            return False
        self.emitter.command(grbl_schemas.ControllerAction.MACRO_RUN, macro_id)
        return True

    def _handle_smooth_key(self, event: KeyEvent, mapping: AxisMapping) -> None:
        session = self.session

        if session.mode == JogMode.SMOOTH:
            # Same key still held, pick up modifier changes for the next resend.
            session.active_jog_step, session.active_jog_speed = self.smooth_parameters(event, mapping.axis)
            return
        if session.mode == JogMode.SINGLE_STEP:
            logger.debug("Smooth jog ignored until the single step key is released")
            return

        step, speed = self.smooth_parameters(event, mapping.axis)
        session.mode = JogMode.SMOOTH
        session.active_axis = mapping.axis
        session.active_direction = mapping.direction
        session.active_jog_step = step
        session.active_jog_speed = speed
        session.last_key_code = event.key_code
        logger.info(f"Smooth jog {mapping.axis.value} {mapping.direction.value} at F{grbl.format_number(speed)}")

        self._send_jog()
        first_delay = (self.config.loop_interval_ms - self.config.early_offset_ms) / 1000.0
        self._schedule_recheck(first_delay)

    def _handle_single_step_key(self, event: KeyEvent, mapping: AxisMapping) -> None:
        session = self.session

        if session.mode == JogMode.SINGLE_STEP and session.last_key_code == event.key_code:
            return

        request = self.build_request(event, mapping)
        step = self.step_distance(request.speed_class)
        for line in grbl.single_step_commands(request.axis, request.direction, step):
            self.emitter.write(line)

        session.mode = JogMode.SINGLE_STEP
        session.active_axis = request.axis
        session.active_direction = request.direction
        session.active_jog_step = step
        session.active_jog_speed = None
        session.last_key_code = event.key_code
        logger.info(f"Single step {request.axis.value}{request.direction.sign}{grbl.format_number(step)}")

    def _send_jog(self) -> None:
        session = self.session
        session.jog_sequence += 1
        command = grbl.smooth_jog_command(
            session.active_axis,
            session.active_direction,
            session.active_jog_step,
            session.active_jog_speed
        )
        session.ack_pending = True
        self.emitter.write(command, on_reply=functools.partial(self._on_jog_reply, session.jog_sequence))

    def _on_jog_reply(self, sequence: int, line: str) -> None:
        # Only the reply to the latest jog command may open the gate.
        if sequence != self.session.jog_sequence or self.session.mode != JogMode.SMOOTH:
            return
        self.handle_controller_line(line)

    def _schedule_recheck(self, delay: float) -> None:
        self.session.resend_handle = self.scheduler.call_later(delay, self._recheck)

    def _recheck(self) -> None:
        session = self.session
        session.resend_handle = None
        if session.mode != JogMode.SMOOTH:
            return

        if session.ack_pending:
            self._schedule_recheck(self.loop_interval / 2)
            return

        self._send_jog()
        self._schedule_recheck(self.loop_interval)
