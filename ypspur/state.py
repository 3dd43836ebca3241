"""Shared state of the coordinator: parameters, odometry and user commands."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

logger = logging.getLogger(__name__)

MAX_MOTOR_NUM = 16
MOTOR_RIGHT = 0
MOTOR_LEFT = 1


class RunMode(Enum):
    """What the vehicle controller is currently doing."""

    STOP = auto()
    FREE = auto()
    OPENFREE = auto()
    VEL = auto()
    WHEEL_VEL = auto()
    WHEEL_TORQUE = auto()
    WHEEL_ANGLE = auto()
    LINEFOLLOW = auto()
    STOP_LINE = auto()
    CIRCLEFOLLOW = auto()
    SPIN = auto()
    ORIENT = auto()


class MotorControl(Enum):
    """How a single motor is driven."""

    OPENFREE = auto()
    FREE = auto()
    VEHICLE = auto()
    VEL = auto()
    ANGLE = auto()
    ANGLE_VEL = auto()


def _motor_list(value: float = 0.0) -> list[float]:
    return [value] * MAX_MOTOR_NUM


def _check_motor(motor: int) -> None:
    if not 0 <= motor < MAX_MOTOR_NUM:
        raise IndexError(f"motor id out of range: {motor}")


@dataclass
class Parameters:
    """Robot parameters, each holding one value per motor.

    Names are case-insensitive. A parameter that was never set reads as 0.
    """

    values: dict[str, dict[int, float]] = field(default_factory=dict)
    motor_enable: list[bool] = field(default_factory=lambda: [False] * MAX_MOTOR_NUM)

    @staticmethod
    def _key(name: str) -> str:
        return name.upper()

    def set(self, name: str, value: float, motor: Optional[int] = None) -> None:
        """Set a parameter for one motor, or for every motor when ``motor`` is None."""
        per_motor = self.values.setdefault(self._key(name), {})
        if motor is None:
            for i in range(MAX_MOTOR_NUM):
                per_motor[i] = float(value)
        else:
            _check_motor(motor)
            per_motor[motor] = float(value)

    def p(self, name: str, motor: int) -> float:
        """Return the value of a parameter for a motor."""
        _check_motor(motor)
        return self.values.get(self._key(name), {}).get(motor, 0.0)

    def isset(self, name: str, motor: int) -> bool:
        """Return whether a parameter was given for a motor."""
        _check_motor(motor)
        return motor in self.values.get(self._key(name), {})

    @property
    def num_motor_enable(self) -> int:
        return sum(1 for enabled in self.motor_enable if enabled)

    def enabled_motors(self) -> list[int]:
        """Return the ids of enabled motors in ascending order."""
        return [i for i, enabled in enumerate(self.motor_enable) if enabled]


@dataclass
class Odometry:
    """Estimated pose, velocities and wheel states of the vehicle."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0
    v: float = 0.0
    w: float = 0.0
    time: float = 0.0
    torque_trans: float = 0.0
    torque_angular: float = 0.0
    wvel: list[float] = field(default_factory=_motor_list)
    wang: list[float] = field(default_factory=_motor_list)
    wtorque: list[float] = field(default_factory=_motor_list)


@dataclass
class SpurUserParams:
    """Commands and references set by clients and used by the control loop."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0
    v: float = 0.0
    w: float = 0.0
    dv: float = 0.0
    dw: float = 0.0
    radius: float = 0.0
    tilt: float = 0.0
    dir: float = 0.0
    vref: float = 0.0
    wref: float = 0.0
    vref_smooth: float = 0.0
    wref_smooth: float = 0.0
    control_dt: float = 0.0
    run_mode: RunMode = RunMode.STOP
    before_run_mode: Optional[RunMode] = None
    freeze: bool = False
    before_freeze: bool = False
    run_mode_cnt: int = 0
    wvelref: list[float] = field(default_factory=_motor_list)
    wheel_vel: list[float] = field(default_factory=_motor_list)
    wheel_accel: list[float] = field(default_factory=_motor_list)
    wheel_angle: list[float] = field(default_factory=_motor_list)
    wheel_vel_end: list[float] = field(default_factory=_motor_list)
    wheel_vel_smooth: list[float] = field(default_factory=_motor_list)
    torque: list[float] = field(default_factory=_motor_list)
    torque_prev: list[float] = field(default_factory=_motor_list)
    grav_torque: list[float] = field(default_factory=_motor_list)
    wheel_mode: list[MotorControl] = field(
        default_factory=lambda: [MotorControl.FREE] * MAX_MOTOR_NUM
    )
    wheel_mode_prev: list[Optional[MotorControl]] = field(
        default_factory=lambda: [None] * MAX_MOTOR_NUM
    )
    lock: threading.RLock = field(
        init=False, default_factory=threading.RLock, repr=False, compare=False
    )

    def reset(self) -> None:
        """Return the command state to a stopped vehicle with no targets."""
        self.x = 0.0
        self.y = 0.0
        self.theta = 0.0
        self.v = 0.0
        self.w = 0.0
        self.radius = 0.0
        self.tilt = 0.0
        self.dir = 0.0
        self.run_mode = RunMode.STOP
        self.before_run_mode = None
        self.freeze = False
        self.before_freeze = False
        self.run_mode_cnt = 0

    def update_wheel_modes(self, params: Parameters) -> bool:
        """Bring wheel control modes in line with the run mode.

        Only acts when the run mode or the freeze flag changed since the last
        call; returns whether it did.
        """
        changed = self.run_mode != self.before_run_mode or self.before_freeze != self.freeze
        if changed:
            if self.freeze:
                logger.debug("Mode: freeze")
            else:
                if self.run_mode in (RunMode.FREE, RunMode.WHEEL_TORQUE):
                    mode = MotorControl.FREE
                    logger.debug("Mode: free")
                elif self.run_mode is RunMode.OPENFREE:
                    mode = MotorControl.OPENFREE
                    logger.debug("Mode: openfree")
                else:
                    mode = MotorControl.VEHICLE
                    logger.debug("Mode: servo %s", self.run_mode.name)
                for i in params.enabled_motors():
                    if params.p("VEHICLE_CONTROL", i) > 0:
                        self.wheel_mode[i] = mode
        self.before_run_mode = self.run_mode
        self.before_freeze = self.freeze
        return changed