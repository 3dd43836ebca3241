"""Vehicle-level control: wheel references, speed smoothing and simulation."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import MutableSequence
from enum import IntFlag
from typing import Optional

from ypspur.motion import timeoptimal_servo, timeoptimal_servo2
from ypspur.state import (
    MOTOR_LEFT,
    MOTOR_RIGHT,
    MotorControl,
    Odometry,
    Parameters,
    SpurUserParams,
)

logger = logging.getLogger(__name__)

GRAVITY = 9.81

_SPEED_MODES = (MotorControl.ANGLE, MotorControl.ANGLE_VEL, MotorControl.VEL)


class SpeedLimit(IntFlag):
    """Limits that clipped the smoothed vehicle speed."""

    VEL = 1
    ACCEL = 2
    ANGVEL = 4
    ANGACCEL = 8
    CENTRIFUGAL = 16


def _vehicle_motors(params: Parameters) -> list[int]:
    return [i for i in params.enabled_motors() if params.p("VEHICLE_CONTROL", i) > 0]


def motor_control(spur: SpurUserParams, odm: Odometry, params: Parameters) -> None:
    """Update the smoothed speed reference of motors driven per joint."""
    servo_cycle = params.p("CONTROL_CYCLE", 0)
    for i in params.enabled_motors():
        mode = spur.wheel_mode[i]
        if mode not in _SPEED_MODES:
            continue
        if mode is MotorControl.ANGLE:
            spur.wvelref[i] = timeoptimal_servo(
                odm.wang[i] - spur.wheel_angle[i],
                spur.wheel_vel[i],
                odm.wvel[i],
                spur.wheel_accel[i],
                servo_cycle,
            )
        elif mode is MotorControl.ANGLE_VEL:
            spur.wvelref[i] = timeoptimal_servo2(
                odm.wang[i] - spur.wheel_angle[i],
                spur.wheel_vel[i],
                odm.wvel[i],
                spur.wheel_accel[i],
                spur.wheel_vel_end[i],
                servo_cycle,
            )

        cycle = params.p("CONTROL_CYCLE", i)
        step = spur.wheel_accel[i] * cycle
        ref = spur.wvelref[i]
        if ref > spur.wheel_vel_smooth[i] + step:
            ref = spur.wheel_vel_smooth[i] + step
        elif ref < spur.wheel_vel_smooth[i] - step:
            ref = spur.wheel_vel_smooth[i] - step
        spur.wheel_vel_smooth[i] = ref

        if mode is MotorControl.ANGLE_VEL:
            target = spur.wheel_angle[i]
            here = odm.wang[i]
            ahead = here + ref * cycle
            end = spur.wheel_vel_end[i]
            if (end > 0.0 and here < target < ahead) or (end < 0.0 and ahead < target < here):
                spur.wheel_mode[i] = MotorControl.VEL
                spur.wvelref[i] = end


def robot_speed(spur: SpurUserParams, params: Parameters) -> None:
    """Turn the smoothed vehicle speeds into right and left wheel speeds."""
    tread = params.p("TREAD", 0)
    for vc_i, i in enumerate(_vehicle_motors(params)):
        spur.wheel_vel_smooth[i] = 0.0
        spur.wheel_mode[i] = MotorControl.VEHICLE
        radius = params.p("RADIUS", i)
        if vc_i == 0:
            spur.wheel_vel_smooth[i] = (0.5 * spur.wref_smooth * tread + spur.vref_smooth) / radius
        elif vc_i == 1:
            spur.wheel_vel_smooth[i] = -(0.5 * spur.wref_smooth * tread - spur.vref_smooth) / radius


def robot_speed_smooth(spur: SpurUserParams, params: Parameters) -> SpeedLimit:
    """Limit the speed references by speed, acceleration and centrifugal bounds.

    Returns the set of limits that were applied.
    """
    cycle = params.p("CONTROL_CYCLE", 0)
    v = spur.vref
    w = spur.wref
    dw = spur.dw * cycle
    dv = spur.dv * cycle

    if abs(spur.vref_smooth) > abs(params.p("MAX_VEL", 0)):
        dv = params.p("MAX_ACC_V", 0) * cycle
    if abs(spur.wref_smooth) > abs(params.p("MAX_W", 0)):
        dw = params.p("MAX_ACC_W", 0) * cycle

    limit = SpeedLimit(0)

    if v > abs(spur.v):
        v = abs(spur.v)
        limit |= SpeedLimit.VEL
    elif v < -abs(spur.v):
        v = -abs(spur.v)
        limit |= SpeedLimit.VEL

    if v > spur.vref_smooth + dv:
        v = spur.vref_smooth + dv
        limit |= SpeedLimit.ACCEL
    elif v < spur.vref_smooth - dv:
        v = spur.vref_smooth - dv
        limit |= SpeedLimit.ACCEL

    if w > abs(spur.w):
        w = abs(spur.w)
        limit |= SpeedLimit.ANGVEL
    elif w < -abs(spur.w):
        w = -abs(spur.w)
        limit |= SpeedLimit.ANGVEL

    if w > spur.wref_smooth + dw:
        w = spur.wref_smooth + dw
        limit |= SpeedLimit.ANGACCEL
    elif w < spur.wref_smooth - dw:
        w = spur.wref_smooth - dw
        limit |= SpeedLimit.ANGACCEL

    if spur.wref_smooth != 0:
        v_cent = params.p("MAX_CENTRIFUGAL_ACC", 0) / abs(spur.wref_smooth)
        if v > v_cent:
            v = v_cent
            limit |= SpeedLimit.CENTRIFUGAL
        elif v < -v_cent:
            v = -v_cent
            limit |= SpeedLimit.CENTRIFUGAL

    spur.vref_smooth = v
    spur.wref_smooth = w
    robot_speed(spur, params)
    return limit


def update_ref_speed(spur: SpurUserParams, odm: Odometry) -> None:
    """Make the smoothed references follow the measured speeds."""
    spur.wheel_vel_smooth[:] = odm.wvel
    spur.vref_smooth = odm.v
    spur.wref_smooth = odm.w


def _set_vehicle_mode(spur: SpurUserParams, params: Parameters, mode: MotorControl) -> None:
    for i in _vehicle_motors(params):
        spur.wheel_mode[i] = mode


def wheel_vel(spur: SpurUserParams, params: Parameters) -> None:
    """Drive the vehicle wheels by direct velocity references."""
    _set_vehicle_mode(spur, params, MotorControl.VEL)


def wheel_angle(spur: SpurUserParams, params: Parameters) -> None:
    """Drive the vehicle wheels to target angles."""
    _set_vehicle_mode(spur, params, MotorControl.ANGLE)


def wheel_torque(
    spur: SpurUserParams, params: Parameters, torque: MutableSequence[float]
) -> MutableSequence[float]:
    """Add the commanded wheel torques to ``torque`` and free the wheels."""
    for i in _vehicle_motors(params):
        torque[i] += spur.torque[i]
        spur.wheel_mode[i] = MotorControl.FREE
    return torque


def gravity_compensation(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    """Set the wheel torques that cancel gravity on a slope; return the pitch along the heading."""
    tilt = math.atan(math.cos(odm.theta - spur.dir) * math.tan(spur.tilt))
    force = params.p("MASS", 0) * GRAVITY * math.sin(tilt)
    spur.grav_torque[0] = force * params.p("RADIUS", MOTOR_RIGHT) / 2.0
    spur.grav_torque[1] = force * params.p("RADIUS", MOTOR_LEFT) / 2.0
    logger.debug(
        "Force:%f Torque:%f/%f", force, spur.grav_torque[0], spur.grav_torque[1]
    )
    return tilt


def simulate_control(
    odm: Odometry,
    spur: SpurUserParams,
    params: Parameters,
    now: Optional[float] = None,
) -> None:
    """Advance the odometry one control cycle as if the wheels followed their references."""
    dt = params.p("CONTROL_CYCLE", 0)
    odm.time = time.time() if now is None else now

    for i in params.enabled_motors():
        if spur.wheel_mode[i] in (MotorControl.OPENFREE, MotorControl.FREE):
            odm.wvel[i] = 0.0
        else:
            odm.wvel[i] = spur.wheel_vel_smooth[i]
            odm.wang[i] += odm.wvel[i] * dt

    r_right = params.p("RADIUS", MOTOR_RIGHT)
    r_left = params.p("RADIUS", MOTOR_LEFT)
    tread = params.p("TREAD", 0)
    odm.v = r_right * odm.wvel[MOTOR_RIGHT] / 2.0 + r_left * odm.wvel[MOTOR_LEFT] / 2.0
    odm.w = r_right * odm.wvel[MOTOR_RIGHT] / tread - r_left * odm.wvel[MOTOR_LEFT] / tread
    odm.x = odm.x + odm.v * math.cos(odm.theta) * dt
    odm.y = odm.y + odm.v * math.sin(odm.theta) * dt
    odm.theta = odm.theta + odm.w * dt