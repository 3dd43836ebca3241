"""Trajectory following: line, circle, spin and time-optimal servo laws."""

from __future__ import annotations

import math
from enum import IntEnum

from ypspur.state import Odometry, Parameters, SpurUserParams

# Radius used for a straight line, meant as "infinitely large" (1 km).
_STRAIGHT_RADIUS = 1000.0
_STOP_LINE_MARGIN = 0.05


class StopLineState(IntEnum):
    """Where the vehicle stands relative to the line it is to stop on."""

    BEFORE = 1
    ON = 2
    OVER = 3


def trans_q(theta: float) -> float:
    """Wrap an angle into the range [-pi, pi]."""
    while theta > math.pi:
        theta -= 2.0 * math.pi
    while theta < -math.pi:
        theta += 2.0 * math.pi
    return theta


def regulator(
    d: float,
    q: float,
    r: float,
    v_max: float,
    w_max: float,
    spur: SpurUserParams,
    params: Parameters,
) -> float:
    """Set velocity references that steer onto a path; return the distance ``d``.

    ``d`` is the lateral distance to the path, ``q`` the heading error and
    ``r`` the signed radius of the path.
    """
    sign_v = -1.0 if v_max < 0 else 1.0
    sign_r = -1.0 if r < 0 else 1.0

    v = v_max - sign_v * params.p("L_C1", 0) * abs(spur.wref)
    if v * v_max < 0:
        v = 0.0

    wref = v / r
    limit = abs(w_max)
    if wref > limit:
        wref = limit
    elif wref < -limit:
        wref = -limit

    max_dist = params.p("L_DIST", 0)
    cd = d
    if cd > max_dist:
        cd = max_dist
    if cd < -max_dist:
        cd = -max_dist

    w = spur.wref_smooth - spur.control_dt * (
        sign_r * sign_v * params.p("L_K1", 0) * cd
        + params.p("L_K2", 0) * q
        + params.p("L_K3", 0) * (spur.wref_smooth - wref)
    )

    spur.vref = v
    spur.wref = w
    return d


def circle_follow(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    """Follow the circle centred at (spur.x, spur.y) with radius spur.radius."""
    r = math.hypot(spur.x - odm.x, spur.y - odm.y)
    ang = trans_q(math.atan2(odm.y - spur.y, odm.x - spur.x))
    sign_radius = -1.0 if spur.radius < 0 else 1.0

    d = abs(spur.radius) - r
    q = trans_q(odm.theta - (ang + sign_radius * (math.pi / 2.0)))

    if r < abs(spur.radius):
        rad = spur.radius
    else:
        rad = sign_radius * r

    return regulator(d, q, rad, spur.v, spur.w, spur, params)


def line_follow(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    """Follow the line through (spur.x, spur.y) with heading spur.theta."""
    d = (spur.x - odm.x) * math.sin(spur.theta) - (spur.y - odm.y) * math.cos(spur.theta)
    q = trans_q(odm.theta - spur.theta)
    return regulator(d, q, _STRAIGHT_RADIUS, spur.v, spur.w, spur, params)


def _turn_rate(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    cycle = params.p("CONTROL_CYCLE", 0)
    theta = odm.theta + spur.wref_smooth * cycle * 1.5
    return timeoptimal_servo(trans_q(theta - spur.theta), spur.w, 0.0, spur.dw, cycle)


def spin(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    """Turn in place towards spur.theta; return the remaining heading error."""
    spur.wref = _turn_rate(odm, spur, params)
    spur.vref = 0.0
    return abs(odm.theta - spur.theta)


def orient(odm: Odometry, spur: SpurUserParams, params: Parameters) -> float:
    """Turn towards spur.theta while moving at spur.v; return the heading error."""
    spur.wref = _turn_rate(odm, spur, params)
    spur.vref = spur.v
    return abs(odm.theta - spur.theta)


def dist_pos(odm: Odometry, spur: SpurUserParams) -> float:
    """Distance from the vehicle to the target point (spur.x, spur.y)."""
    return math.hypot(spur.x - odm.x, spur.y - odm.y)


def stop_line(odm: Odometry, spur: SpurUserParams, params: Parameters) -> StopLineState:
    """Drive up to the line through (spur.x, spur.y) normal to spur.theta and stop."""
    cycle = params.p("CONTROL_CYCLE", 0)
    dt = cycle * 1.5
    x = odm.x + spur.vref_smooth * math.cos(odm.theta) * dt
    y = odm.y + spur.vref_smooth * math.sin(odm.theta) * dt

    a = (x - spur.x) * math.cos(spur.theta) + (y - spur.y) * math.sin(spur.theta)
    vel = timeoptimal_servo(a, spur.v, 0.0, spur.dv, cycle)

    q = trans_q(odm.theta - spur.theta)
    regulator(0.0, q, _STRAIGHT_RADIUS, vel, spur.w, spur, params)

    if a > _STOP_LINE_MARGIN:
        return StopLineState.OVER
    if a < -_STOP_LINE_MARGIN:
        return StopLineState.BEFORE
    return StopLineState.ON


def timeoptimal_servo(
    err: float, vel_max: float, vel: float, acc: float, control_cycle: float
) -> float:
    """Velocity that brings ``err`` to zero as fast as ``vel_max`` and ``acc`` allow."""
    lookahead = control_cycle * 1.5
    err_next = err + vel * lookahead
    if err_next * err < 0:
        err_next = 0.0

    # The reference points against the error: negative for a non-negative error.
    direction = 1.0 if err_next < 0 else -1.0
    v = math.sqrt(2 * acc * abs(err_next))
    if vel_max < v:
        vel_ref_next = direction * abs(vel_max)
    else:
        vel_ref_next = direction * v

    if (err + vel_ref_next * lookahead) * err < 0:
        vel_ref_next = -err / control_cycle
    return vel_ref_next


def timeoptimal_servo2(
    err: float,
    vel_max: float,
    vel: float,
    acc: float,
    vel_end: float,
    control_cycle: float,
) -> float:
    """Like :func:`timeoptimal_servo`, but arriving with speed ``vel_end``."""
    err_next = err + vel * control_cycle * 1.5
    v = math.sqrt(vel_end * vel_end + 2 * acc * abs(err_next))

    limit = vel_max
    if abs(vel_max) < abs(vel_end):
        if abs(err) < (vel_end * vel_end - vel_max * vel_max) / (2.0 * acc):
            limit = abs(vel_end)

    if limit < v:
        v = limit
    if err_next > 0:
        v = -v
    return v