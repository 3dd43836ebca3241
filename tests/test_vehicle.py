import math

import pytest

from ypspur.state import MotorControl, Odometry, Parameters, SpurUserParams
from ypspur.vehicle import (
    SpeedLimit,
    gravity_compensation,
    motor_control,
    robot_speed,
    robot_speed_smooth,
    simulate_control,
    update_ref_speed,
    wheel_angle,
    wheel_torque,
    wheel_vel,
)

CYCLE = 0.01


def make_params(vehicle=True):
    params = Parameters()
    params.motor_enable[0] = True
    params.motor_enable[1] = True
    params.set("CONTROL_CYCLE", CYCLE)
    params.set("RADIUS", 0.1)
    params.set("TREAD", 0.4)
    params.set("MAX_VEL", 2.0)
    params.set("MAX_W", 3.0)
    params.set("MAX_ACC_V", 5.0)
    params.set("MAX_ACC_W", 5.0)
    params.set("MAX_CENTRIFUGAL_ACC", 100.0)
    params.set("MASS", 20.0)
    params.set("VEHICLE_CONTROL", 1.0 if vehicle else 0.0)
    return params


@pytest.mark.parametrize("v, w", [(0.5, 0.0), (0.0, 1.2), (0.3, -0.7), (-0.4, 0.9)])
def test_robot_speed_round_trips_through_simulation(v, w):
    params = make_params()
    spur = SpurUserParams()
    spur.vref_smooth = v
    spur.wref_smooth = w
    robot_speed(spur, params)
    assert spur.wheel_mode[0] is MotorControl.VEHICLE
    assert spur.wheel_mode[1] is MotorControl.VEHICLE

    odm = Odometry()
    simulate_control(odm, spur, params, now=12.5)
    assert odm.time == 12.5
    assert odm.v == pytest.approx(v)
    assert odm.w == pytest.approx(w)


def test_robot_speed_skips_motors_without_vehicle_control():
    params = make_params(vehicle=False)
    spur = SpurUserParams()
    spur.vref_smooth = 1.0
    robot_speed(spur, params)
    assert spur.wheel_vel_smooth[0] == 0.0
    assert spur.wheel_mode[0] is MotorControl.FREE


def test_robot_speed_smooth_no_limit():
    params = make_params()
    spur = SpurUserParams(v=1.0, w=1.0, dv=10.0, dw=10.0)
    spur.vref = 0.05
    spur.wref = 0.02
    limit = robot_speed_smooth(spur, params)
    assert limit == SpeedLimit(0)
    assert spur.vref_smooth == pytest.approx(0.05)
    assert spur.wref_smooth == pytest.approx(0.02)


def test_robot_speed_smooth_clips_velocity_and_acceleration():
    params = make_params()
    spur = SpurUserParams(v=1.0, w=1.0, dv=10.0, dw=10.0)
    spur.vref = 5.0
    spur.wref = -5.0
    limit = robot_speed_smooth(spur, params)
    assert limit == SpeedLimit.VEL | SpeedLimit.ACCEL | SpeedLimit.ANGVEL | SpeedLimit.ANGACCEL
    assert abs(spur.vref_smooth) <= spur.dv * CYCLE + 1e-12
    assert abs(spur.wref_smooth) <= spur.dw * CYCLE + 1e-12
    assert spur.vref_smooth > 0
    assert spur.wref_smooth < 0


def test_robot_speed_smooth_converges_to_reference():
    params = make_params()
    spur = SpurUserParams(v=1.0, w=1.0, dv=10.0, dw=10.0)
    spur.vref = 0.6
    spur.wref = 0.4
    for _ in range(200):
        robot_speed_smooth(spur, params)
    assert spur.vref_smooth == pytest.approx(0.6)
    assert spur.wref_smooth == pytest.approx(0.4)


def test_robot_speed_smooth_centrifugal_limit():
    params = make_params()
    params.set("MAX_CENTRIFUGAL_ACC", 0.1)
    spur = SpurUserParams(v=2.0, w=3.0, dv=100.0, dw=100.0)
    spur.wref_smooth = 1.0
    spur.wref = 1.0
    spur.vref = 1.0
    limit = robot_speed_smooth(spur, params)
    assert SpeedLimit.CENTRIFUGAL in limit
    assert spur.vref_smooth == pytest.approx(0.1)


def test_update_ref_speed_copies_measurement():
    spur = SpurUserParams()
    odm = Odometry(v=0.3, w=-0.2)
    odm.wvel[0] = 1.5
    odm.wvel[1] = -2.5
    update_ref_speed(spur, odm)
    assert spur.vref_smooth == 0.3
    assert spur.wref_smooth == -0.2
    assert spur.wheel_vel_smooth[:2] == [1.5, -2.5]


def test_wheel_vel_and_angle_modes():
    params = make_params()
    spur = SpurUserParams()
    wheel_vel(spur, params)
    assert spur.wheel_mode[:2] == [MotorControl.VEL, MotorControl.VEL]
    wheel_angle(spur, params)
    assert spur.wheel_mode[:2] == [MotorControl.ANGLE, MotorControl.ANGLE]
    assert spur.wheel_mode[2] is MotorControl.FREE


def test_wheel_torque_accumulates_and_frees():
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_mode[0] = MotorControl.VEHICLE
    spur.torque[0] = 0.5
    spur.torque[1] = -0.25
    torque = [1.0] * 16
    result = wheel_torque(spur, params, torque)
    assert result is torque
    assert torque[0] == 1.5
    assert torque[1] == 0.75
    assert torque[2] == 1.0
    assert spur.wheel_mode[0] is MotorControl.FREE


def test_gravity_compensation_flat_and_sideways():
    params = make_params()
    odm = Odometry(theta=0.0)
    spur = SpurUserParams(dir=0.0, tilt=0.0)
    assert gravity_compensation(odm, spur, params) == 0.0
    assert spur.grav_torque[0] == 0.0

    spur.tilt = 0.2
    odm.theta = math.pi / 2
    assert gravity_compensation(odm, spur, params) == pytest.approx(0.0, abs=1e-12)
    assert spur.grav_torque[0] == pytest.approx(0.0, abs=1e-12)


def test_gravity_compensation_along_slope():
    params = make_params()
    odm = Odometry(theta=0.3)
    spur = SpurUserParams(dir=0.3, tilt=0.2)
    tilt = gravity_compensation(odm, spur, params)
    assert tilt == pytest.approx(0.2)
    assert spur.grav_torque[0] > 0
    assert spur.grav_torque[0] == pytest.approx(spur.grav_torque[1])
    odm.theta = 0.3 + math.pi
    assert gravity_compensation(odm, spur, params) == pytest.approx(-0.2)
    assert spur.grav_torque[0] < 0


def test_simulate_control_free_wheels_stand_still():
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_vel_smooth[0] = 3.0
    spur.wheel_vel_smooth[1] = 3.0
    odm = Odometry()
    odm.wvel[0] = 1.0
    simulate_control(odm, spur, params, now=1.0)
    assert odm.wvel[:2] == [0.0, 0.0]
    assert odm.wang[:2] == [0.0, 0.0]
    assert (odm.x, odm.y, odm.theta) == (0.0, 0.0, 0.0)


def test_motor_control_velocity_limited_by_acceleration():
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_mode[0] = MotorControl.VEL
    spur.wvelref[0] = 10.0
    spur.wheel_accel[0] = 1.0
    odm = Odometry()
    previous = 0.0
    for _ in range(50):
        motor_control(spur, odm, params)
        step = spur.wheel_vel_smooth[0] - previous
        assert 0 < step <= spur.wheel_accel[0] * CYCLE + 1e-12
        previous = spur.wheel_vel_smooth[0]
    assert spur.wheel_vel_smooth[1] == 0.0


@pytest.mark.parametrize("joint", [0, 1])
def test_motor_control_angle_reaches_target(joint):
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_mode[0] = MotorControl.VEL
    spur.wheel_mode[1] = MotorControl.VEL
    spur.wheel_mode[joint] = MotorControl.ANGLE
    spur.wheel_vel[joint] = 20.0
    spur.wheel_accel[joint] = 30.0
    spur.wheel_angle[joint] = 7.0
    odm = Odometry()
    for step in range(300):
        motor_control(spur, odm, params)
        simulate_control(odm, spur, params, now=step * CYCLE)
    assert odm.wang[joint] == pytest.approx(7.0, abs=0.05)


def test_motor_control_angle_vel_switches_to_velocity():
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_mode[0] = MotorControl.ANGLE_VEL
    spur.wheel_mode[1] = MotorControl.VEL
    spur.wheel_vel[0] = 20.0
    spur.wheel_accel[0] = 30.0
    spur.wheel_angle[0] = 8.0
    spur.wheel_vel_end[0] = 3.0
    odm = Odometry()
    for step in range(300):
        motor_control(spur, odm, params)
        simulate_control(odm, spur, params, now=step * CYCLE)
    assert spur.wheel_mode[0] is MotorControl.VEL
    assert spur.wvelref[0] == 3.0
    assert odm.wvel[0] == pytest.approx(3.0)
    assert odm.wang[0] > 8.0


def test_motor_control_ignores_vehicle_and_free_modes():
    params = make_params()
    spur = SpurUserParams()
    spur.wheel_mode[0] = MotorControl.VEHICLE
    spur.wheel_mode[1] = MotorControl.FREE
    spur.wvelref[0] = 5.0
    spur.wvelref[1] = 5.0
    spur.wheel_accel[0] = 100.0
    spur.wheel_accel[1] = 100.0
    motor_control(spur, Odometry(), params)
    assert spur.wheel_vel_smooth[:2] == [0.0, 0.0]