import math

import pytest

from ypspur.motion import (
    StopLineState,
    circle_follow,
    dist_pos,
    line_follow,
    orient,
    regulator,
    spin,
    stop_line,
    timeoptimal_servo,
    timeoptimal_servo2,
    trans_q,
)
from ypspur.state import Odometry, Parameters, SpurUserParams


@pytest.fixture
def params():
    prm = Parameters()
    prm.set("CONTROL_CYCLE", 0.01)
    prm.set("L_C1", 0.01)
    prm.set("L_DIST", 0.5)
    prm.set("L_K1", 100.0)
    prm.set("L_K2", 60.0)
    prm.set("L_K3", 20.0)
    return prm


@pytest.mark.parametrize("theta", [0.0, 1.0, -2.5, 3 * math.pi, -7.0, 20.0])
def test_trans_q_range_and_equivalence(theta):
    wrapped = trans_q(theta)
    assert -math.pi <= wrapped <= math.pi
    assert math.isclose(math.cos(wrapped), math.cos(theta), abs_tol=1e-9)
    assert math.isclose(math.sin(wrapped), math.sin(theta), abs_tol=1e-9)


def test_trans_q_keeps_pi():
    assert trans_q(math.pi) == math.pi
    assert math.isclose(trans_q(1.5 * math.pi), -0.5 * math.pi)


def test_servo_zero_error():
    assert timeoptimal_servo(0.0, 1.0, 0.0, 1.0, 0.01) == 0.0


def test_servo_saturates_at_max_velocity():
    assert timeoptimal_servo(10.0, 1.0, 0.0, 1.0, 0.01) == -1.0
    assert timeoptimal_servo(-10.0, 1.0, 0.0, 1.0, 0.01) == 1.0


def test_servo_clips_overshoot():
    assert math.isclose(timeoptimal_servo(0.001, 1.0, 0.0, 100.0, 0.01), -0.001 / 0.01)


@pytest.mark.parametrize("err", [0.002, 0.3, 5.0])
def test_servo_antisymmetric(err):
    assert timeoptimal_servo(-err, 2.0, 0.0, 3.0, 0.01) == pytest.approx(
        -timeoptimal_servo(err, 2.0, 0.0, 3.0, 0.01)
    )


def test_servo2_limited_by_max_velocity():
    assert timeoptimal_servo2(10.0, 1.0, 0.0, 1.0, 0.5, 0.01) == -1.0
    assert timeoptimal_servo2(-10.0, 1.0, 0.0, 1.0, 0.5, 0.01) == 1.0


def test_servo2_allows_end_velocity_near_target():
    assert timeoptimal_servo2(0.1, 1.0, 0.0, 1.0, 2.0, 0.01) == -2.0


def test_regulator_never_reverses(params):
    spur = SpurUserParams()
    spur.wref = 1000.0
    d = regulator(0.3, 0.0, 1000.0, 1.0, 1.0, spur, params)
    assert d == 0.3
    assert spur.vref == 0.0


def test_line_follow_on_line(params):
    spur = SpurUserParams(v=0.5, w=1.0)
    odm = Odometry()
    d = line_follow(odm, spur, params)
    assert d == 0.0
    assert spur.vref == spur.v


def test_line_follow_reports_offset(params):
    spur = SpurUserParams(v=0.5, w=1.0, control_dt=0.01)
    odm = Odometry(y=1.0)
    assert line_follow(odm, spur, params) == pytest.approx(1.0)
    assert spur.wref < 0


def test_circle_follow_on_circle(params):
    spur = SpurUserParams(radius=1.0, v=0.5, w=1.0)
    odm = Odometry(x=1.0, y=0.0, theta=math.pi / 2)
    assert circle_follow(odm, spur, params) == pytest.approx(0.0, abs=1e-12)


def test_spin_turns_towards_target(params):
    spur = SpurUserParams(theta=math.pi / 2, w=1.0, dw=1.0, v=0.4)
    odm = Odometry()
    remaining = spin(odm, spur, params)
    assert remaining == pytest.approx(math.pi / 2)
    assert spur.wref > 0
    assert spur.vref == 0.0


def test_orient_keeps_velocity(params):
    spur = SpurUserParams(theta=-math.pi / 2, w=1.0, dw=1.0, v=0.4)
    odm = Odometry()
    orient(odm, spur, params)
    assert spur.wref < 0
    assert spur.vref == 0.4


def test_dist_pos():
    assert dist_pos(Odometry(x=3.0, y=4.0), SpurUserParams()) == 5.0


@pytest.mark.parametrize(
    "x, expected",
    [(0.0, StopLineState.BEFORE), (1.0, StopLineState.ON), (2.0, StopLineState.OVER)],
)
def test_stop_line_states(params, x, expected):
    spur = SpurUserParams(x=1.0, y=0.0, theta=0.0, v=1.0, dv=1.0, w=1.0)
    odm = Odometry(x=x)
    assert stop_line(odm, spur, params) is expected


def test_stop_line_drives_forward_before_line(params):
    spur = SpurUserParams(x=1.0, y=0.0, theta=0.0, v=1.0, dv=1.0, w=1.0)
    stop_line(Odometry(), spur, params)
    assert spur.vref > 0