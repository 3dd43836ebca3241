# ypspur

Building blocks for controlling a two-wheeled mobile robot, in plain
Python with no third-party dependencies.

## Modules

- `ypspur.carte2d`: a tree of 2-D coordinate systems. A
  `CoordinateSystem()` with no parent is a root at the origin;
  `add_child(x, y, theta)` places a new frame in it, `set` moves a frame
  and `delete` detaches a frame with everything below it.
  `recursive_trans(target, now, x, y, theta)` expresses a pose given in
  frame `now` in frame `target`; `trans`, `inv_trans`, `trace_trans` and
  `turn_base` are the single steps. All of them return a new
  `(x, y, theta)` tuple.
- `ypspur.communication`: the 6-bit printable encoding used on a serial
  line. `encode(data, buf_max=None)` and `decode(data, buf_max=None)` work
  on bytes; `decode` raises `DecodeError` (a `ValueError`, with an
  `errors` count) when characters below `0x40` are found, and both raise
  `ValueError` when the output reaches `buf_max`.
- `ypspur.adinput`: `ADInput` keeps the latest 12-bit value of 16 A/D
  channels; `process(buf)` stores big-endian 16-bit words whose top four
  bits name the channel, `get(num)` reads a channel (0 for an unknown
  one). `admask_command(mask)` and `diomask_command(enable)` build the
  `ADMASK` and `GETIO` command lines and return the number of inputs they
  enable; `mask_reply_status(data)` classifies a reply as a `MaskReply`
  (`PENDING`, `ACCEPTED`, `FINISHED`).
- `ypspur.formula`: a small expression language compiled to reverse
  Polish form. `parse(expr, variables)` returns a `Formula` with
  `evaluate()`, `optimize()` (folds operations on constants) and
  `format()`. Names in the expression refer to keys of the `variables`
  mapping, and `=` writes back into it. A bad expression raises
  `FormulaError`. Operators: `= || && == != < <= > >= + - * / !`;
  functions: `pi e log10 ln sin cos tan sinh cosh tanh asin acos atan
  atan2 exp sqrt abs sign round mod pow`.
- `ypspur.state`: controller state. `Parameters` holds per-motor values
  (names are case-insensitive, unset values read as 0) with `set`, `p`,
  `isset`, `motor_enable` and `enabled_motors()`. `Odometry` holds pose,
  speeds and wheel states; `SpurUserParams` holds the commands and
  references, with `reset()` and `update_wheel_modes(params)`. `RunMode`
  and `MotorControl` name the run and motor modes.
- `ypspur.motion`: trajectory followers `line_follow`, `circle_follow`,
  `spin`, `orient` and `stop_line` (returning a `StopLineState`), the
  path `regulator`, `dist_pos`, `trans_q` (wraps an angle into
  [-pi, pi]) and the servo laws `timeoptimal_servo` and
  `timeoptimal_servo2`.
- `ypspur.vehicle`: wheel-level control (`motor_control`, `robot_speed`,
  `wheel_vel`, `wheel_angle`, `wheel_torque`, `update_ref_speed`),
  speed smoothing (`robot_speed_smooth`, returning the `SpeedLimit` flags
  that clipped the speed), `gravity_compensation`, and
  `simulate_control`, which advances the odometry one control cycle as if
  the wheels followed their references.

## Installation

```
pip install .
```

## Examples

Evaluating a formula with a variable:

```python
from ypspur.formula import parse

variables = {"TEST": 3.0}
f = parse("(TEST+1)*2-1", variables)
print(f.evaluate())          # 7.0
print(f.optimize().format())
```

Moving a pose between coordinate frames:

```python
from ypspur.carte2d import CoordinateSystem, recursive_trans

bs = CoordinateSystem()
gl = bs.add_child(1.0, 1.0, 0.0)
print(recursive_trans(gl, bs, 2.0, 2.0, 2.0))   # (1.0, 1.0, 2.0)
```

## Commands

```
ypspur-cartesian2d-test
ypspur-formula-test "1+2*3"
```

`ypspur-cartesian2d-test` prints a few sample transforms between frames
of a small tree. `ypspur-formula-test` parses a formula (with one
variable, `TEST`), shows its reverse Polish and optimized forms and
prints the result and the value of `TEST`; it prints `Invalid formula`
when the expression cannot be parsed.

## What this package does not do

It has no running controller: there is no control loop thread, no
command server for clients, no driver that talks to a motor board over a
serial port, and no loader for robot parameter files. The modules give
the pieces such a controller is built from; `Parameters` must be filled
in by the caller.

## Running the tests

```
pip install .[test]
pytest
```