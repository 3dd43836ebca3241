[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ypspur"
version = "1.22.5"
description = "Mobile robot motion control building blocks: coordinate frames, serial data coding, formula evaluation and trajectory control"
requires-python = ">=3.10"
dependencies = []
keywords = ["robotics", "mobile robot", "odometry", "trajectory control", "coordinate systems", "formula"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ypspur-cartesian2d-test = "ypspur.carte2d:main"
ypspur-formula-test = "ypspur.formula_cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ypspur"]

[tool.pytest.ini_options]
addopts = "-ra"
