[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "autofocus"
version = "0.1.0"
description = "Sweep-based autofocus control for a camera, stage and focus actuator rig"
requires-python = ">=3.10"
dependencies = []
keywords = ["autofocus", "camera", "v4l2", "actuator", "focus sweep", "i2c", "uart"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
autofocus = "autofocus.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["autofocus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
