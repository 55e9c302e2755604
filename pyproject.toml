[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pulsemonitor"
version = "0.1.0"
description = "Receive pulse-oximeter sensor samples over TCP, detect heart beats, estimate BPM and SpO2, and export the recorded series"
requires-python = ">=3.10"
dependencies = []
keywords = ["pulse oximeter", "heart rate", "bpm", "spo2", "photoplethysmography", "sensor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Healthcare Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pulsemonitor = "pulsemonitor.app:main"

[tool.hatch.build.targets.wheel]
packages = ["pulsemonitor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
