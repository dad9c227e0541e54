[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "boardfiles"
version = "0.1.0"
description = "Readers for printed circuit board layout and boardview file formats"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "pcb",
    "boardview",
    "brd",
    "bdv",
    "bvr",
    "fz",
    "cad",
    "cst",
    "asc",
    "altium",
    "layout",
    "parser",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Electronic Design Automation (EDA)",
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["boardfiles"]

[tool.hatch.build.targets.sdist]
include = ["boardfiles", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
