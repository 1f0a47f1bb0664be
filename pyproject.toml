[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "winencode"
version = "0.1.0"
description = "Pure-Python encoders for Windows GUIDs, reparse points and TraceLogging ETW events"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "guid",
    "uuid",
    "etw",
    "tracelogging",
    "reparse-point",
    "symlink",
    "logging",
    "windows",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["winencode"]

[tool.hatch.build.targets.sdist]
include = ["winencode", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
