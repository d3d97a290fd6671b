[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "respkv"
version = "0.1.0"
description = "Building blocks for a RESP key-value server: cluster hash slots, append-only persistence, blocking lists and command front-ends"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "resp",
    "key-value",
    "database",
    "cluster",
    "hash-slot",
    "append-only-file",
    "persistence",
    "hyperloglog",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["respkv"]

[tool.hatch.build.targets.sdist]
include = ["respkv", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
