[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "authrules"
version = "0.1.0"
description = "Composable authorization rules for token operations, with payload validation, MessagePack rule sets and a revisioned storage layout"
requires-python = ">=3.10"
keywords = ["rules", "authorization", "merkle", "rule-set", "validation", "msgpack", "pda"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pycryptodome",
    "msgpack",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["authrules"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
