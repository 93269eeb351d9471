[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xtraderz"
version = "0.1.0"
description = "An in-memory limit order matching engine with an HTTP API, a WebSocket execution feed and market data"
requires-python = ">=3.10"
dependencies = [
    "aiohttp>=3.9",
]
keywords = [
    "order-book",
    "matching-engine",
    "exchange",
    "trading",
    "market-data",
    "candlestick",
    "websocket",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
xtraderz-server = "xtraderz.app:main"
xtraderz-client = "xtraderz.simple_client:main"
xtraderz-simulation = "xtraderz.simulation:main"

[tool.hatch.build.targets.wheel]
packages = ["xtraderz"]

[tool.hatch.build.targets.sdist]
include = [
    "xtraderz",
    "tests",
    "README.md",
]

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
warn_redundant_casts = true
check_untyped_defs = true
