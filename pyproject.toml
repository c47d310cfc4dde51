[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "embsvc"
version = "0.1.0"
description = "Service interfaces for network-connected embedded devices: IPv4 settings, ping, HTTP client and server, a routed HTTP layer with sessions, MQTT, event buses, OTA updates and blocking/asyncio adapters"
requires-python = ">=3.10"
dependencies = []
keywords = ["embedded", "services", "http", "mqtt", "ota", "ipv4", "ping", "event-bus", "asyncio"]
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
    "Framework :: AsyncIO",
    "Topic :: Software Development :: Embedded Systems",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["embsvc"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
