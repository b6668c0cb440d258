[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "swiftsockets"
version = "0.1.0"
description = "HTTP response writing, WebSocket pub/sub topic trees, an event loop and static file serving in pure Python"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "http",
    "websocket",
    "pubsub",
    "event-loop",
    "backpressure",
    "static-files",
    "gzip",
    "getopt",
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
swiftsockets-serve = "swiftsockets.static_server:main"

[tool.hatch.build.targets.wheel]
packages = ["swiftsockets"]

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
