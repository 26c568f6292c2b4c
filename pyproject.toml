[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eventhub"
version = "2.0.0"
description = "Lightweight in-process event manager and dispatcher with priorities, wildcard groups and typed listeners"
requires-python = ">=3.10"
dependencies = []
keywords = ["event", "dispatcher", "listener", "pubsub", "observer"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["eventhub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
