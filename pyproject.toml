[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evnet"
version = "0.1.0"
description = "Building blocks for an event-driven networking engine: pollers, sockets, task queues and load balancers"
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "event-loop", "epoll", "kqueue", "sockets", "reactor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: BSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["evnet"]

[tool.pytest.ini_options]
addopts = "-ra"
