[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "farmrelay"
version = "0.1.0"
description = "Relay gateway logic for small sensor networks: packet formats, routing, peers, serial messages and time handling"
requires-python = ">=3.10"
dependencies = []
keywords = ["sensor", "gateway", "relay", "esp-now", "mqtt", "serial", "telemetry", "farm"]
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
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
farmrelay-checkconfig = "farmrelay.checkconfig:main"

[tool.hatch.build.targets.wheel]
packages = ["farmrelay"]

[tool.pytest.ini_options]
addopts = "-ra"
