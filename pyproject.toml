[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "quecmodem"
version = "1.1.0"
description = "Building blocks for GSM modem channels: ring and mix buffers, serial port locking, an SMS store and USB modem port listing"
requires-python = ">=3.10"
dependencies = []
keywords = ["gsm", "modem", "sms", "quectel", "ringbuffer", "usb", "tty", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Telephony",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
quecmodem-discovery = "quecmodem.usbscan:main"

[tool.hatch.build.targets.wheel]
packages = ["quecmodem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
