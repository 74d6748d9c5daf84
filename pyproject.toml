[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webproxy"
version = "0.1.0"
description = "A concurrent HTTP proxy with CONNECT tunnelling and synchronised request logging"
requires-python = ">=3.10"
keywords = ["proxy", "http", "https", "connect", "tunnel", "concurrency"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
webproxy = "webproxy.server:main"

[tool.hatch.build.targets.wheel]
packages = ["webproxy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
