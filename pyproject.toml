[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cklib"
version = "0.1.0"
description = "Mining pool support library: hashing, address decoding, difficulty maths, locks and TCP helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["mining", "stratum", "sha256", "cashaddr", "difficulty", "locks"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
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
packages = ["cklib"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
