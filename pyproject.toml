[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tlogtiles"
version = "0.1.0"
description = "Tools for tlog-tiles transparency logs: tile layout, bundles, Merkle hashing, publication awaiting and mirroring."
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = [
    "transparency-log",
    "tlog-tiles",
    "merkle-tree",
    "checkpoint",
    "mirror",
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
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "respx",
]

[project.scripts]
tlogtiles-mirror-posix = "tlogtiles.mirror_posix:main"

[tool.hatch.build.targets.wheel]
packages = ["tlogtiles"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
