[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "linuxutils"
version = "0.0.1"
description = "Small Linux administration tools: blockdev, ctrlaltdel, dmesg, fsfreeze and last"
requires-python = ">=3.10"
dependencies = [
    "python-dateutil",
]
keywords = ["cli", "sysadmin", "dmesg", "wtmp", "blockdev", "fsfreeze", "last"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
blockdev = "linuxutils.blockdev:main"
ctrlaltdel = "linuxutils.ctrlaltdel:main"
dmesg = "linuxutils.dmesg:main"
fsfreeze = "linuxutils.fsfreeze:main"
last = "linuxutils.last:main"

[tool.hatch.build.targets.wheel]
packages = ["linuxutils"]

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
