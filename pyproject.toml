[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "popcorn-cli"
version = "0.1.0"
description = "Terminal client for submitting GPU kernel solutions to Popcorn leaderboards"
requires-python = ">=3.10"
keywords = ["gpu", "leaderboard", "kernels", "submission", "cli", "tui", "curses"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Console :: Curses",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]
dependencies = [
    "requests>=2.28",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
popcorn = "popcorn_cli.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["popcorn_cli"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
