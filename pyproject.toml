[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "saveany"
version = "0.1.0"
description = "Parse web posts into downloadable resources and save them to storage through a concurrent, cancellable task queue."
requires-python = ">=3.11"
keywords = ["downloader", "storage", "task-queue", "parser", "twitter", "kemono"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
]
dependencies = [
    "requests>=2.28",
    "semver>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["saveany"]

[tool.hatch.build.targets.sdist]
include = ["saveany", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
ignore_missing_imports = true
