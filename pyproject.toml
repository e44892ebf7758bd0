[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "roxapi"
version = "0.1.0"
description = "A GitHub client for repository, pull request and CI/CD APIs, with alias and disk cache layers and a concurrent batch runner."
requires-python = ">=3.10"
dependencies = [
    "requests",
    "filelock",
    "wcwidth",
]
keywords = ["git", "github", "pull-request", "ci", "api-client", "cache", "batch"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["roxapi"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
