[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rbacmatch"
version = "0.1.0"
description = "Matching operators and helpers for access-control policy evaluation: RESTful key matching, regex, IP, glob and time matching, plus small collection utilities and an LRU cache."
requires-python = ">=3.10"
dependencies = []
keywords = ["rbac", "abac", "access-control", "authorization", "policy", "keymatch", "matcher", "glob"]
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
    "Topic :: Security",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rbacmatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
