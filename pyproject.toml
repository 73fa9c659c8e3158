[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memsched"
version = "0.1.0"
description = "Memory-aware scheduling of computation graphs: heuristics, local improvement and an exact solver for peak memory"
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = [
    "scheduling",
    "dag",
    "topological-sort",
    "peak-memory",
    "computation-graph",
    "heuristics",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
memsched = "memsched.cli:main"
memsched-dp = "memsched.dp:main"
memsched-gen = "memsched.generators:main"

[tool.hatch.build.targets.wheel]
packages = ["memsched"]

[tool.hatch.build.targets.sdist]
include = ["memsched", "tests", "pyproject.toml"]

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
