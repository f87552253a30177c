[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rlsindex"
version = "0.1.0"
description = "In-memory index of compiler save-analysis data: definitions, references, symbol search and documentation links"
requires-python = ">=3.10"
dependencies = []
keywords = ["save-analysis", "symbols", "index", "code-navigation", "symbol-search"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rlsindex-print-crate-id = "rlsindex.print_crate_id:main"

[tool.hatch.build.targets.wheel]
packages = ["rlsindex"]

[tool.pytest.ini_options]
addopts = "-ra"
