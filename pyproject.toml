[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyunix"
version = "0.1.0"
description = "A small teaching Unix in plain Python: user tools, a shell-command parser, paged-memory and virtio disk models, and a file-system image builder"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "unix",
    "operating-system",
    "shell",
    "grep",
    "page-table",
    "virtio",
    "mkfs",
    "teaching",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyunix-cat = "tinyunix.cat:main"
tinyunix-echo = "tinyunix.echo:main"
tinyunix-grep = "tinyunix.grep:main"
tinyunix-wc = "tinyunix.wc:main"
tinyunix-ls = "tinyunix.ls:main"
tinyunix-ln = "tinyunix.fileops:ln_main"
tinyunix-rm = "tinyunix.fileops:rm_main"
tinyunix-mkdir = "tinyunix.fileops:mkdir_main"
tinyunix-mkfs = "tinyunix.mkfs:main"
tinyunix-matrix = "tinyunix.matrix:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyunix"]

[tool.hatch.build.targets.sdist]
include = ["tinyunix", "tests", "README.md"]

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
