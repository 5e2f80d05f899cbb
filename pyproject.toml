[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsukimoon"
version = "0.1.0"
description = "A small desktop widget showing the Moon's phase, illumination, moonrise and moonset for a chosen city"
requires-python = ">=3.10"
keywords = ["moon", "lunar phase", "moonrise", "moonset", "astronomy", "pygame"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
]
dependencies = [
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tsuki = "tsukimoon.app:main"

[tool.hatch.build.targets.wheel]
packages = ["tsukimoon"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
