[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "easeprobe"
version = "1.7.0"
description = "Core settings, identity and metric helpers for a lightweight health-probing service"
requires-python = ">=3.10"
keywords = ["monitoring", "probe", "health-check", "metrics", "prometheus", "retry", "tls"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "cryptography>=41.0",
]

[tool.hatch.build.targets.wheel]
packages = ["easeprobe"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
