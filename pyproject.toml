[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "s2jail"
version = "0.1.0"
description = "Building blocks for supervising untrusted programs under time, memory and output limits"
requires-python = ">=3.12"
dependencies = []
keywords = ["sandbox", "jail", "judge", "limits", "namespaces", "rlimit"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["s2jail"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
