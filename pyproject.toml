[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ext2sim"
version = "0.1.0"
description = "A small multi-user, multi-level Unix-like filesystem stored in a single disk image file"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "ext2", "inode", "bitmap", "simulation", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ext2sim"]

[tool.pytest.ini_options]
addopts = "-ra"
