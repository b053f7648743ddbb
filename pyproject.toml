[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "m3umerger"
version = "0.1.0"
description = "Merge several M3U playlists into one deduplicated, filtered and sorted playlist."
requires-python = ">=3.10"
keywords = ["m3u", "iptv", "playlist", "merge", "streaming"]
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
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["m3umerger"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
