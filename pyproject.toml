[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trailerfin"
version = "1.1.0"
description = "Keep trailer .strm files for a media library fresh by scraping direct IMDb video links."
requires-python = ">=3.10"
keywords = ["trailers", "strm", "media", "jellyfin", "imdb", "scraper"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "httpx",
    "beautifulsoup4",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
trailerfin = "trailerfin.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["trailerfin"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
