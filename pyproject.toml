[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vcmiextract"
version = "1.0.0"
description = "Extract game archives (LOD, SND, VID, PAK, DEF) and convert their PCX, P32, DEF and DDS images to PNG"
requires-python = ">=3.10"
dependencies = []
keywords = ["archive", "extract", "lod", "snd", "vid", "pak", "def", "pcx", "dds", "png"]
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
    "Topic :: System :: Archiving",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vcmiextract = "vcmiextract.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vcmiextract"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
