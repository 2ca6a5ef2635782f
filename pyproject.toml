[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chirpy"
version = "0.1.0"
description = "A small HTTP API for short messages (chirps), with user accounts, bcrypt password hashing and JWT helpers."
requires-python = ">=3.10"
keywords = ["http", "api", "microblog", "flask", "sqlite", "jwt", "bcrypt"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "bcrypt",
    "pyjwt",
    "flask",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chirpy = "chirpy.server:main"

[tool.hatch.build.targets.wheel]
packages = ["chirpy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
