[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatkit"
version = "0.1.0"
description = "Domain models, validation, Ed25519 session tokens, ASGI middleware and notification fan-out for a workspace chat service"
requires-python = ">=3.10"
keywords = ["chat", "jwt", "ed25519", "notifications", "server-sent-events", "asgi"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Framework :: AsyncIO",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "pyjwt",
    "cryptography",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["chatkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
