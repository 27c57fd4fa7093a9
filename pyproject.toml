[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mtproto-handshake"
version = "0.1.0"
description = "Client side of the first steps of the MTProto authorization-key exchange: TL serialization, pq factorization, transport framing."
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["mtproto", "handshake", "tl", "pollard-brent", "rsa"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mtproto-handshake = "mtproto_handshake.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["mtproto_handshake"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
