[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "solmev"
version = "0.2.0"
description = "Detect sandwich and front-running MEV attacks around Solana transactions via Jito bundle analysis"
requires-python = ">=3.11"
dependencies = [
    "httpx",
]
keywords = ["solana", "mev", "jito", "sandwich", "frontrun", "dex", "blockchain"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
solmev = "solmev.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["solmev"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
