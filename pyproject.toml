[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "attestation_agent"
version = "0.1.0"
description = "Key provider message handling and image layer key wrapping and unwrapping for confidential containers"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["attestation", "confidential-computing", "key-provider", "aes-gcm", "aes-ctr", "sev"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["attestation_agent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
