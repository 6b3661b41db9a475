#!/usr/bin/env python3
"""
Cypherpunk Remailer Client - Setup Script

For development installation:
    pip install -e .[dev]
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read version from package
version = "0.1.0"

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="cypherpunk-cli",
    version=version,
    description="Chain resolution and onion encryption for Cypherpunk (Type-I) remailers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Cypherpunk CLI Project",
    license="Open Source",

    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",

    install_requires=[
        "cryptography>=3.4",
        "toml>=0.10",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=3.0",
        ],
    },

    entry_points={
        "console_scripts": [
            "cpunk=cpunk.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Communications :: Email",
        "Topic :: Security :: Cryptography",
    ],

    keywords="remailer cypherpunk anonymity pgp onion privacy",
)
