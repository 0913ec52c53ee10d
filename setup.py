# File: minionpipe/setup.py
# Location: minionpipe/minionpipe/setup.py
"""
Setup script for minionpipe.

This file configures how the package is built, installed, and what
dependencies are required.
"""

import os
from setuptools import setup, find_packages

# Load version from version.py without importing the module
version = {}
with open(os.path.join("minionpipe", "version.py")) as f:
    exec(f.read(), version)

# Read the README for the long description
this_dir = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_dir, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="minionpipe",
    version=version["__version__"],
    description="Staged ONT long-read pipeline from raw reads to small and structural variants.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pandas",
        "psutil",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["minionpipe=minionpipe.cli:main"]},
    include_package_data=True,
    package_data={"minionpipe": ["config.json"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
)
