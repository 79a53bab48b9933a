#!/usr/bin/env python
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install

VERSION = "0.1.0"

URL = "https://github.com/tadoasync/tado-async"

with open("README.md", "r") as fh:
    LONG_DESCRIPTION = fh.read()


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("CIRCLE_TAG")
        if tag != VERSION:
            info = f"The git tag: '{tag}' does not match the package ver: '{VERSION}'"
            sys.exit(info)


setup(
    name="tado-async",
    description="An async client for connecting to the tado° cloud API.",
    keywords=["tado", "smart thermostat", "oauth2"],
    url=URL,
    download_url=f"{URL}/archive/{VERSION}.tar.gz",
    install_requires=[
        "aiofiles>=23.2",
        "aiohttp>=3.9,<3.14",
        "click>=8.1",
        "cryptography>=42.0",
        "pydantic>=2.5",
    ],
    extras_require={
        "test": [
            "aioresponses>=0.7.6",
            "freezegun>=1.4",
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "yarl>=1.9",
        ],
    },
    entry_points={
        "console_scripts": ["tado-client=tado_cli.client:main"],
    },
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests", "docs"]),
    version=VERSION,
    license="Apache 2",
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.12",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
