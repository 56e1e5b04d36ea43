#!/usr/bin/env python
import re
from pathlib import Path

from setuptools import setup

here = Path(__file__).parent
version = re.search(
    r'__version__ = "([^"]+)"',
    (here / "source_stage" / "__version__.py").read_text(),
).group(1)

deps = ['filelock', 'pyyaml', 'libarchive-c']

setup(
    name="source-stage",
    version=version,
    url="https://github.com/source-stage/source-stage",
    license="BSD-3-Clause",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires='>=3.8',
    description="unpack fetched sources and apply their patches for package builds",
    long_description=(here / "README.rst").read_text(),
    packages=['source_stage', 'source_stage.os_utils', 'source_stage.unpack'],
    install_requires=deps,
    extras_require={'test': ['pytest', 'pytest-mock']},
    zip_safe=False,
)
