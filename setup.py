#!/usr/bin/env python3

import os
import re

from setuptools import setup


def read(fname):
    with open(os.path.join(os.path.dirname(__file__), fname)) as f:
        return f.read()


def version():
    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", read("stripy/__init__.py"), re.M)
    if not match:
        raise RuntimeError("failed to parse version")
    return match.group(1)


install_requires = [
    "httpx >= 0.24.0",
    "iso8601 >= 1.0.2",
    "multidict >= 6.0.2",
]

extras_require = {
    "test": [
        "pytest >= 7.0.0",
        "pytest-asyncio >= 0.21.0",
    ],
}

classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Framework :: AsyncIO",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Office/Business :: Financial",
]

setup(
    name = "stripy",
    version = version(),
    description = "Asynchronous client for the Stripe payment-processing API.",
    long_description = read("README.rst"),
    license = "Mozilla Public License 2.0",
    classifiers = classifiers,
    packages = ["stripy"],
    python_requires = ">= 3.11",
    install_requires = install_requires,
    extras_require = extras_require,
    keywords = "stripe payments api client asyncio",
)
