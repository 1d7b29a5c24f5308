#!/usr/bin/env python3
"""
Setup script for tetrapy.
"""

from setuptools import setup, find_packages

setup(
    name="tetrapy",
    version="0.1.0",
    description="Python driver for TETRA radios via the PEI AT command interface",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Luke",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pyserial>=3.5",
        "pyserial-asyncio>=0.6",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tetra-pei=tetrapy.cli:main",
        ],
    },
    keywords=["tetra", "pei", "sds", "radio", "at-commands", "ham-radio", "svxlink"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications :: Ham Radio",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Operating System :: POSIX :: Linux",
        "License :: OSI Approved :: MIT License",
    ],
)
