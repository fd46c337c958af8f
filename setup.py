#!/usr/bin/env python3

from setuptools import find_packages, setup


def get_version():
    with open("mqtt2db/__init__.py", "r", encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


setup(
    name="mqtt2db",
    version=get_version(),
    description="Subscribes to MQTT topics and writes mapped data points to InfluxDB",
    license="MIT",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "paho-mqtt>=2.0",
        "httpx>=0.24",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "mqtt2db=mqtt2db.cli.main:main",
        ],
    },
)
