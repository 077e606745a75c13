#!/usr/bin/env python3
"""Setup script for ThoughtCanvas."""

from setuptools import setup, find_packages


setup(
    name="thoughtcanvas",
    version="0.3.0",
    description="An infinite pan/zoom canvas for AI-assisted mind maps",
    author="ThoughtCanvas Project",
    license="MIT",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.11",
    install_requires=[
        "PyGObject>=3.50.0",
        "pycairo>=1.25.0",
        "google-generativeai>=0.8.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "thoughtcanvas=thoughtcanvas.launcher:main",
        ],
        "gui_scripts": [
            "thoughtcanvas-gui=thoughtcanvas.launcher:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: X11 Applications :: GTK",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business",
    ],
)
