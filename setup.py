"""
Setup script for Movilo package.

Movilo: parsers for lab-exported marker-trajectory and force-plate tables and
a frame-accurate playback timeline for motion capture viewers.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="movilo",
    version="0.1.0",
    author="Movilo Developers",
    description="Motion capture file parsing and playback timeline",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("scripts", "scripts.*")),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "pyyaml>=5.4",
        "tqdm>=4.60.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
        ],
    },
)
