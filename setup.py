"""Setup script for Lesson Keeper."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="lesson-keeper",
    version="1.0.0",
    description="Lesson tracking desktop app with safe database backup and restore",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Lesson Keeper Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app"],
    install_requires=[
        "PyQt5>=5.15.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "lesson-keeper=app:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
