"""Setup script for screenmetrics."""

from setuptools import find_packages, setup

setup(
    name="screenmetrics",
    version="0.1.0",
    description="Client-side screen load time collection agent with durable buffering and batch export",
    author="screenmetrics Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "simpy>=4.0",
        "numpy>=1.24",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "click>=8.1",
        "requests>=2.28",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "screenmetrics=screenmetrics.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
