# pylint: disable=missing-module-docstring
# ruff: noqa

from pathlib import Path

from setuptools import find_packages, setup


def read_long_description() -> str:
    """Return README contents for PyPI description."""
    readme_path = Path(__file__).with_name("README.md")
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else "Kache Analysis Engine"


setup(
    name="kache-engine",
    version="0.1.0",
    description="Affiliate trend, competitor and marketing strategy analysis",
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    python_requires=">=3.11",
    packages=find_packages(include=["kache_engine", "kache_engine.*", "analysis_engine", "analysis_engine.*"]),
    include_package_data=True,
    install_requires=[
        "pandas>=2.0",
        "numpy>=1.24",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "kache-analyze = kache_engine.cli_entrypoints:analyze",
            "kache-state = kache_engine.cli_entrypoints:state",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
