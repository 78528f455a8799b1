"""
Setup script for pal-engine.

PAL is a prerequisite-aware adaptive learning engine. It serves three roles:

1. Recommendation Core - ZPD-biased next-skill selection over a skill graph
2. Ability Tracking - hierarchical ability updates from observed answers
3. Ranked Lists - pluggable scoring strategies (simple, IRT, Elo, BKT, Modified Elo)

The 'pal' command drives the engine against CSV datasets.
"""

from setuptools import find_packages, setup

setup(
    name="pal-engine",
    version="0.1.0",
    description="Prerequisite-aware adaptive learning engine",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pal", "pal.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Graph analysis
        "networkx>=3.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pal=pal.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="adaptive-learning zpd knowledge-tracing elo irt education",
)
