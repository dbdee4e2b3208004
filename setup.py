"""
Setup script for learngen.

learngen turns an unreliable text-generation API into validated learning
artifacts. It serves two roles:

1. Library - Template Store + Generation Orchestrator for application layers
2. Developer CLI - Inspect templates, generate artifacts, preview review dates

The 'learngen' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="learngen",
    version="1.0.0",
    description="Template-driven, guardrailed generation of mnemonics, stories, flashcards and coaching",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["learngen", "learngen.*"]),
    py_modules=["config"],
    package_data={"learngen.templates": ["definitions/*/*.json"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "jsonschema>=4.18.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "learngen=learngen.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition flashcards mnemonics llm json-schema",
)
