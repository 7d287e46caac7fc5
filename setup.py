"""
vendor-memory build configuration.

Usage:
    pip install -e .            # Library only
    pip install -e .[test]      # With the pytest toolchain
"""

from setuptools import setup, find_packages

setup(
    name="vendor-memory",
    version="0.1.0",
    description="Conversational memory and proactive engagement engine for a shopping assistant",
    packages=find_packages(include=["vendor_memory", "vendor_memory.*"]),
    package_data={
        # Lexicon, response bank and follow-up rule table ship as data
        "vendor_memory": ["data/*.json"],
    },
    include_package_data=True,
    install_requires=[
        "loguru>=0.7",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
    python_requires=">=3.11",
)
