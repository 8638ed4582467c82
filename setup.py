"""
Setup script for the CGR prospector.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="cgr-prospector",
    version="0.1.0",
    packages=find_packages(include=["src", "src.*", "prospect_service", "prospect_service.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "httpx",
        "redis>=5",
        "pymongo",
        "json-repair",
        "langchain-core",
        "langchain-openai",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
        ],
    },
)
