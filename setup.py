"""
setup.py

Packaging metadata and CLI entry point for memory-keeper-ai.

Version: 0.1.0: Story enhancement pipeline (Groq, Hugging Face, Replicate,
Stability, StreamElements, ElevenLabs, AssemblyAI) with a click CLI.
"""
from setuptools import setup, find_packages

setup(
    name="memory-keeper-ai",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "memorykeeper.enhancement.prompts": ["*.yaml"],
    },
    install_requires=[
        "click",
        "pydantic>=2.0",
        "PyYAML",
        "Jinja2",
        "requests",
        "boto3",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "memory-keeper=cli:cli",
        ],
    },
    python_requires=">=3.9",
)
