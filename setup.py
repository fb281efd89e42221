"""
Model Registry Server - Unified LLM model registry and model selection
Setup configuration for pip installation
"""

from setuptools import setup, find_namespace_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="model-registry-server",
    version="1.0.0",
    author="bionicbutterfly13",
    description="Unified LLM model registry with preference-based model selection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/bionicbutterfly13/model-registry-server",
    packages=find_namespace_packages(include=["src", "src.*"]),
    package_data={"src.config": ["*.json", "*.yaml"]},
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.104.1",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "httpx>=0.25.1",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
        ]
    },
    entry_points={
        "console_scripts": [
            "model-registry=src.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
    ],
)
