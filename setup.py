#!/usr/bin/env python3
"""
Fleet Relay Setup
Managed notification relay for Alertmanager
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fleet-relay",
    version="0.1.0",
    description="Relays Alertmanager alerts as rate-limited OCM managed notifications",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Monitoring",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.24.0",
        "pydantic>=2.0.0",
        "tenacity>=8.0.0",
        "prometheus-client>=0.17.0",
        "structlog>=23.0.0",
        # CLI dependencies
        "click>=8.0.0",
        "rich>=13.0.0",
        "pyyaml>=6.0.0",
        # Web service dependencies
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        # Record store dependencies
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
    ],
    extras_require={
        "postgres": [
            "asyncpg>=0.28.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fleetrelay=fleetrelay.cli.main:main",
        ],
    },
)
