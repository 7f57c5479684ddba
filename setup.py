"""
Setup configuration for pageadvisor package.
"""

from setuptools import setup, find_packages

setup(
    name="pageadvisor",
    version="0.1.0",
    description="AI suggestion and impact measurement engine for landing pages",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "supabase>=2.0",
        "pydantic>=2.0",
        "pydantic-ai>=0.4",
        "logfire>=3.0",
        "python-dotenv>=1.0",
        "click>=8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "pageadvisor=pageadvisor.cli.main:cli",
        ],
    },
)
