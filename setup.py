"""Setup script for the smfarm package."""

from setuptools import find_packages, setup

setup(
    name="smfarm",
    version="0.1.0",
    description="Soil sensor normalization and advisory engine",
    packages=find_packages(include=["smfarm", "smfarm.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "paho-mqtt>=2.0.0",
        "aiohttp",
        "rich",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "smfarm-collector=smfarm.collector:main",
            "smfarm-display=smfarm.display:main",
            "smfarm-export=smfarm.display:export_main",
        ],
    },
)
