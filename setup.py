"""Setup script for EcoBot."""

from setuptools import setup, find_packages

setup(
    name="ecobot",
    version="1.0.0",
    description="Sustainable travel chat assistant with voice input and output",
    author="EcoTravel",
    packages=find_packages(include=['ecobot', 'ecobot.*']),
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0.0",
        "google-generativeai>=0.3.0",
        "openai>=1.0.0",
        "elevenlabs>=2.0.0",
        "pygame>=2.5.0",
        "structlog>=23.0.0",
        "click>=8.0.0",
        "numpy>=1.24.0",
        "sounddevice>=0.4.6",
        "soundfile>=0.12.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ecobot=ecobot.cli.main:cli",
        ],
    },
)
