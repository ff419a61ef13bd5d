from setuptools import setup, find_packages

setup(
    name="beatchart",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    install_requires=[
        "aubio>=0.4.9",
        "numpy>=1.24.0",
        "soundfile>=0.12.1",
        "matplotlib>=3.7.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "beatchart=beatchart.cli:main",
        ],
    },
    python_requires=">=3.10",
    license="GPLv3",
    description="Generate four-difficulty rhythm-game charts from audio",
)
