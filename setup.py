from setuptools import setup, find_packages

setup(
    name="birdnest",
    version="0.3.0",
    description="BirdNest - unified package manager front-end for pikman, apt and flatpak",
    author="BirdNest developers",
    license="GPLv3",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "PyQt6>=6.7.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "birdnest=birdnest.main:main",
        ],
    },
)
