"""setuptools setup for PomoTrack.

Install for development:
    pip install -e ".[test]"
    pomotrack --help
"""

from setuptools import setup, find_packages

setup(
    name="PomoTrack",
    version="0.1.0",
    description="Deadline-based Pomodoro timer that survives restarts",
    packages=find_packages(include=["pomotrack", "pomotrack.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6",
        "SQLAlchemy>=2.0",
        "numpy",
        "platformdirs",
        "typer",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["pomotrack=pomotrack.__main__:main"],
    },
)
