"""
Setup script for the Food System Survey Dashboard data tools.
"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line for line in f.read().splitlines() if line.strip()]

setup(
    name="food-system-survey",
    version="1.0.0",
    description="Survey data processing and address geocoding for the food system stakeholder dashboard",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main", "web_ui"],
    package_data={"food_system_survey": ["data/*.json"]},
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "food-system-survey=main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
