"""Setup script for the coffee balancing report."""
from setuptools import setup, find_packages

setup(
    name="coffee-balancing-report",
    version="1.0.0",
    description="Balancing report joining coffee intake, quality assessments and finance payments",
    author="Your Name",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.31.0",
        "pandas>=2.0.0",
        "openpyxl>=3.1.0",
        "click>=8.1.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "balancing=balancing.cli:main",
        ],
    },
)
