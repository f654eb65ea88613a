"""Setup configuration for ghmetrics"""

from setuptools import setup, find_packages

setup(
    name="gh-pr-activity-metrics",
    version="0.1.0",
    description=(
        "CLI tool for GitHub pull request activity: contributor, repository "
        "and review metrics collected through the GraphQL API with replayable caching."
    ),
    author="GitHub PR Activity Metrics Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "gh-metrics=ghmetrics.main:main",
        ],
    },
)
