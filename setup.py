# setup.py - hashed-feature online logistic regression
from setuptools import setup, find_packages

setup(
    name="hashlearn",
    version="0.1.0",
    description="Online logistic regression over hashed text features",
    packages=find_packages(include=["hashlearn", "hashlearn.*"]),
    python_requires=">=3.8",
    install_requires=["numpy"],
    extras_require={"test": ["pytest"]},
)
