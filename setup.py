from setuptools import setup, find_packages

setup(
    name="tinyml-parser",
    version="0.1.0",
    description="TinyML — lexer and recursive-descent parser for a small ML-family language",
    packages=find_packages(include=["tinyml", "tinyml.*"]),
    python_requires=">=3.10",
    install_requires=[],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
)
