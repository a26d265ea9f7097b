from os import path

from setuptools import setup

this_dir = path.abspath(path.dirname(__file__))
with open(path.join(this_dir, "README.md")) as f:
    long_description = f.read()

setup(
    name="northwind",
    description="Northwind - session scoped data access layer for the Northwind sample model",
    long_description=long_description,
    long_description_content_type="text/markdown",
    version="0.1",
    license="MIT",
    packages=["northwind", "northwind.test", "northwind.core"],
    keywords=["northwind", "unit of work", "sqlalchemy", "pydantic"],
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2",
        "uvicorn",
        "colorama",
    ],
    extras_require={
        "test": [
            "pytest",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
    ],
    entry_points={
        "console_scripts": [
            "northwind = northwind.command:console_main",
        ]
    },
)
