"""Setup script for sealed-pack-tracking package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="sealed-pack-tracking",
    version="1.0.0",
    description="Sealed-pack delivery tracking - chain-of-custody events for exam material",
    author="Sealed-Pack Tracking Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic",
        "sqlalchemy>=2.0,<2.1",
        "psycopg2-binary",
        "redis",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
            "requests",
            "tenacity",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
    ],
)
