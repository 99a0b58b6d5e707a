"""Setup script for the book catalog package following Cosmic Python pattern."""

from setuptools import setup, find_packages

setup(
    name="book-catalog",
    version="1.0.0",
    description="Book catalog with ISBN validation and event-driven notifications",
    author="Book Catalog Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "starlette",
        "uvicorn[standard]",
        "pydantic",
        "sqlalchemy>=2.0,<2.1",
        "psycopg2-binary",
        "redis",
        "requests",
        "passlib",
        "tenacity",
        "email-validator",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "catalog-api=catalog.entrypoints.catalog_api:main",
            "notification-api=notification.entrypoints.notification_api:main",
            "notification-consumer=notification.entrypoints.redis_eventconsumer:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
    ],
)
